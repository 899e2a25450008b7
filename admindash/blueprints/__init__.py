"""Blueprints package."""

from .admin_dashboard import admin_dashboard_bp
from .auth import auth_bp

__all__ = [
    "admin_dashboard_bp",
    "auth_bp",
]
