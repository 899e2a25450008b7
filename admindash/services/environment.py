"""Deployment environment and hostname inquiry."""

from __future__ import annotations

import os
from urllib.parse import urlparse

from flask import current_app, has_app_context

DEFAULT_ENV = "development"
PRODUCTION = "production"


def current_env() -> str:
    """Return the deployment environment name, lower-cased."""
    configured = None
    if has_app_context():
        configured = current_app.config.get("APP_ENV")
    explicit_env = configured or os.getenv("APP_ENV") or os.getenv("FLASK_ENV")
    return str(explicit_env or DEFAULT_ENV).strip().lower()


def is_production() -> bool:
    return current_env() == PRODUCTION


def current_hostname() -> str:
    """Public hostname of the site: HOSTNAME, else the host of BASE_URL."""
    if not has_app_context():
        return "localhost"

    hostname = current_app.config.get("HOSTNAME")
    if hostname:
        return str(hostname).strip().lower()

    base_url = current_app.config.get("BASE_URL") or ""
    parsed = urlparse(str(base_url))
    return (parsed.hostname or "localhost").lower()


def base_path() -> str:
    """Subfolder the site is served from, e.g. ``/forum``; empty at the root."""
    if not has_app_context():
        return ""
    return str(current_app.config.get("BASE_PATH") or "")
