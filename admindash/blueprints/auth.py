"""
Auth Blueprint

Session login for dashboard users; admin rights are checked per endpoint.

Endpoints:
- POST /api/auth/login - Start a session
- POST /api/auth/logout - End the session
- GET /api/auth/me - The signed-in user
"""

import logging

from flask import Blueprint, jsonify, request
from flask_bcrypt import check_password_hash
from flask_login import current_user, login_required, login_user, logout_user

from admindash.models import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _authenticate(email: str, password: str) -> User | None:
    user = User.query.filter_by(email=email).one_or_none()
    if user is None or not check_password_hash(user.password_hash, password):
        return None
    return user


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Request (JSON): ``email``, ``password``, optional ``remember``.

    401 for bad credentials, 403 for a deactivated account.
    """
    payload = request.get_json(silent=True) or {}
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    if not email or not password:
        return _error("Email and password are required", 400)

    user = _authenticate(email, password)
    if user is None:
        logger.warning("Rejected login for %s", email)
        return _error("Invalid email or password", 401)
    if not user.is_active:
        logger.warning("Login refused for deactivated account %s", email)
        return _error("Account is deactivated", 403)

    login_user(user, remember=bool(payload.get("remember")))
    logger.info("%s signed in%s", email, " as admin" if user.is_admin else "")
    return jsonify({"success": True, "user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info("%s signed out", current_user.email)
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"success": True, "user": current_user.to_dict()})
