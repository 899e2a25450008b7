"""
Admin Dashboard Blueprint

JSON endpoints exposing dashboard problems to administrators.

Endpoints:
- GET /admin/dashboard - Cached dashboard stats (computed on a cache miss)
- GET /admin/dashboard/problems - Run the problem checks now
- GET /admin/dashboard/history - Persisted problem snapshots
- POST /admin/dashboard/problem-messages - Flag a problem message
- DELETE /admin/dashboard/problem-messages/<key> - Clear a problem message
"""

import logging
from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from admindash.services.problem_checks import AdminDashboardData
from admindash.services.problem_history import list_problem_snapshots
from admindash.services.problem_messages import (
    add_problem_message,
    clear_problem_message,
    problem_message_check,
    problem_messages,
)
from admindash.utils import parse_limit

logger = logging.getLogger(__name__)

admin_dashboard_bp = Blueprint("admin_dashboard", __name__)


def admin_required(f):
    """Require an authenticated admin user."""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not getattr(current_user, "is_admin", False):
            return jsonify({"error": "Access denied"}), 403
        return f(*args, **kwargs)

    return decorated_function


@admin_dashboard_bp.route("/admin/dashboard", methods=["GET"])
@admin_required
def api_dashboard():
    """Return cached dashboard stats, refreshing them when the cache is empty."""
    stats = AdminDashboardData.fetch_cached_stats()
    cached = stats is not None
    if stats is None:
        stats = AdminDashboardData.refresh_stats()
    return jsonify({"cached": cached, **stats})


@admin_dashboard_bp.route("/admin/dashboard/problems", methods=["GET"])
@admin_required
def api_problems():
    """Run every problem check and return the problems found."""
    problems = AdminDashboardData.fetch_problems()
    started_at = AdminDashboardData.problems_started_at()
    return jsonify(
        {
            "problems": problems,
            "problems_started_at": started_at.isoformat() if started_at else None,
        }
    )


@admin_dashboard_bp.route("/admin/dashboard/history", methods=["GET"])
@admin_required
def api_history():
    """Latest persisted problem snapshots."""
    limit = parse_limit(request.args.get("limit"), default=25, maximum=200)
    snapshots = list_problem_snapshots(limit)
    return jsonify({"count": len(snapshots), "snapshots": snapshots})


@admin_dashboard_bp.route("/admin/dashboard/problem-messages", methods=["POST"])
@admin_required
def api_add_problem_message():
    """
    Flag a known problem message.

    Request (JSON):
        - key: Message key (required, one of the known problem messages)
        - expire_seconds: Optional lifetime in seconds, fractions allowed
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "JSON body required"}), 400

    key = str(data.get("key") or "").strip()
    if key not in problem_messages():
        return jsonify({"error": f"Unknown problem message: {key}"}), 400

    expire_seconds = data.get("expire_seconds")
    if expire_seconds is not None:
        try:
            expire_seconds = float(expire_seconds)
        except (TypeError, ValueError):
            return jsonify({"error": "expire_seconds must be a number"}), 400
        if expire_seconds < 0:
            return jsonify({"error": "expire_seconds must be >= 0"}), 400

    add_problem_message(key, expire_seconds)
    logger.info("Admin %s flagged problem message %s", current_user.email, key)
    return jsonify({"success": True, "key": key, "message": problem_message_check(key)})


@admin_dashboard_bp.route(
    "/admin/dashboard/problem-messages/<path:key>", methods=["DELETE"]
)
@admin_required
def api_clear_problem_message(key: str):
    """Clear a problem message. Clearing an inactive key is a no-op."""
    clear_problem_message(key)
    return jsonify({"success": True, "key": key})
