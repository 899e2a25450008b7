"""Dashboard maintenance tasks reused by the scheduler and admin controls."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import requests
from flask import Flask

from admindash.services import site_settings
from admindash.services.operational_alerts import send_operational_alert
from admindash.services.problem_checks import AdminDashboardData
from admindash.services.problem_history import persist_problem_snapshot
from admindash.services.problem_messages import (
    BAD_FAVICON_URL,
    add_problem_message,
    clear_problem_message,
)

logger = logging.getLogger(__name__)

PROBLEMS_NOTIFY_AFTER = timedelta(days=2)
PROBLEMS_NOTIFY_COOLDOWN_SECONDS = 7 * 24 * 60 * 60
BAD_FAVICON_EXPIRE_SECONDS = 60 * 60


def refresh_dashboard_stats(app: Flask) -> dict[str, Any]:
    """Recompute cached dashboard stats and alert on long-standing problems."""
    with app.app_context():
        stats = AdminDashboardData.refresh_stats()
        started_at = AdminDashboardData.problems_started_at()

    if started_at and started_at < datetime.now(UTC) - PROBLEMS_NOTIFY_AFTER:
        send_operational_alert(
            app,
            event_type="dashboard_problems",
            severity="medium",
            message="The admin dashboard has reported problems for more than 2 days.",
            details={
                "problems_started_at": started_at.isoformat(),
                "problems": stats.get("problems", []),
            },
            dedupe_key="dashboard_problems",
            cooldown_seconds=PROBLEMS_NOTIFY_COOLDOWN_SECONDS,
        )
    return stats


def snapshot_dashboard_problems(app: Flask) -> str | None:
    """Persist one problem snapshot and return the snapshot ID."""
    with app.app_context():
        problems = AdminDashboardData.fetch_problems()
    return persist_problem_snapshot(app, problems)


def verify_favicon_url(app: Flask) -> bool | None:
    """
    Check that the configured favicon loads.

    Returns True/False for a reachable/broken favicon, None when no
    favicon URL is configured.
    """
    with app.app_context():
        favicon_url = site_settings.get("favicon_url")

    if site_settings.blank(favicon_url):
        clear_problem_message(BAD_FAVICON_URL)
        return None

    try:
        response = requests.get(favicon_url, timeout=10, allow_redirects=True)
        ok = 200 <= response.status_code < 300
    except requests.RequestException as exc:
        logger.warning("Favicon %s could not be fetched: %s", favicon_url, exc)
        ok = False

    if ok:
        clear_problem_message(BAD_FAVICON_URL)
    else:
        logger.warning("Favicon %s is failing to load", favicon_url)
        add_problem_message(BAD_FAVICON_URL, BAD_FAVICON_EXPIRE_SECONDS)
    return ok
