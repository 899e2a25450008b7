"""Startup config audit and the readiness report behind ``/health/ready``."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from admindash.models import db
from admindash.services import environment
from admindash.services.cache import cache
from admindash.services.problem_checks import AdminDashboardData

_DEV_SECRET_KEY = "dev-" + "key-change-in-production"
_READINESS_CACHE_KEY = "readiness-check"

# (level, message); "error" findings only count as errors in production.
Finding = tuple[str, str]


def run_startup_config_audit(app: Flask) -> dict[str, list[str]]:
    """
    Audit settings the dashboard depends on.

    Outside production every finding is a warning. In production the
    ``error`` findings become errors, and may stop the app from booting
    when ``STARTUP_CONFIG_AUDIT_FAIL_FAST`` is set.
    """
    with app.app_context():
        production = environment.is_production()

    audit: dict[str, list[str]] = {"warnings": [], "errors": []}
    for level, message in _config_findings(app, production):
        bucket = "errors" if level == "error" and production else "warnings"
        audit[bucket].append(message)
    # Alerting without a channel is broken everywhere.
    audit["errors"].extend(_alert_channel_errors(app))
    return audit


def _config_findings(app: Flask, production: bool) -> Iterator[Finding]:
    secret_key = app.config.get("SECRET_KEY")
    if not secret_key or secret_key == _DEV_SECRET_KEY:
        yield "error", "SECRET_KEY is using a development default."

    if production:
        database_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI") or "")
        if database_uri.startswith("sqlite:"):
            yield "error", "SQLALCHEMY_DATABASE_URI points at sqlite in production."
        if not app.config.get("HOSTNAME"):
            yield "warning", "HOSTNAME is not set; the dashboard falls back to BASE_URL."


def _alert_channel_errors(app: Flask) -> list[str]:
    if not app.config.get("OP_ALERTS_ENABLED"):
        return []
    webhook = app.config.get("OP_ALERT_WEBHOOK_URL") or app.config.get(
        "OP_ALERT_SLACK_WEBHOOK_URL"
    )
    email = app.config.get("OP_ALERT_EMAIL_TO") and app.config.get("SMTP_HOST")
    if webhook or email:
        return []
    return ["OP_ALERTS_ENABLED is true but no webhook or SMTP email channel is configured."]


def should_fail_fast_on_config_audit(app: Flask) -> bool:
    return bool(app.config.get("STARTUP_CONFIG_AUDIT_FAIL_FAST", False))


def database_status() -> dict[str, Any]:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        return {"ok": False, "detail": f"{type(exc).__name__}: {exc}"}
    return {"ok": True}


def problem_checks_status() -> dict[str, Any]:
    """The registry is usable when it holds checks."""
    registered = len(AdminDashboardData.problem_checks())
    return {"ok": registered > 0, "registered": registered}


def cache_status() -> dict[str, Any]:
    """Round-trip a short-lived key, and report what the dashboard has cached."""
    cache.set(_READINESS_CACHE_KEY, True, ttl_seconds=5)
    ok = bool(cache.get(_READINESS_CACHE_KEY))
    cache.delete(_READINESS_CACHE_KEY)
    started_at = AdminDashboardData.problems_started_at()
    return {
        "ok": ok,
        "stats_cached": cache.exists(AdminDashboardData.stats_cache_key()),
        "problems_started_at": started_at.isoformat() if started_at else None,
    }


def scheduler_status(app: Flask) -> dict[str, Any]:
    state = app.extensions.get("runtime_scheduler_state", {})
    enabled = bool(state.get("enabled"))
    started = bool(state.get("started"))
    return {"ok": started or not enabled, "enabled": enabled, "started": started}


def build_readiness_report(app: Flask, audit: dict[str, list[str]]) -> dict[str, Any]:
    checks = {
        "db_connectivity": database_status(),
        "startup_config": {
            "ok": not audit.get("errors"),
            "warnings": list(audit.get("warnings", [])),
            "errors": list(audit.get("errors", [])),
        },
        "scheduler": scheduler_status(app),
        "problem_checks": problem_checks_status(),
        "cache": cache_status(),
    }
    ready = all(check["ok"] for check in checks.values())
    return {"ready": ready, "status": "ready" if ready else "not_ready", "checks": checks}
