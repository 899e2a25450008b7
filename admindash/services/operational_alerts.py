"""Operational alerts for dashboard problems and background job failures."""

from __future__ import annotations

import json
import logging
import smtplib
import time
from collections.abc import Callable
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Any

import requests
from flask import Flask

from admindash.services.cache import cache
from admindash.services.job_stats import job_stats

logger = logging.getLogger(__name__)

ALERT_SENT_KEY_PREFIX = "op-alert-sent:"
ALERT_EMAIL_JOB_ID = "email_operational_alert"
WEBHOOK_TIMEOUT_SECONDS = 5
SMTP_TIMEOUT_SECONDS = 8

Channel = Callable[[Flask, dict[str, Any]], bool]


def send_operational_alert(
    app: Flask,
    *,
    event_type: str,
    severity: str,
    message: str,
    details: dict[str, Any] | None = None,
    dedupe_key: str | None = None,
    cooldown_seconds: int | None = None,
) -> bool:
    """
    Deliver an alert to every configured channel.

    Returns True when at least one channel accepted it. Alerts sharing a
    dedupe key go out at most once per cooldown window, which defaults to
    ``OP_ALERT_COOLDOWN_SECONDS``.
    """
    if not app.config.get("OP_ALERTS_ENABLED"):
        logger.debug("Operational alerts disabled; dropping %s", event_type)
        return False

    if cooldown_seconds is None:
        cooldown_seconds = int(app.config.get("OP_ALERT_COOLDOWN_SECONDS", 300))
    key = dedupe_key or f"{event_type}:{severity}:{message}"
    sent_at = datetime.now(UTC).isoformat()
    if not cache.add(f"{ALERT_SENT_KEY_PREFIX}{key}", sent_at, cooldown_seconds):
        logger.info("Operational alert %s suppressed by cooldown", event_type)
        return False

    alert = {
        "event_type": event_type,
        "severity": severity,
        "message": message,
        "details": details or {},
        "timestamp_utc": sent_at,
    }
    channels = configured_channels(app)
    results = {name: deliver(app, alert) for name, deliver in channels.items()}
    if not any(results.values()):
        logger.warning(
            "Operational alert %s was not delivered (channels: %s)",
            event_type,
            ", ".join(channels) or "none",
        )
        return False
    return True


def configured_channels(app: Flask) -> dict[str, Channel]:
    channels: dict[str, Channel] = {}
    if app.config.get("OP_ALERT_WEBHOOK_URL"):
        channels["webhook"] = _deliver_webhook
    if app.config.get("OP_ALERT_SLACK_WEBHOOK_URL"):
        channels["slack"] = _deliver_slack
    if app.config.get("OP_ALERT_EMAIL_TO") and app.config.get("SMTP_HOST"):
        channels["email"] = _deliver_email
    return channels


def _deliver_webhook(app: Flask, alert: dict[str, Any]) -> bool:
    return _post_json(app.config["OP_ALERT_WEBHOOK_URL"], alert)


def _deliver_slack(app: Flask, alert: dict[str, Any]) -> bool:
    lines = [f"*{alert['severity'].upper()}* `{alert['event_type']}`: {alert['message']}"]
    if alert["details"]:
        lines.append(f"```{json.dumps(alert['details'], indent=2, sort_keys=True)}```")
    return _post_json(app.config["OP_ALERT_SLACK_WEBHOOK_URL"], {"text": "\n".join(lines)})


def _deliver_email(app: Flask, alert: dict[str, Any]) -> bool:
    """Send the alert by SMTP, recorded as a run of the alert email job."""
    msg = EmailMessage()
    msg["From"] = app.config.get("OP_ALERT_EMAIL_FROM", "noreply@localhost")
    msg["To"] = app.config["OP_ALERT_EMAIL_TO"]
    msg["Subject"] = f"[{alert['severity'].upper()}] {alert['event_type']}"
    msg.set_content(
        f"{alert['message']}\n\n{json.dumps(alert, indent=2, sort_keys=True)}"
    )

    job_stats.record_start(ALERT_EMAIL_JOB_ID)
    started = time.monotonic()
    try:
        _smtp_send(app, msg)
    except (smtplib.SMTPException, OSError) as exc:
        duration_ms = int((time.monotonic() - started) * 1000)
        job_stats.record_failure(
            ALERT_EMAIL_JOB_ID, f"{type(exc).__name__}: {exc}", duration_ms=duration_ms
        )
        logger.warning("Alert email to %s failed: %s", msg["To"], exc)
        return False

    job_stats.record_success(
        ALERT_EMAIL_JOB_ID, duration_ms=int((time.monotonic() - started) * 1000)
    )
    return True


def _smtp_send(app: Flask, msg: EmailMessage) -> None:
    port = int(app.config.get("SMTP_PORT", 587))
    with smtplib.SMTP(app.config["SMTP_HOST"], port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
        if app.config.get("SMTP_USE_TLS", True):
            smtp.starttls()
        username = app.config.get("SMTP_USERNAME")
        password = app.config.get("SMTP_PASSWORD")
        if username and password:
            smtp.login(username, password)
        smtp.send_message(msg)


def _post_json(url: str, payload: dict[str, Any]) -> bool:
    try:
        response = requests.post(url, json=payload, timeout=WEBHOOK_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        logger.warning("Alert webhook %s failed: %s", url, exc)
        return False
    if not response.ok:
        logger.warning("Alert webhook %s answered %s", url, response.status_code)
    return response.ok
