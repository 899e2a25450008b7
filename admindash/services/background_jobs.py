"""APScheduler integration for the dashboard's periodic jobs."""

from __future__ import annotations

import atexit
import concurrent.futures
import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from apscheduler.events import EVENT_JOB_MAX_INSTANCES, EVENT_JOB_MISSED, JobEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask

from admindash.services.job_stats import SCHEDULER_EXTENSION, job_stats
from admindash.services.operational_alerts import send_operational_alert

logger = logging.getLogger(__name__)

SCHEDULER_STATE_EXTENSION = "runtime_scheduler_state"
MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 24 * 60
TRUTHY = {"1", "true", "yes", "on"}


class JobTimeout(Exception):
    """A job run went past its time limit."""


@dataclass(frozen=True)
class DashboardJob:
    """A periodic dashboard task and how to run it."""

    name: str
    run: Callable[[Flask], object]
    interval_setting: str
    default_interval: int = 60
    timeout_seconds: int = 120
    retries: int = 0
    backoff_seconds: float = 1.0


class JobRunner:
    """
    Runs one DashboardJob inside the app, recording every run in job_stats.

    Failed attempts are retried with exponential backoff, except after a
    timeout. A run that fails for good sends a ``scheduler_job_failure``
    alert.
    """

    def __init__(self, app: Flask, job: DashboardJob) -> None:
        self.app = app
        self.job = job

    def __call__(self) -> bool:
        job = self.job
        job_stats.record_start(job.name)
        started = time.monotonic()

        error: Exception | None = None
        for attempt in range(job.retries + 1):
            if attempt:
                delay = job.backoff_seconds * 2 ** (attempt - 1)
                logger.warning(
                    "Retrying %s in %.1fs after: %s", job.name, delay, _describe(error)
                )
                time.sleep(delay)
            try:
                _call_with_timeout(lambda: job.run(self.app), job.timeout_seconds)
            except JobTimeout as exc:
                error = exc
                break
            except Exception as exc:
                error = exc
            else:
                job_stats.record_success(job.name, duration_ms=_elapsed_ms(started))
                return True

        reason = _describe(error)
        job_stats.record_failure(job.name, reason, duration_ms=_elapsed_ms(started))
        logger.error("Dashboard job %s failed: %s", job.name, reason)
        send_operational_alert(
            self.app,
            event_type="scheduler_job_failure",
            severity="high",
            message=f"Dashboard job '{job.name}' failed.",
            details={"reason": reason},
            dedupe_key=f"scheduler_job_failure:{job.name}:{type(error).__name__}",
        )
        return False


def jobs_enabled(app: Flask) -> bool:
    """``ENABLE_BACKGROUND_JOBS`` wins; otherwise jobs run everywhere but tests."""
    raw = os.getenv("ENABLE_BACKGROUND_JOBS")
    if raw is None:
        return not app.config.get("TESTING", False)
    return raw.strip().lower() in TRUTHY


def start_background_scheduler(app: Flask, jobs: list[DashboardJob]) -> dict[str, Any]:
    """
    Schedule ``jobs`` on a background APScheduler and start it.

    The returned state is also kept in ``app.extensions`` for the health
    endpoints. Bad interval settings fall back to the job default with a
    warning rather than failing app boot.
    """
    state: dict[str, Any] = {
        "enabled": jobs_enabled(app),
        "started": False,
        "jobs": {},
        "warnings": [],
    }
    app.extensions[SCHEDULER_STATE_EXTENSION] = state
    if not state["enabled"]:
        state["warnings"].append("Background jobs disabled by ENABLE_BACKGROUND_JOBS flag.")
        return state

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
    )
    scheduler.add_listener(_record_skipped_run, EVENT_JOB_MAX_INSTANCES | EVENT_JOB_MISSED)

    for job in jobs:
        minutes = _interval_minutes(app, job, state["warnings"])
        scheduler.add_job(
            JobRunner(app, job),
            trigger=IntervalTrigger(minutes=minutes),
            id=job.name,
            name=job.name,
            replace_existing=True,
        )
        job_stats.register_job(job.name, minutes)
        state["jobs"][job.name] = minutes

    try:
        scheduler.start()
    except Exception as exc:  # pragma: no cover - depends on runtime environment
        message = f"Background scheduler failed to start: {type(exc).__name__}: {exc}"
        state["warnings"].append(message)
        logger.error(message)
        send_operational_alert(
            app,
            event_type="scheduler_boot",
            severity="high",
            message=message,
            dedupe_key="scheduler_boot_failed",
        )
        return state

    state["started"] = True
    app.extensions[SCHEDULER_EXTENSION] = scheduler
    atexit.register(_shutdown, scheduler)
    logger.info("Dashboard jobs scheduled: %s", state["jobs"])
    return state


def run_dashboard_job(app: Flask, job: DashboardJob) -> bool:
    """Run ``job`` once in the calling thread."""
    return JobRunner(app, job)()


def _interval_minutes(app: Flask, job: DashboardJob, warnings: list[str]) -> int:
    raw = app.config.get(job.interval_setting)
    if raw in (None, ""):
        return job.default_interval

    try:
        minutes = int(raw)
    except (TypeError, ValueError):
        warning = (
            f"{job.name}: invalid {job.interval_setting} {raw!r}, "
            f"using {job.default_interval} minutes."
        )
        logger.warning(warning)
        warnings.append(warning)
        return job.default_interval

    if MIN_INTERVAL_MINUTES <= minutes <= MAX_INTERVAL_MINUTES:
        return minutes
    clamped = max(MIN_INTERVAL_MINUTES, min(minutes, MAX_INTERVAL_MINUTES))
    warning = f"{job.name}: {minutes} minutes is out of range, using {clamped}."
    logger.warning(warning)
    warnings.append(warning)
    return clamped


def _record_skipped_run(event: JobEvent) -> None:
    if event.code == EVENT_JOB_MAX_INSTANCES:
        reason = "previous run still active"
    else:
        reason = "run missed its start window"
    job_stats.record_skip(event.job_id, reason)
    logger.warning("Skipped dashboard job %s: %s", event.job_id, reason)


def _call_with_timeout(func: Callable[[], object], timeout_seconds: int) -> None:
    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="dashboard-job"
    )
    try:
        executor.submit(func).result(timeout=timeout_seconds)
    except concurrent.futures.TimeoutError:
        raise JobTimeout(f"timed out after {timeout_seconds}s") from None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def _describe(error: BaseException | None) -> str:
    return f"{type(error).__name__}: {error}"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _shutdown(scheduler: BackgroundScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
