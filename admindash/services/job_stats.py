"""Background job statistics used by the dashboard job-queue checks."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from threading import RLock
from typing import Any

from flask import Flask, current_app, has_app_context

SCHEDULER_EXTENSION = "background_scheduler"


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class JobRecord:
    """What is known about one background job."""

    interval_minutes: int | None = None
    status: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: int | None = None
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    failure_reason: str | None = None
    skip_reason: str | None = None
    runs: int = 0
    failures: int = 0
    skips: int = 0

    def finish(self, status: str, duration_ms: int | None) -> datetime:
        now = _utc_now()
        self.status = status
        self.finished_at = now
        self.runs += 1
        if duration_ms is not None:
            self.duration_ms = duration_ms
        return now

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in asdict(self).items()
        }


class JobStatsRegistry:
    """Records job runs so the dashboard can tell whether jobs are healthy."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._records: dict[str, JobRecord] = {}
        self._last_performed_at: datetime | None = None

    def _record(self, job_id: str) -> JobRecord:
        return self._records.setdefault(job_id, JobRecord())

    def register_job(self, job_id: str, interval_minutes: int) -> None:
        with self._lock:
            self._record(job_id).interval_minutes = interval_minutes

    def record_start(self, job_id: str) -> None:
        with self._lock:
            record = self._record(job_id)
            record.status = "running"
            record.started_at = _utc_now()

    def record_success(self, job_id: str, *, duration_ms: int | None = None) -> None:
        with self._lock:
            record = self._record(job_id)
            record.failure_reason = None
            record.last_success_at = record.finish("success", duration_ms)
            self._last_performed_at = record.last_success_at

    def record_failure(
        self, job_id: str, reason: str, *, duration_ms: int | None = None
    ) -> None:
        with self._lock:
            record = self._record(job_id)
            record.failures += 1
            record.failure_reason = reason
            record.last_failure_at = record.finish("failed", duration_ms)
            # A job that ran and failed was still performed.
            self._last_performed_at = record.last_failure_at

    def record_skip(self, job_id: str, reason: str) -> None:
        with self._lock:
            record = self._record(job_id)
            record.status = "skipped"
            record.skip_reason = reason
            record.skips += 1

    def last_job_performed_at(self) -> datetime | None:
        with self._lock:
            return self._last_performed_at

    def failed_jobs(self, prefix: str = "") -> list[str]:
        """IDs of jobs whose latest run failed, optionally filtered by prefix."""
        with self._lock:
            return sorted(
                job_id
                for job_id, record in self._records.items()
                if job_id.startswith(prefix) and record.status == "failed"
            )

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._last_performed_at = None

    def build_report(self, app: Flask | None = None) -> dict[str, Any]:
        with self._lock:
            jobs = {job_id: record.to_dict() for job_id, record in self._records.items()}
            last_performed = self._last_performed_at

        return {
            "timestamp_utc": _utc_now().isoformat(),
            "last_job_performed_at": last_performed.isoformat() if last_performed else None,
            "queued": queued(app),
            "failed_jobs": self.failed_jobs(),
            "jobs": jobs,
        }


def queued(app: Flask | None = None) -> int:
    """
    Number of scheduled jobs that are due but have not been picked up.

    A healthy scheduler moves ``next_run_time`` forward as soon as a job
    fires, so due jobs pile up only when the scheduler is stalled or paused.
    Apps without a running scheduler have nothing queued.
    """
    if app is None:
        if not has_app_context():
            return 0
        app = current_app._get_current_object()  # type: ignore[attr-defined]

    scheduler = app.extensions.get(SCHEDULER_EXTENSION)
    if scheduler is None:
        return 0

    now = _utc_now()
    return sum(
        1
        for job in scheduler.get_jobs()
        if job.next_run_time is not None and job.next_run_time <= now
    )


def last_job_performed_at() -> datetime | None:
    return job_stats.last_job_performed_at()


def failed_jobs(prefix: str = "") -> list[str]:
    return job_stats.failed_jobs(prefix)


job_stats = JobStatsRegistry()
