"""
Admin dashboard problem checks.

``AdminDashboardData`` keeps a process-wide, ordered list of problem checks.
A check is either the name of a method on the class or a nullary callable;
it returns ``None`` when everything is fine, or a message for the admins.

Usage:
    # Register a method name
    AdminDashboardData.add_problem_check("title_check")

    # Register a callable, directly or as a decorator
    @AdminDashboardData.add_problem_check
    def disk_space_check():
        return "Disk is almost full." if disk_nearly_full() else None

    problems = AdminDashboardData.fetch_problems()
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, ClassVar, Union

from admindash.i18n import t
from admindash.services import environment, mem_info, site_settings
from admindash.services import job_stats as jobs
from admindash.services.cache import cache
from admindash.services.problem_messages import (
    problem_message_check,
    problem_messages,
)
from admindash.services.stats_cache import StatsCacheable
from admindash.utils import validate_email

logger = logging.getLogger(__name__)

ProblemCheck = Union[str, Callable[[], Union[str, None]]]

PROBLEMS_STARTED_KEY = "dash-problems-started-at"
PROBLEMS_STARTED_TTL_SECONDS = 14 * 24 * 60 * 60

LOCAL_HOSTNAMES = frozenset({"localhost", "production.localhost"})
JOBS_STALE_AFTER = timedelta(minutes=2)
QUEUE_SIZE_WARNING_THRESHOLD = 100
MIN_MEM_TOTAL_KB = 1_000_000
EMAIL_JOB_PREFIX = "email"
CONSUMER_SMTP_HOSTS = ("gmail.com",)


@dataclass(frozen=True)
class LoginProvider:
    """Site settings that configure one third-party login provider."""

    name: str
    enable_setting: str
    key_setting: str
    secret_setting: str

    @property
    def message_key(self) -> str:
        return f"dashboard.{self.name}_config_warning"


LOGIN_PROVIDERS = {
    provider.name: provider
    for provider in (
        LoginProvider(
            "google_oauth2",
            "enable_google_oauth2_logins",
            "google_oauth2_client_id",
            "google_oauth2_client_secret",
        ),
        LoginProvider(
            "facebook",
            "enable_facebook_logins",
            "facebook_app_id",
            "facebook_app_secret",
        ),
        LoginProvider(
            "twitter",
            "enable_twitter_logins",
            "twitter_consumer_key",
            "twitter_consumer_secret",
        ),
        LoginProvider(
            "github",
            "enable_github_logins",
            "github_client_id",
            "github_client_secret",
        ),
    )
}

DEFAULT_PROBLEM_CHECKS: tuple[str, ...] = (
    "app_env_check",
    "host_names_check",
    "job_queue_check",
    "ram_check",
    "google_oauth2_config_check",
    "facebook_config_check",
    "twitter_config_check",
    "github_config_check",
    "s3_config_check",
    "image_magick_check",
    "failing_emails_check",
    "contact_email_check",
    "title_check",
    "site_description_check",
    "send_consumer_email_check",
    "subfolder_ends_in_slash_check",
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AdminDashboardData(StatsCacheable):
    """Problem check registry and the built-in checks."""

    _problem_checks: ClassVar[list[ProblemCheck]] = []

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @classmethod
    def add_problem_check(
        cls,
        *checks: ProblemCheck,
        check: Callable[[], str | None] | None = None,
    ) -> Callable[[], str | None] | None:
        """
        Register problem checks, keeping registration order.

        Args:
            *checks: Method names of this class and/or nullary callables
            check: A nullary callable, for keyword-style registration

        Returns:
            The registered callable when exactly one was given, so the
            method also works as a decorator.

        Raises:
            ValueError: If a method name does not exist on the class
            TypeError: If a check is neither a name nor a callable
        """
        candidates = list(checks)
        if check is not None:
            candidates.append(check)

        registered_callable = None
        for item in candidates:
            if isinstance(item, str):
                if not callable(getattr(cls, item, None)):
                    raise ValueError(f"Unknown problem check method: {item}")
            elif callable(item):
                registered_callable = item
            else:
                raise TypeError(
                    f"Problem check must be a method name or callable: {item!r}"
                )

        for item in candidates:
            cls._problem_checks.append(item)
            logger.debug("Registered problem check %s", _check_label(item))
        return registered_callable

    @classmethod
    def reset_problem_checks(cls) -> None:
        """Drop custom checks and restore the built-in ones."""
        cls._problem_checks = []
        cls.add_problem_check(*DEFAULT_PROBLEM_CHECKS)

    @classmethod
    def problem_checks(cls) -> list[ProblemCheck]:
        return list(cls._problem_checks)

    @classmethod
    def fetch_problems(cls) -> list[str]:
        return cls().problems()

    def problems(self) -> list[str]:
        """Run every check once, in order, and return the messages found."""
        found: list[str] = []
        for check in self.problem_checks():
            message = self._run_check(check)
            if message is not None:
                found.append(message)

        for message_key in problem_messages():
            message = problem_message_check(message_key)
            if message is not None:
                found.append(message)

        if found:
            self.set_problems_started()
        else:
            self.clear_problems_started()
        return found

    def _run_check(self, check: ProblemCheck) -> str | None:
        try:
            if isinstance(check, str):
                return getattr(self, check)()
            return check()
        except Exception:
            logger.exception("Problem check %s failed", _check_label(check))
            return None

    # ------------------------------------------------------------------
    # Problems started tracking
    # ------------------------------------------------------------------

    @classmethod
    def set_problems_started(cls) -> None:
        started_at = cache.get(PROBLEMS_STARTED_KEY) or _utc_now().isoformat()
        cache.set(
            PROBLEMS_STARTED_KEY,
            started_at,
            ttl_seconds=PROBLEMS_STARTED_TTL_SECONDS,
        )

    @classmethod
    def clear_problems_started(cls) -> None:
        cache.delete(PROBLEMS_STARTED_KEY)

    @classmethod
    def problems_started_at(cls) -> datetime | None:
        value = cache.get(PROBLEMS_STARTED_KEY)
        if not value:
            return None
        return datetime.fromisoformat(value)

    # ------------------------------------------------------------------
    # Stats cache
    # ------------------------------------------------------------------

    @classmethod
    def stats_cache_key(cls) -> str:
        return "dash-stats"

    @classmethod
    def fetch_stats(cls) -> dict[str, Any]:
        problems = cls.fetch_problems()
        started_at = cls.problems_started_at()
        return {
            "problems": problems,
            "problems_started_at": started_at.isoformat() if started_at else None,
            "jobs": jobs.job_stats.build_report(),
            "memory": mem_info.MemInfo().to_dict(),
            "updated_at": _utc_now().isoformat(),
        }

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def app_env_check(self) -> str | None:
        env = environment.current_env()
        if env != environment.PRODUCTION:
            return t("dashboard.app_env_warning", env=env)
        return None

    def host_names_check(self) -> str | None:
        if environment.current_hostname() in LOCAL_HOSTNAMES:
            return t("dashboard.host_names_warning")
        return None

    def job_queue_check(self) -> str | None:
        return self.jobs_check() or self.queue_size_check()

    def jobs_check(self) -> str | None:
        if jobs.queued() <= 0:
            return None
        last_performed = jobs.last_job_performed_at()
        if last_performed is None or last_performed < _utc_now() - JOBS_STALE_AFTER:
            return t("dashboard.jobs_warning")
        return None

    def queue_size_check(self) -> str | None:
        queue_size = jobs.queued()
        if queue_size >= QUEUE_SIZE_WARNING_THRESHOLD:
            return t("dashboard.queue_size_warning", queue_size=queue_size)
        return None

    def ram_check(self) -> str | None:
        mem_total = mem_info.MemInfo().mem_total()
        if mem_total is not None and mem_total < MIN_MEM_TOTAL_KB:
            return t("dashboard.memory_warning")
        return None

    def google_oauth2_config_check(self) -> str | None:
        return self._login_provider_check(LOGIN_PROVIDERS["google_oauth2"])

    def facebook_config_check(self) -> str | None:
        return self._login_provider_check(LOGIN_PROVIDERS["facebook"])

    def twitter_config_check(self) -> str | None:
        return self._login_provider_check(LOGIN_PROVIDERS["twitter"])

    def github_config_check(self) -> str | None:
        return self._login_provider_check(LOGIN_PROVIDERS["github"])

    def _login_provider_check(self, provider: LoginProvider) -> str | None:
        if not site_settings.enabled(provider.enable_setting):
            return None
        if site_settings.blank(site_settings.get(provider.key_setting)) or (
            site_settings.blank(site_settings.get(provider.secret_setting))
        ):
            return t(provider.message_key)
        return None

    def s3_config_check(self) -> str | None:
        bad_keys = (
            site_settings.blank(site_settings.get("s3_access_key_id"))
            or site_settings.blank(site_settings.get("s3_secret_access_key"))
        ) and not site_settings.enabled("s3_use_iam_profile")

        if site_settings.enabled("enable_s3_uploads") and (
            bad_keys or site_settings.blank(site_settings.get("s3_upload_bucket"))
        ):
            return t("dashboard.s3_config_warning")
        if site_settings.enabled("enable_s3_backups") and (
            bad_keys or site_settings.blank(site_settings.get("s3_backup_bucket"))
        ):
            return t("dashboard.s3_backup_config_warning")
        return None

    def image_magick_check(self) -> str | None:
        if site_settings.enabled("create_thumbnails") and shutil.which("convert") is None:
            return t("dashboard.image_magick_warning")
        return None

    def failing_emails_check(self) -> str | None:
        failed = jobs.failed_jobs(EMAIL_JOB_PREFIX)
        if failed:
            return t("dashboard.failing_emails_warning", num_failed_jobs=len(failed))
        return None

    def contact_email_check(self) -> str | None:
        contact_email = site_settings.get("contact_email")
        if site_settings.blank(contact_email):
            return t("dashboard.contact_email_missing")
        if not validate_email(str(contact_email).strip()):
            return t("dashboard.contact_email_invalid")
        return None

    def title_check(self) -> str | None:
        if site_settings.get("title") == site_settings.default("title"):
            return t("dashboard.title_nag")
        return None

    def site_description_check(self) -> str | None:
        if site_settings.blank(site_settings.get("site_description")):
            return t("dashboard.site_description_missing")
        return None

    def send_consumer_email_check(self) -> str | None:
        smtp_host = str(site_settings.get("smtp_host") or "").lower()
        if environment.is_production() and smtp_host.endswith(CONSUMER_SMTP_HOSTS):
            return t("dashboard.consumer_email_warning")
        return None

    def subfolder_ends_in_slash_check(self) -> str | None:
        if environment.base_path().endswith("/"):
            return t("dashboard.subfolder_ends_in_slash")
        return None


def _check_label(check: ProblemCheck) -> str:
    if isinstance(check, str):
        return check
    return getattr(check, "__qualname__", None) or repr(check)


AdminDashboardData.reset_problem_checks()
