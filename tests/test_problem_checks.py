"""Tests for the admin dashboard problem check registry and checks."""

import logging
from datetime import UTC, datetime, timedelta

import pytest

from admindash.services import job_stats as jobs
from admindash.services.cache import cache
from admindash.services.job_stats import job_stats
from admindash.services.mem_info import MemInfo
from admindash.services.problem_checks import (
    DEFAULT_PROBLEM_CHECKS,
    PROBLEMS_STARTED_KEY,
    AdminDashboardData,
)
from admindash.services.problem_messages import BAD_FAVICON_URL, add_problem_message


@pytest.fixture
def no_builtin_checks(monkeypatch):
    monkeypatch.setattr(AdminDashboardData, "_problem_checks", [])


class TestAddingChecks:
    def test_calls_the_passed_callable_once(self, app):
        calls = []
        AdminDashboardData.add_problem_check(lambda: calls.append(True))

        AdminDashboardData.fetch_problems()
        assert calls == [True]

    def test_calls_the_passed_method(self, app, monkeypatch):
        calls = []
        monkeypatch.setattr(
            AdminDashboardData,
            "my_test_method",
            lambda self: calls.append(self),
            raising=False,
        )
        AdminDashboardData.add_problem_check("my_test_method")

        AdminDashboardData.fetch_problems()
        assert len(calls) == 1
        assert isinstance(calls[0], AdminDashboardData)

    def test_check_keyword_and_decorator_forms(self, no_builtin_checks):
        @AdminDashboardData.add_problem_check
        def decorated_check():
            return "decorated"

        AdminDashboardData.add_problem_check(check=lambda: "keyword")

        assert decorated_check() == "decorated"
        assert AdminDashboardData.fetch_problems() == ["decorated", "keyword"]

    def test_unknown_method_name_is_rejected(self):
        before = AdminDashboardData.problem_checks()
        with pytest.raises(ValueError):
            AdminDashboardData.add_problem_check("title_check", "no_such_check")
        assert AdminDashboardData.problem_checks() == before

    def test_non_callable_is_rejected(self):
        with pytest.raises(TypeError):
            AdminDashboardData.add_problem_check(42)

    def test_results_keep_registration_order_and_skip_none(self, no_builtin_checks):
        AdminDashboardData.add_problem_check(lambda: "first")
        AdminDashboardData.add_problem_check(lambda: None)
        AdminDashboardData.add_problem_check(lambda: "second")

        assert AdminDashboardData.fetch_problems() == ["first", "second"]

    def test_failing_check_is_logged_and_skipped(self, no_builtin_checks, caplog):
        def broken_check():
            raise RuntimeError("boom")

        AdminDashboardData.add_problem_check(broken_check)
        AdminDashboardData.add_problem_check(lambda: "still reported")

        with caplog.at_level(logging.ERROR):
            problems = AdminDashboardData.fetch_problems()

        assert problems == ["still reported"]
        assert "broken_check" in caplog.text

    def test_reset_restores_builtin_checks(self):
        AdminDashboardData.add_problem_check(lambda: "custom")
        AdminDashboardData.reset_problem_checks()

        assert AdminDashboardData.problem_checks() == list(DEFAULT_PROBLEM_CHECKS)

    def test_active_problem_messages_are_included(self, no_builtin_checks):
        add_problem_message(BAD_FAVICON_URL)

        problems = AdminDashboardData.fetch_problems()
        assert len(problems) == 1
        assert "favicon" in problems[0]


class TestProblemsStarted:
    def test_set_when_problems_are_found(self, no_builtin_checks):
        AdminDashboardData.add_problem_check(lambda: "problem")

        AdminDashboardData.fetch_problems()
        assert AdminDashboardData.problems_started_at() is not None

    def test_existing_start_time_is_kept_while_problems_persist(self, no_builtin_checks):
        started = datetime.now(UTC) - timedelta(days=3)
        cache.set(PROBLEMS_STARTED_KEY, started.isoformat())
        AdminDashboardData.add_problem_check(lambda: "problem")

        AdminDashboardData.fetch_problems()
        assert AdminDashboardData.problems_started_at() == started

    def test_cleared_when_no_problems(self, no_builtin_checks):
        cache.set(PROBLEMS_STARTED_KEY, datetime.now(UTC).isoformat())

        assert AdminDashboardData.fetch_problems() == []
        assert AdminDashboardData.problems_started_at() is None


class TestAppEnvCheck:
    def test_returns_none_in_production(self, app):
        app.config["APP_ENV"] = "production"
        assert AdminDashboardData().app_env_check() is None

    @pytest.mark.parametrize("env", ["development", "test"])
    def test_returns_a_string_outside_production(self, app, env):
        app.config["APP_ENV"] = env
        message = AdminDashboardData().app_env_check()
        assert message is not None
        assert env in message


class TestHostNamesCheck:
    def test_returns_none_when_hostname_is_set(self, app):
        app.config["HOSTNAME"] = "something.com"
        assert AdminDashboardData().host_names_check() is None

    @pytest.mark.parametrize("hostname", ["localhost", "production.localhost"])
    def test_returns_a_string_for_local_hostnames(self, app, hostname):
        app.config["HOSTNAME"] = hostname
        assert AdminDashboardData().host_names_check() is not None

    def test_falls_back_to_base_url_host(self, app):
        app.config["HOSTNAME"] = None
        app.config["BASE_URL"] = "https://forum.example.com/"
        assert AdminDashboardData().host_names_check() is None

        app.config["BASE_URL"] = "http://localhost:5000"
        assert AdminDashboardData().host_names_check() is not None


class TestJobQueueCheck:
    @pytest.fixture
    def stub_jobs(self, monkeypatch):
        def stub(*, last_performed, queued):
            monkeypatch.setattr(jobs, "last_job_performed_at", lambda: last_performed)
            monkeypatch.setattr(jobs, "queued", lambda: queued)

        return stub

    def test_returns_none_when_a_job_ran_recently(self, app, stub_jobs):
        stub_jobs(last_performed=datetime.now(UTC) - timedelta(minutes=1), queued=0)
        assert AdminDashboardData().job_queue_check() is None

    def test_returns_none_when_last_job_is_old_but_nothing_queued(self, app, stub_jobs):
        stub_jobs(last_performed=datetime.now(UTC) - timedelta(days=7), queued=0)
        assert AdminDashboardData().job_queue_check() is None

    def test_returns_none_when_no_job_ever_ran_and_nothing_queued(self, app, stub_jobs):
        stub_jobs(last_performed=None, queued=0)
        assert AdminDashboardData().job_queue_check() is None

    def test_returns_a_string_when_jobs_are_queued_but_none_ran_recently(
        self, app, stub_jobs
    ):
        stub_jobs(last_performed=datetime.now(UTC) - timedelta(minutes=20), queued=1)
        assert AdminDashboardData().job_queue_check() is not None

    def test_returns_a_string_when_jobs_are_queued_and_none_ever_ran(
        self, app, stub_jobs
    ):
        stub_jobs(last_performed=None, queued=1)
        assert AdminDashboardData().job_queue_check() is not None

    def test_large_queue_is_reported_with_its_size(self, app, stub_jobs):
        stub_jobs(last_performed=datetime.now(UTC), queued=150)
        message = AdminDashboardData().job_queue_check()
        assert message is not None
        assert "150" in message

    def test_overdue_scheduled_jobs_count_as_queued(self, scheduled_app):
        scheduler = scheduled_app.extensions["background_scheduler"]
        assert jobs.queued() == 0
        assert AdminDashboardData().jobs_check() is None

        overdue = datetime.now(UTC) - timedelta(minutes=5)
        scheduler.modify_job("refresh_dashboard_stats", next_run_time=overdue)
        assert jobs.queued() == 1
        assert AdminDashboardData().jobs_check() is not None

        job_stats.record_success("verify_favicon_url")
        assert AdminDashboardData().jobs_check() is None


class TestRamCheck:
    def test_returns_none_when_total_ram_is_1_gb(self, app, monkeypatch):
        monkeypatch.setattr(MemInfo, "mem_total", lambda self: 1025272)
        assert AdminDashboardData().ram_check() is None

    def test_returns_none_when_total_ram_cannot_be_determined(self, app, monkeypatch):
        monkeypatch.setattr(MemInfo, "mem_total", lambda self: None)
        assert AdminDashboardData().ram_check() is None

    def test_returns_a_string_when_total_ram_is_less_than_1_gb(self, app, monkeypatch):
        monkeypatch.setattr(MemInfo, "mem_total", lambda self: 512636)
        assert AdminDashboardData().ram_check() is not None


LOGIN_PROVIDER_CASES = [
    (
        "google_oauth2_config_check",
        "ENABLE_GOOGLE_OAUTH2_LOGINS",
        "GOOGLE_OAUTH2_CLIENT_ID",
        "GOOGLE_OAUTH2_CLIENT_SECRET",
    ),
    (
        "facebook_config_check",
        "ENABLE_FACEBOOK_LOGINS",
        "FACEBOOK_APP_ID",
        "FACEBOOK_APP_SECRET",
    ),
    (
        "twitter_config_check",
        "ENABLE_TWITTER_LOGINS",
        "TWITTER_CONSUMER_KEY",
        "TWITTER_CONSUMER_SECRET",
    ),
    (
        "github_config_check",
        "ENABLE_GITHUB_LOGINS",
        "GITHUB_CLIENT_ID",
        "GITHUB_CLIENT_SECRET",
    ),
]


@pytest.mark.parametrize("check,enable_setting,key,secret", LOGIN_PROVIDER_CASES)
class TestLoginProviderChecks:
    def _run(self, check):
        return getattr(AdminDashboardData(), check)()

    def test_returns_none_when_disabled(self, app, check, enable_setting, key, secret):
        app.config[enable_setting] = False
        app.config[key] = ""
        app.config[secret] = ""
        assert self._run(check) is None

    def test_returns_none_when_key_and_secret_are_set(
        self, app, check, enable_setting, key, secret
    ):
        app.config[enable_setting] = True
        app.config[key] = "12313213"
        app.config[secret] = "12312313123"
        assert self._run(check) is None

    @pytest.mark.parametrize(
        "key_value,secret_value",
        [("", "12312313123"), ("123123", ""), ("", "")],
    )
    def test_returns_a_string_when_key_or_secret_is_missing(
        self, app, check, enable_setting, key, secret, key_value, secret_value
    ):
        app.config[enable_setting] = True
        app.config[key] = key_value
        app.config[secret] = secret_value
        assert self._run(check) is not None


class TestS3ConfigCheck:
    def test_returns_none_when_s3_is_disabled(self, app):
        app.config["ENABLE_S3_UPLOADS"] = False
        app.config["ENABLE_S3_BACKUPS"] = False
        assert AdminDashboardData().s3_config_check() is None

    def test_uploads_without_bucket_are_reported(self, app):
        app.config["ENABLE_S3_UPLOADS"] = True
        app.config["S3_ACCESS_KEY_ID"] = "key"
        app.config["S3_SECRET_ACCESS_KEY"] = "secret"
        app.config["S3_UPLOAD_BUCKET"] = ""
        assert "s3_upload_bucket" in AdminDashboardData().s3_config_check()

    def test_iam_profile_replaces_access_keys(self, app):
        app.config["ENABLE_S3_UPLOADS"] = True
        app.config["S3_USE_IAM_PROFILE"] = True
        app.config["S3_ACCESS_KEY_ID"] = ""
        app.config["S3_SECRET_ACCESS_KEY"] = ""
        app.config["S3_UPLOAD_BUCKET"] = "uploads"
        assert AdminDashboardData().s3_config_check() is None

    def test_backups_without_keys_are_reported(self, app):
        app.config["ENABLE_S3_BACKUPS"] = True
        app.config["S3_ACCESS_KEY_ID"] = ""
        app.config["S3_BACKUP_BUCKET"] = "backups"
        assert "s3_backup_bucket" in AdminDashboardData().s3_config_check()


class TestImageMagickCheck:
    def test_returns_a_string_when_convert_is_missing(self, app, monkeypatch):
        app.config["CREATE_THUMBNAILS"] = True
        monkeypatch.setattr(
            "admindash.services.problem_checks.shutil.which", lambda _name: None
        )
        assert AdminDashboardData().image_magick_check() is not None

    def test_returns_none_when_thumbnails_are_disabled(self, app, monkeypatch):
        app.config["CREATE_THUMBNAILS"] = False
        monkeypatch.setattr(
            "admindash.services.problem_checks.shutil.which", lambda _name: None
        )
        assert AdminDashboardData().image_magick_check() is None


class TestFailingEmailsCheck:
    def test_reports_failed_email_jobs(self, app):
        job_stats.record_failure("email_digest", "SMTPException: refused")
        job_stats.record_failure("refresh_dashboard_stats", "ValueError: boom")

        message = AdminDashboardData().failing_emails_check()
        assert message is not None
        assert "1 email jobs" in message

    def test_returns_none_after_email_job_recovers(self, app):
        job_stats.record_failure("email_digest", "SMTPException: refused")
        job_stats.record_success("email_digest")
        assert AdminDashboardData().failing_emails_check() is None


class TestSiteSettingChecks:
    def test_contact_email_missing(self, app):
        app.config["CONTACT_EMAIL"] = ""
        assert "not provided" in AdminDashboardData().contact_email_check()

    def test_contact_email_invalid(self, app):
        app.config["CONTACT_EMAIL"] = "not-an-email"
        assert "invalid" in AdminDashboardData().contact_email_check()

    def test_contact_email_valid(self, app):
        app.config["CONTACT_EMAIL"] = "team@example.com"
        assert AdminDashboardData().contact_email_check() is None

    def test_default_title_is_nagged(self, app):
        app.config["TITLE"] = "Admin Dashboard"
        assert AdminDashboardData().title_check() is not None

        app.config["TITLE"] = "Example Community"
        assert AdminDashboardData().title_check() is None

    def test_site_description_missing(self, app):
        app.config["SITE_DESCRIPTION"] = "   "
        assert AdminDashboardData().site_description_check() is not None

        app.config["SITE_DESCRIPTION"] = "A place to talk."
        assert AdminDashboardData().site_description_check() is None

    def test_consumer_email_only_reported_in_production(self, app):
        app.config["SMTP_HOST"] = "smtp.gmail.com"
        app.config["APP_ENV"] = "development"
        assert AdminDashboardData().send_consumer_email_check() is None

        app.config["APP_ENV"] = "production"
        assert AdminDashboardData().send_consumer_email_check() is not None

        app.config["SMTP_HOST"] = "smtp.mailgun.org"
        assert AdminDashboardData().send_consumer_email_check() is None

    def test_subfolder_ending_in_slash(self, app):
        app.config["BASE_PATH"] = "/forum/"
        assert AdminDashboardData().subfolder_ends_in_slash_check() is not None

        app.config["BASE_PATH"] = "/forum"
        assert AdminDashboardData().subfolder_ends_in_slash_check() is None


def test_well_configured_production_site_has_no_problems(app, monkeypatch):
    app.config.update(
        APP_ENV="production",
        HOSTNAME="forum.example.com",
        CONTACT_EMAIL="team@example.com",
        TITLE="Example Community",
        SITE_DESCRIPTION="A place to talk.",
        SMTP_HOST="smtp.mailgun.org",
        BASE_PATH="",
        CREATE_THUMBNAILS=False,
        ENABLE_GOOGLE_OAUTH2_LOGINS=False,
        ENABLE_FACEBOOK_LOGINS=False,
        ENABLE_TWITTER_LOGINS=False,
        ENABLE_GITHUB_LOGINS=False,
        ENABLE_S3_UPLOADS=False,
        ENABLE_S3_BACKUPS=False,
    )
    monkeypatch.setattr(MemInfo, "mem_total", lambda self: 4_000_000)

    assert AdminDashboardData.fetch_problems() == []
