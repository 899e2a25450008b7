"""Read access to site settings held in the Flask application config."""

from __future__ import annotations

from typing import Any

from flask import current_app

SITE_SETTING_DEFAULTS: dict[str, Any] = {
    "title": "Admin Dashboard",
    "site_description": "",
    "contact_email": "",
    "favicon_url": "",
    "create_thumbnails": False,
    "enable_google_oauth2_logins": False,
    "google_oauth2_client_id": "",
    "google_oauth2_client_secret": "",
    "enable_facebook_logins": False,
    "facebook_app_id": "",
    "facebook_app_secret": "",
    "enable_twitter_logins": False,
    "twitter_consumer_key": "",
    "twitter_consumer_secret": "",
    "enable_github_logins": False,
    "github_client_id": "",
    "github_client_secret": "",
    "enable_s3_uploads": False,
    "enable_s3_backups": False,
    "s3_use_iam_profile": False,
    "s3_access_key_id": "",
    "s3_secret_access_key": "",
    "s3_upload_bucket": "",
    "s3_backup_bucket": "",
}


def get(name: str) -> Any:
    """Return setting ``name``; config keys are the upper-cased setting names."""
    return current_app.config.get(name.upper(), SITE_SETTING_DEFAULTS.get(name))


def default(name: str) -> Any:
    return SITE_SETTING_DEFAULTS.get(name)


def enabled(name: str) -> bool:
    value = get(name)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def blank(value: Any) -> bool:
    """True for None, empty or whitespace-only values."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
