"""Application configuration."""

import os


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


class Config:
    """Base configuration."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DEBUG = False
    TESTING = False

    # Deployment
    APP_ENV = os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV")
    HOSTNAME = os.environ.get("SITE_HOSTNAME")
    BASE_URL = os.environ.get("BASE_URL", "http://localhost:5000")
    BASE_PATH = os.environ.get("BASE_PATH", "")

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///app.db")
    # Fix for Heroku-style PostgreSQL URL format
    if SQLALCHEMY_DATABASE_URI.startswith("postgres://"):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace(
            "postgres://", "postgresql://", 1
        )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Site settings (read through admindash.services.site_settings)
    TITLE = os.environ.get("SITE_TITLE", "Admin Dashboard")
    SITE_DESCRIPTION = os.environ.get("SITE_DESCRIPTION", "")
    CONTACT_EMAIL = os.environ.get("CONTACT_EMAIL", "")
    FAVICON_URL = os.environ.get("FAVICON_URL", "")
    CREATE_THUMBNAILS = _env_bool("CREATE_THUMBNAILS")

    # Login providers
    ENABLE_GOOGLE_OAUTH2_LOGINS = _env_bool("ENABLE_GOOGLE_OAUTH2_LOGINS")
    GOOGLE_OAUTH2_CLIENT_ID = os.environ.get("GOOGLE_OAUTH2_CLIENT_ID", "")
    GOOGLE_OAUTH2_CLIENT_SECRET = os.environ.get("GOOGLE_OAUTH2_CLIENT_SECRET", "")
    ENABLE_FACEBOOK_LOGINS = _env_bool("ENABLE_FACEBOOK_LOGINS")
    FACEBOOK_APP_ID = os.environ.get("FACEBOOK_APP_ID", "")
    FACEBOOK_APP_SECRET = os.environ.get("FACEBOOK_APP_SECRET", "")
    ENABLE_TWITTER_LOGINS = _env_bool("ENABLE_TWITTER_LOGINS")
    TWITTER_CONSUMER_KEY = os.environ.get("TWITTER_CONSUMER_KEY", "")
    TWITTER_CONSUMER_SECRET = os.environ.get("TWITTER_CONSUMER_SECRET", "")
    ENABLE_GITHUB_LOGINS = _env_bool("ENABLE_GITHUB_LOGINS")
    GITHUB_CLIENT_ID = os.environ.get("GITHUB_CLIENT_ID", "")
    GITHUB_CLIENT_SECRET = os.environ.get("GITHUB_CLIENT_SECRET", "")

    # S3 storage
    ENABLE_S3_UPLOADS = _env_bool("ENABLE_S3_UPLOADS")
    ENABLE_S3_BACKUPS = _env_bool("ENABLE_S3_BACKUPS")
    S3_USE_IAM_PROFILE = _env_bool("S3_USE_IAM_PROFILE")
    S3_ACCESS_KEY_ID = os.environ.get("S3_ACCESS_KEY_ID", "")
    S3_SECRET_ACCESS_KEY = os.environ.get("S3_SECRET_ACCESS_KEY", "")
    S3_UPLOAD_BUCKET = os.environ.get("S3_UPLOAD_BUCKET", "")
    S3_BACKUP_BUCKET = os.environ.get("S3_BACKUP_BUCKET", "")

    # Outbound email
    SMTP_HOST = os.environ.get("SMTP_HOST")
    SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
    SMTP_USERNAME = os.environ.get("SMTP_USERNAME")
    SMTP_PASSWORD = os.environ.get("SMTP_PASSWORD")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", "true")

    # Operational alerts
    OP_ALERTS_ENABLED = _env_bool("OP_ALERTS_ENABLED")
    OP_ALERT_COOLDOWN_SECONDS = int(os.environ.get("OP_ALERT_COOLDOWN_SECONDS", "300"))
    OP_ALERT_WEBHOOK_URL = os.environ.get("OP_ALERT_WEBHOOK_URL")
    OP_ALERT_SLACK_WEBHOOK_URL = os.environ.get("OP_ALERT_SLACK_WEBHOOK_URL")
    OP_ALERT_EMAIL_TO = os.environ.get("OP_ALERT_EMAIL_TO")
    OP_ALERT_EMAIL_FROM = os.environ.get("OP_ALERT_EMAIL_FROM", "noreply@localhost")

    # Dashboard
    DASHBOARD_STATS_INTERVAL_MINUTES = int(
        os.environ.get("DASHBOARD_STATS_INTERVAL_MINUTES", "30")
    )
    PROBLEM_SNAPSHOT_INTERVAL_MINUTES = int(
        os.environ.get("PROBLEM_SNAPSHOT_INTERVAL_MINUTES", "60")
    )
    FAVICON_CHECK_INTERVAL_MINUTES = int(
        os.environ.get("FAVICON_CHECK_INTERVAL_MINUTES", "60")
    )
    PROBLEM_SNAPSHOT_ENABLED = _env_bool("PROBLEM_SNAPSHOT_ENABLED", "true")
    PROBLEM_SNAPSHOT_RETENTION_DAYS = int(
        os.environ.get("PROBLEM_SNAPSHOT_RETENTION_DAYS", "30")
    )
    PROBLEM_SNAPSHOT_MAX_ROWS = int(os.environ.get("PROBLEM_SNAPSHOT_MAX_ROWS", "2000"))

    STARTUP_CONFIG_AUDIT_FAIL_FAST = _env_bool("STARTUP_CONFIG_AUDIT_FAIL_FAST")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    APP_ENV = "development"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    APP_ENV = "production"


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    APP_ENV = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    OP_ALERTS_ENABLED = False
    PROBLEM_SNAPSHOT_ENABLED = True
