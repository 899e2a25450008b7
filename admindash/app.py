"""Main Flask application."""

import logging
import os

import click
from flask import Flask, jsonify
from flask_bcrypt import Bcrypt
from flask_login import LoginManager

from admindash import __version__
from admindash.blueprints import admin_dashboard_bp, auth_bp
from admindash.config import Config
from admindash.models import User, db
from admindash.services.background_jobs import (
    SCHEDULER_STATE_EXTENSION,
    DashboardJob,
    run_dashboard_job,
    start_background_scheduler,
)
from admindash.services.dashboard_jobs import (
    refresh_dashboard_stats,
    snapshot_dashboard_problems,
    verify_favicon_url,
)
from admindash.services.job_stats import job_stats
from admindash.services.operational_alerts import send_operational_alert
from admindash.services.problem_checks import AdminDashboardData
from admindash.services.startup_checks import (
    build_readiness_report,
    run_startup_config_audit,
    should_fail_fast_on_config_audit,
)

logger = logging.getLogger(__name__)

STARTUP_AUDIT_EXTENSION = "startup_config_audit"

bcrypt = Bcrypt()
login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


DASHBOARD_JOBS = (
    DashboardJob(
        name="refresh_dashboard_stats",
        run=refresh_dashboard_stats,
        interval_setting="DASHBOARD_STATS_INTERVAL_MINUTES",
        default_interval=AdminDashboardData.recalculate_stats_interval(),
        timeout_seconds=120,
        retries=1,
        backoff_seconds=2.0,
    ),
    DashboardJob(
        name="snapshot_dashboard_problems",
        run=snapshot_dashboard_problems,
        interval_setting="PROBLEM_SNAPSHOT_INTERVAL_MINUTES",
        timeout_seconds=60,
    ),
    DashboardJob(
        name="verify_favicon_url",
        run=verify_favicon_url,
        interval_setting="FAVICON_CHECK_INTERVAL_MINUTES",
        timeout_seconds=30,
        retries=1,
        backoff_seconds=5.0,
    ),
)


def audit_startup_config(app: Flask) -> dict[str, list[str]]:
    """Log the config audit, alert on errors, and fail fast if configured to."""
    audit = run_startup_config_audit(app)
    app.extensions[STARTUP_AUDIT_EXTENSION] = audit

    for warning in audit["warnings"]:
        logger.warning("Startup config warning: %s", warning)
    if not audit["errors"]:
        return audit

    for error in audit["errors"]:
        logger.error("Startup config issue: %s", error)
    send_operational_alert(
        app,
        event_type="startup_config_audit",
        severity="high",
        message="Startup config audit found errors.",
        details={"errors": audit["errors"]},
        dedupe_key="startup_config_audit_errors",
    )
    if should_fail_fast_on_config_audit(app):
        raise RuntimeError("Startup config audit failed: " + "; ".join(audit["errors"]))
    return audit


def register_health_routes(app: Flask) -> None:
    def scheduler_state() -> dict:
        return app.extensions.get(SCHEDULER_STATE_EXTENSION, {})

    @app.route("/health")
    def health():
        return jsonify(
            {
                "status": "healthy",
                "version": __version__,
                "scheduler_enabled": bool(scheduler_state().get("enabled")),
                "scheduler_started": bool(scheduler_state().get("started")),
            }
        )

    @app.route("/health/ready")
    def health_ready():
        """DB, startup config, scheduler, problem checks and cache; 503 if any fail."""
        report = build_readiness_report(app, app.extensions[STARTUP_AUDIT_EXTENSION])
        return jsonify(report), 200 if report["ready"] else 503

    @app.route("/health/jobs")
    def health_jobs():
        return jsonify({**job_stats.build_report(app), "scheduler": scheduler_state()})


def register_commands(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("password")
    @click.option("--name", default="Admin", help="Display name.")
    def create_admin(email: str, password: str, name: str):
        """Create an admin user, or promote an existing one."""
        email = email.strip().lower()
        user = User.query.filter_by(email=email).one_or_none()
        if user is None:
            password_hash = bcrypt.generate_password_hash(password).decode("utf-8")
            user = User(email=email, password_hash=password_hash, name=name)
            db.session.add(user)
        user.is_admin = True
        db.session.commit()
        click.echo(f"Admin ready: {user.email}")

    @app.cli.command("dashboard-problems")
    def dashboard_problems():
        """Run the dashboard problem checks and print the results."""
        problems = AdminDashboardData.fetch_problems()
        for problem in problems:
            click.echo(f"- {problem}")
        if not problems:
            click.echo("No problems found.")

    @app.cli.command("refresh-dashboard")
    def refresh_dashboard():
        """Run every dashboard job once, now."""
        failed = [job.name for job in DASHBOARD_JOBS if not run_dashboard_job(app, job)]
        if failed:
            raise click.ClickException(f"Dashboard jobs failed: {', '.join(failed)}")
        click.echo("Dashboard jobs finished.")


def create_app(config_class: type = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    audit_startup_config(app)

    db.init_app(app)
    bcrypt.init_app(app)
    login_manager.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_dashboard_bp)
    register_health_routes(app)
    register_commands(app)

    start_background_scheduler(app, list(DASHBOARD_JOBS))
    return app


if __name__ == "__main__":
    create_app().run(debug=os.environ.get("FLASK_DEBUG", "false").lower() == "true")
