"""Pytest configuration and shared fixtures."""

import pytest


@pytest.fixture(autouse=True)
def reset_dashboard_state():
    """Isolate process-wide dashboard state between tests."""
    from admindash.services.cache import cache
    from admindash.services.job_stats import job_stats
    from admindash.services.problem_checks import AdminDashboardData

    cache.clear()
    job_stats.reset()
    AdminDashboardData.reset_problem_checks()
    yield
    cache.clear()
    job_stats.reset()
    AdminDashboardData.reset_problem_checks()


@pytest.fixture(scope="function")
def app(monkeypatch):
    """Create test Flask app with proper context handling."""
    monkeypatch.delenv("ENABLE_BACKGROUND_JOBS", raising=False)

    from admindash.app import create_app
    from admindash.config import TestingConfig

    app = create_app(TestingConfig)
    app.config["TESTING"] = True

    with app.app_context():
        from admindash.models import db

        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def db(app):
    """Get database instance."""
    from admindash.models import db as _db

    return _db


def _create_user(db, *, email: str, is_admin: bool):
    from flask_bcrypt import generate_password_hash

    from admindash.models import User

    user = User(
        email=email,
        password_hash=generate_password_hash("securepass123", 4).decode("utf-8"),
        name="Admin User" if is_admin else "Member User",
        is_admin=is_admin,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def admin_user(db):
    return _create_user(db, email="admin@example.com", is_admin=True)


@pytest.fixture
def member_user(db):
    return _create_user(db, email="member@example.com", is_admin=False)


@pytest.fixture
def admin_client(client, admin_user):
    """Test client logged in as an admin."""
    response = client.post(
        "/api/auth/login",
        json={"email": "admin@example.com", "password": "securepass123"},
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def scheduled_app(monkeypatch):
    """App with its background scheduler started, then paused so no job fires."""
    monkeypatch.setenv("ENABLE_BACKGROUND_JOBS", "true")

    from admindash.app import create_app
    from admindash.config import TestingConfig

    app = create_app(TestingConfig)
    scheduler = app.extensions["background_scheduler"]
    scheduler.pause()

    with app.app_context():
        yield app

    scheduler.shutdown(wait=False)
