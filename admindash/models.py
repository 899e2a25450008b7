"""Database models for the admin dashboard."""

import uuid

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

from admindash.time_utils import isoformat_or_none, utcnow

db = SQLAlchemy()


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


class User(UserMixin, db.Model):  # type: ignore[name-defined]
    """
    Site user. Only admins may read the dashboard problems.
    """

    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self) -> dict:
        """Convert user to dictionary for API responses."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "is_admin": bool(self.is_admin),
            "is_active": bool(self.is_active),
            "created_at": isoformat_or_none(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.email}{' (admin)' if self.is_admin else ''}>"


class ProblemSnapshot(db.Model):  # type: ignore[name-defined]
    """
    Problem list captured from the dashboard checks at one point in time.

    Snapshots are trimmed by retention days and a maximum row count.
    """

    __tablename__ = "problem_snapshots"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    problems = db.Column(db.JSON, nullable=False, default=list)
    problem_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "problems": self.problems or [],
            "problem_count": self.problem_count,
            "created_at": isoformat_or_none(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<ProblemSnapshot {self.id[:8]}... ({self.problem_count} problems)>"
