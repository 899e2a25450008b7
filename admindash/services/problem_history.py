"""Persisted history of dashboard problem lists."""

from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask

from admindash.models import ProblemSnapshot, db
from admindash.time_utils import utcnow

logger = logging.getLogger(__name__)

MAX_LISTED_SNAPSHOTS = 200


def persist_problem_snapshot(app: Flask, problems: list[str]) -> str | None:
    """Store ``problems`` as a snapshot and prune old ones; None when disabled."""
    if not app.config.get("PROBLEM_SNAPSHOT_ENABLED", True):
        return None

    with app.app_context():
        snapshot = ProblemSnapshot(problems=list(problems), problem_count=len(problems))
        db.session.add(snapshot)
        db.session.commit()
        snapshot_id = str(snapshot.id)

        pruned = prune_problem_snapshots(
            retention_days=int(app.config.get("PROBLEM_SNAPSHOT_RETENTION_DAYS", 30)),
            max_rows=int(app.config.get("PROBLEM_SNAPSHOT_MAX_ROWS", 2000)),
        )
        if pruned:
            logger.info("Pruned %s problem snapshots", pruned)
    return snapshot_id


def prune_problem_snapshots(*, retention_days: int, max_rows: int) -> int:
    """Delete snapshots past retention, then all but the newest ``max_rows``."""
    newest_first = ProblemSnapshot.created_at.desc()
    expired = ProblemSnapshot.created_at < utcnow() - timedelta(days=retention_days)
    overflow_ids = [
        snapshot_id
        for (snapshot_id,) in db.session.query(ProblemSnapshot.id)
        .filter(~expired)
        .order_by(newest_first)
        .offset(max_rows)
    ]

    pruned = ProblemSnapshot.query.filter(
        expired | ProblemSnapshot.id.in_(overflow_ids)
    ).delete(synchronize_session=False)
    db.session.commit()
    return pruned


def list_problem_snapshots(limit: int = 25) -> list[dict]:
    """Newest snapshots first, at most ``MAX_LISTED_SNAPSHOTS``."""
    limit = max(1, min(limit, MAX_LISTED_SNAPSHOTS))
    snapshots = ProblemSnapshot.query.order_by(ProblemSnapshot.created_at.desc()).limit(
        limit
    )
    return [snapshot.to_dict() for snapshot in snapshots]
