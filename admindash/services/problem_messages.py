"""Keyed problem messages shown on the admin dashboard, with optional expiry."""

from __future__ import annotations

import logging

from admindash.i18n import t
from admindash.services.cache import cache

logger = logging.getLogger(__name__)

PROBLEM_MESSAGE_KEY_PREFIX = "admin-problem:"

BAD_FAVICON_URL = "dashboard.bad_favicon_url"

PROBLEM_MESSAGES = [BAD_FAVICON_URL]


def problem_messages() -> list[str]:
    """Message keys that may be raised outside of the regular checks."""
    return list(PROBLEM_MESSAGES)


def problem_message_key(message_key: str) -> str:
    return f"{PROBLEM_MESSAGE_KEY_PREFIX}{message_key}"


def add_problem_message(
    message_key: str, expire_seconds: float | None = None
) -> None:
    """Flag ``message_key`` as a current problem, for ``expire_seconds`` if positive."""
    ttl = expire_seconds if expire_seconds and expire_seconds > 0 else None
    cache.set(problem_message_key(message_key), True, ttl_seconds=ttl)
    if ttl is None:
        logger.info("Problem message %s added", message_key)
    else:
        logger.info("Problem message %s added for %ss", message_key, ttl)


def clear_problem_message(message_key: str) -> None:
    cache.delete(problem_message_key(message_key))


def problem_message_check(message_key: str) -> str | None:
    """The catalog message for ``message_key`` while it is flagged, else None."""
    if cache.exists(problem_message_key(message_key)):
        return t(message_key)
    return None
