"""Utility functions."""

import re

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def validate_email(email: str) -> bool:
    """Validate email format."""
    return bool(EMAIL_PATTERN.match(email))


def parse_limit(raw: str | None, *, default: int, maximum: int) -> int:
    """Parse a ``limit`` query value, clamped to ``1..maximum``."""
    try:
        value = int(raw) if raw not in (None, "") else default
    except (TypeError, ValueError):
        value = default
    return max(1, min(value, maximum))
