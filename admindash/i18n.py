"""Message catalog lookup for dashboard strings."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
LOCALES_DIR = Path(__file__).parent / "locales"

_PLACEHOLDER = re.compile(r"%\{(\w+)\}")


@lru_cache(maxsize=None)
def load_catalog(locale: str = DEFAULT_LOCALE) -> dict[str, Any]:
    """Load and cache the YAML catalog for ``locale``."""
    path = LOCALES_DIR / f"{locale}.yml"
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load message catalog %s: %s", path, e)
        return {}
    return data.get(locale, {})


def t(key: str, **kwargs: Any) -> str:
    """
    Translate a dotted message key.

    Placeholders written as ``%{name}`` are filled from keyword arguments.
    Missing keys return ``translation missing: <key>``.
    """
    node: Any = load_catalog(DEFAULT_LOCALE)
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            logger.debug("Missing translation for %s", key)
            return f"translation missing: {key}"
        node = node[part]

    if not isinstance(node, str):
        return f"translation missing: {key}"

    return _PLACEHOLDER.sub(
        lambda match: str(kwargs.get(match.group(1), match.group(0))), node
    )
