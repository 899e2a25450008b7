"""Cached stats for classes that compute expensive dashboard data."""

from __future__ import annotations

import logging
from typing import Any

from admindash.services.cache import cache

logger = logging.getLogger(__name__)


class StatsCacheable:
    """
    Mixin caching the output of ``fetch_stats`` under ``stats_cache_key``.

    Subclasses implement both class methods. Cached entries live a little
    longer than the recalculation interval so that a scheduled refresh
    replaces them before they expire.
    """

    @classmethod
    def stats_cache_key(cls) -> str:
        raise NotImplementedError("Stats cache key has not been set.")

    @classmethod
    def fetch_stats(cls) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def recalculate_stats_interval(cls) -> int:
        """Minutes between scheduled recalculations."""
        return 30

    @classmethod
    def set_cache(cls, stats: dict[str, Any]) -> None:
        ttl_seconds = (cls.recalculate_stats_interval() + 5) * 60
        cache.set(cls.stats_cache_key(), stats, ttl_seconds=ttl_seconds)

    @classmethod
    def fetch_cached_stats(cls) -> dict[str, Any] | None:
        return cache.get(cls.stats_cache_key())

    @classmethod
    def refresh_stats(cls) -> dict[str, Any]:
        stats = cls.fetch_stats()
        cls.set_cache(stats)
        logger.debug("Refreshed cached stats %s", cls.stats_cache_key())
        return stats
