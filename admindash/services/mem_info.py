"""System memory inspection."""

from __future__ import annotations

import logging

import psutil

logger = logging.getLogger(__name__)


class MemInfo:
    """Memory figures for the host, in kB to match /proc/meminfo."""

    def mem_total(self) -> int | None:
        """Total physical memory in kB, or None when it cannot be determined."""
        try:
            return int(psutil.virtual_memory().total) // 1024
        except Exception as exc:
            logger.warning("Could not determine total memory: %s", exc)
            return None

    def mem_available(self) -> int | None:
        try:
            return int(psutil.virtual_memory().available) // 1024
        except Exception as exc:
            logger.warning("Could not determine available memory: %s", exc)
            return None

    def to_dict(self) -> dict[str, int | None]:
        return {
            "mem_total_kb": self.mem_total(),
            "mem_available_kb": self.mem_available(),
        }
