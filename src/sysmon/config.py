"""Engine configuration and fixed tuning constants for sysmon."""

import math
import mmap
import os
from dataclasses import dataclass

from sysmon.models import SortKey

REFRESH_MIN = 0.3
REFRESH_MAX = 5.0
DEFAULT_REFRESH = 1.0

# Granularity of the cooperative wait; smaller trades CPU for input latency.
POLL_SLICE = 0.025

# Floor for the system tick delta so percentages never divide by zero.
MIN_TICK_DELTA = 1

USER_WIDTH = 12
STATUS_TIMEOUT = 2.0

PAGE_SIZE = mmap.PAGESIZE


def _clock_ticks() -> int:
    try:
        return os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return 100


CLOCK_TICKS = _clock_ticks()


def refresh_in_range(value: float) -> bool:
    """Check a refresh interval against the inclusive [REFRESH_MIN, REFRESH_MAX] range."""
    return math.isfinite(value) and REFRESH_MIN <= value <= REFRESH_MAX


@dataclass(slots=True)
class EngineConfig:
    """
    Mutable view state owned by the orchestrator.

    The scroll offset stored here is the requested offset; it is re-clamped
    against the current process count every render.
    """

    sort_key: SortKey = SortKey.CPU
    scroll_offset: int = 0
    refresh_interval: float = DEFAULT_REFRESH

    def set_refresh_interval(self, value: float) -> bool:
        """Apply a new refresh interval if it is in range; return whether it was applied."""
        if not refresh_in_range(value):
            return False
        self.refresh_interval = value
        return True

    def scroll(self, delta: int) -> None:
        """Move the requested offset, never below zero."""
        self.scroll_offset = max(0, self.scroll_offset + delta)
