"""Process ranking and the scroll viewport."""

from dataclasses import dataclass
from operator import attrgetter

from sysmon.models import ProcessSample, SortKey

SORT_METRICS = {
    SortKey.CPU: attrgetter("cpu_percent"),
    SortKey.MEM: attrgetter("memory_percent"),
}


def rank(processes: list[ProcessSample], sort_key: SortKey) -> list[ProcessSample]:
    """
    Order processes by the sort key's metric, highest first.

    Equal metrics fall back to ascending pid, so the result never depends on
    the order the metrics source enumerated processes in.
    """
    metric = SORT_METRICS[sort_key]
    return sorted(processes, key=lambda proc: (-metric(proc), proc.pid))


def clamp_offset(requested: int, total: int, rows: int) -> int:
    """Clamp a requested scroll offset into [0, max(0, total - rows)]."""
    return min(max(0, requested), max(0, total - rows))


def page_size(rows: int) -> int:
    """Lines moved by a page-up or page-down."""
    return max(1, rows - 1)


@dataclass(slots=True, frozen=True)
class Viewport:
    """The visible window of a ranked process list."""

    offset: int
    rows: list[ProcessSample]
    total: int


def viewport(ranked: list[ProcessSample], requested: int, visible_rows: int) -> Viewport:
    offset = clamp_offset(requested, len(ranked), visible_rows)
    return Viewport(
        offset=offset,
        rows=ranked[offset : offset + max(0, visible_rows)],
        total=len(ranked),
    )
