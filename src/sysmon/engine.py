"""Snapshot rotation and delta-based utilization for sysmon.

Everything here except SnapshotStore is pure: the same inputs always give the
same percentages, and nothing is remembered between calls.
"""

from dataclasses import dataclass, replace
from typing import Iterable

from sysmon.config import MIN_TICK_DELTA, PAGE_SIZE
from sysmon.models import CpuTotals, MemInfo, ProcessSample, Snapshot


class SnapshotStore:
    """Two named snapshot slots, rotated once per tick."""

    def __init__(self) -> None:
        self._previous: Snapshot | None = None
        self._current: Snapshot | None = None

    @property
    def previous(self) -> Snapshot | None:
        return self._previous

    @property
    def current(self) -> Snapshot | None:
        return self._current

    def rotate(self, snapshot: Snapshot) -> None:
        """Demote the current snapshot to previous and store the new one as current."""
        self._previous, self._current = self._current, snapshot


@dataclass(slots=True, frozen=True)
class TickDeltas:
    """Counter deltas between two snapshots."""

    system: int
    idle: int
    processes: dict[int, int]


def system_delta(previous: CpuTotals, now: CpuTotals) -> int:
    """Elapsed system ticks, floored at MIN_TICK_DELTA."""
    return max(MIN_TICK_DELTA, now.sum() - previous.sum())


def idle_delta(previous: CpuTotals, now: CpuTotals, system: int) -> int:
    """Elapsed idle ticks, clamped into [0, system]."""
    return min(max(0, now.idle - previous.idle), system)


def process_delta(previous_ticks: int | None, ticks: int) -> int:
    """
    Ticks a process consumed since the previous snapshot.

    A pid missing from the previous snapshot, or one whose counter went
    backwards because the pid was reused, counts as zero.
    """
    if previous_ticks is None or ticks < previous_ticks:
        return 0
    return ticks - previous_ticks


def tick_deltas(
    previous: Snapshot,
    totals: CpuTotals,
    processes: Iterable[ProcessSample],
) -> TickDeltas:
    """Compute the system, idle and per-process deltas against a previous snapshot."""
    system = system_delta(previous.totals, totals)
    return TickDeltas(
        system=system,
        idle=idle_delta(previous.totals, totals, system),
        processes={
            proc.pid: process_delta(previous.proc_ticks.get(proc.pid), proc.ticks)
            for proc in processes
        },
    )


@dataclass(slots=True, frozen=True)
class Utilization:
    """Processes with percentages filled in, plus the aggregate CPU figure."""

    processes: list[ProcessSample]
    cpu_percent: float


def aggregate_cpu_percent(deltas: TickDeltas) -> float:
    return 100.0 * (1.0 - deltas.idle / deltas.system)


def memory_percent(rss_pages: int, memory: MemInfo, page_size: int = PAGE_SIZE) -> float:
    if memory.total <= 0:
        return 0.0
    return 100.0 * rss_pages * page_size / memory.total


def compute(
    processes: list[ProcessSample],
    previous: Snapshot,
    totals: CpuTotals,
    memory: MemInfo,
    page_size: int = PAGE_SIZE,
) -> Utilization:
    """
    Derive CPU% and MEM% for every process and the aggregate CPU%.

    Per-process CPU% is not capped: a single aggregate total can be outpaced
    by multi-core skew for a moment. Both the per-process and aggregate
    figures share the same floored system delta.

    Args:
        processes: Freshly sampled processes.
        previous: Snapshot from the previous tick.
        totals: Freshly sampled CPU totals.
        memory: Freshly sampled memory totals.
        page_size: Bytes per resident page.
    """
    deltas = tick_deltas(previous, totals, processes)
    computed = [
        replace(
            proc,
            cpu_percent=100.0 * deltas.processes[proc.pid] / deltas.system,
            memory_percent=memory_percent(proc.rss_pages, memory, page_size),
        )
        for proc in processes
    ]
    return Utilization(processes=computed, cpu_percent=aggregate_cpu_percent(deltas))
