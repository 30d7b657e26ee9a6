"""Data models for sysmon."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    MEM = "mem"


@dataclass(slots=True, frozen=True)
class CpuTotals:
    """Cumulative CPU time since boot, in clock ticks, summed over all cores."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0
    guest: int = 0
    guest_nice: int = 0

    def sum(self) -> int:
        """Total elapsed CPU-time budget across every time class."""
        return (
            self.user
            + self.nice
            + self.system
            + self.idle
            + self.iowait
            + self.irq
            + self.softirq
            + self.steal
            + self.guest
            + self.guest_nice
        )


@dataclass(slots=True, frozen=True)
class MemInfo:
    """System memory totals, all in bytes."""

    total: int = 0
    free: int = 0
    buffers: int = 0
    cached: int = 0
    reclaimable: int = 0
    shared: int = 0
    swap_total: int = 0
    swap_free: int = 0

    @property
    def used(self) -> int:
        """Used memory, clamped into [0, total]."""
        used = self.total - self.free - self.buffers - self.cached - self.reclaimable + self.shared
        return min(max(used, 0), self.total)

    @property
    def used_percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return 100.0 * self.used / self.total

    @property
    def swap_used(self) -> int:
        return min(max(self.swap_total - self.swap_free, 0), self.swap_total)


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable sample of one process at one sampling instant."""

    pid: int
    name: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    ppid: int
    uid: int
    utime: int  # Ticks
    stime: int  # Ticks
    rss_pages: int
    vsize: int  # Bytes
    cpu_percent: float = 0.0
    memory_percent: float = 0.0

    @property
    def ticks(self) -> int:
        """Cumulative user plus kernel ticks."""
        return self.utime + self.stime


@dataclass(slots=True, frozen=True)
class Snapshot:
    """CPU totals and per-process ticks captured at one instant."""

    totals: CpuTotals
    proc_ticks: Mapping[int, int] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def capture(cls, totals: CpuTotals, processes: Iterable[ProcessSample]) -> "Snapshot":
        """Build a snapshot from a freshly sampled process list."""
        ticks = {proc.pid: proc.ticks for proc in processes}
        return cls(totals=totals, proc_ticks=MappingProxyType(ticks))
