"""Metrics source for sysmon."""

import pwd
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Protocol

import psutil
import structlog

from sysmon.config import CLOCK_TICKS, PAGE_SIZE
from sysmon.models import CpuTotals, MemInfo, ProcessSample

log = structlog.get_logger()

# psutil reports status names; the table shows the kernel's one-letter codes.
STATUS_CODES = {
    "running": "R",
    "sleeping": "S",
    "disk-sleep": "D",
    "stopped": "T",
    "tracing-stop": "t",
    "zombie": "Z",
    "dead": "X",
    "wake-kill": "K",
    "waking": "W",
    "idle": "I",
    "parked": "P",
    "locked": "L",
    "waiting": "W",
}

PROCESS_ATTRS = [
    "pid",
    "name",
    "status",
    "ppid",
    "uids",
    "cpu_times",
    "memory_info",
]


class SamplingError(Exception):
    """The system-wide figures could not be read."""


@dataclass(slots=True)
class SystemSample:
    """One metrics-source result: system totals plus every live process."""

    totals: CpuTotals
    memory: MemInfo
    load_avg: tuple[float, float, float]
    processes: list[ProcessSample] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "SystemSample":
        """Zeroed sample used when the source is unavailable."""
        return cls(totals=CpuTotals(), memory=MemInfo(), load_avg=(0.0, 0.0, 0.0))


class MetricsSource(Protocol):
    def sample(self) -> SystemSample: ...


def to_ticks(seconds: float | None) -> int:
    """Convert psutil CPU seconds into clock ticks."""
    if not seconds:
        return 0
    return round(seconds * CLOCK_TICKS)


@lru_cache(maxsize=256)
def user_name(uid: int) -> str:
    """Resolve a uid to a login name, falling back to the numeric id."""
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


class PsutilMetricsSource:
    """
    Metrics source backed by psutil.

    Processes that exit or deny access between enumeration and detail lookup
    are left out of the result rather than reported.
    """

    def sample(self) -> SystemSample:
        """
        Collect one sample of the current system state.

        Raises:
            SamplingError: if the system-wide CPU, memory or load figures
                cannot be read.
        """
        try:
            totals = self._collect_totals()
            memory = self._collect_memory()
            load_avg = psutil.getloadavg()
            processes = self._collect_processes()
        except (psutil.Error, OSError) as exc:
            raise SamplingError(str(exc)) from exc

        return SystemSample(
            totals=totals,
            memory=memory,
            load_avg=tuple(load_avg),
            processes=processes,
        )

    def _collect_totals(self) -> CpuTotals:
        times = psutil.cpu_times()
        # Fields missing on a platform read as zero
        return CpuTotals(
            user=to_ticks(getattr(times, "user", 0.0)),
            nice=to_ticks(getattr(times, "nice", 0.0)),
            system=to_ticks(getattr(times, "system", 0.0)),
            idle=to_ticks(getattr(times, "idle", 0.0)),
            iowait=to_ticks(getattr(times, "iowait", 0.0)),
            irq=to_ticks(getattr(times, "irq", 0.0)),
            softirq=to_ticks(getattr(times, "softirq", 0.0)),
            steal=to_ticks(getattr(times, "steal", 0.0)),
            guest=to_ticks(getattr(times, "guest", 0.0)),
            guest_nice=to_ticks(getattr(times, "guest_nice", 0.0)),
        )

    def _collect_memory(self) -> MemInfo:
        mem = psutil.virtual_memory()
        swap = psutil.swap_memory()
        # psutil already folds SReclaimable into cached on Linux
        return MemInfo(
            total=mem.total,
            free=getattr(mem, "free", 0),
            buffers=getattr(mem, "buffers", 0),
            cached=getattr(mem, "cached", 0),
            reclaimable=0,
            shared=getattr(mem, "shared", 0),
            swap_total=swap.total,
            swap_free=swap.free,
        )

    def _collect_processes(self) -> list[ProcessSample]:
        """
        Collect samples of all running processes.

        Uses psutil.process_iter() with oneshot() for efficiency.
        """
        processes: list[ProcessSample] = []
        skipped = 0

        for proc in psutil.process_iter(attrs=PROCESS_ATTRS):
            try:
                with proc.oneshot():
                    info = proc.info
                    pid = info.get("pid")
                    if not pid or pid <= 0:
                        continue

                    uids = info.get("uids")
                    cpu_times = info.get("cpu_times")
                    mem_info = info.get("memory_info")

                    processes.append(
                        ProcessSample(
                            pid=pid,
                            name=info.get("name") or "",
                            state=STATUS_CODES.get(info.get("status"), "?"),
                            ppid=info.get("ppid") or 0,
                            uid=uids.effective if uids else 0,
                            utime=to_ticks(cpu_times.user) if cpu_times else 0,
                            stime=to_ticks(cpu_times.system) if cpu_times else 0,
                            rss_pages=mem_info.rss // PAGE_SIZE if mem_info else 0,
                            vsize=mem_info.vms if mem_info else 0,
                        )
                    )

            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                # Process died mid-poll or is unreadable
                skipped += 1
                continue

        if skipped:
            log.debug("processes_skipped", count=skipped)
        return processes
