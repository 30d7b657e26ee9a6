"""Shared test fixtures for sysmon."""

from collections import deque

import pytest

from sysmon.models import CpuTotals, MemInfo, ProcessSample
from sysmon.monitor import SamplingError, SystemSample


def make_process(
    pid: int = 100,
    ticks: int = 0,
    rss_pages: int = 0,
    name: str = "proc",
    state: str = "S",
    uid: int = 0,
    cpu_percent: float = 0.0,
    memory_percent: float = 0.0,
) -> ProcessSample:
    """Create a ProcessSample with all ticks booked as user time."""
    return ProcessSample(
        pid=pid,
        name=name,
        state=state,
        ppid=1,
        uid=uid,
        utime=ticks,
        stime=0,
        rss_pages=rss_pages,
        vsize=4096 * rss_pages,
        cpu_percent=cpu_percent,
        memory_percent=memory_percent,
    )


def make_totals(busy: int = 0, idle: int = 0) -> CpuTotals:
    """CpuTotals whose sum() is busy + idle."""
    return CpuTotals(user=busy, idle=idle)


def make_sample(
    busy: int = 0,
    idle: int = 0,
    processes: list[ProcessSample] | None = None,
    memory: MemInfo | None = None,
) -> SystemSample:
    return SystemSample(
        totals=make_totals(busy, idle),
        memory=memory or MemInfo(total=1024 * 4096, free=512 * 4096),
        load_avg=(0.5, 0.25, 0.1),
        processes=processes or [],
    )


class FakeSource:
    """Metrics source replaying a scripted list of samples (or errors)."""

    def __init__(self, samples: list[SystemSample | Exception]) -> None:
        self._samples = deque(samples)
        self._last: SystemSample | Exception = samples[-1] if samples else SystemSample.empty()
        self.calls = 0

    def sample(self) -> SystemSample:
        self.calls += 1
        item = self._samples.popleft() if self._samples else self._last
        if isinstance(item, Exception):
            raise item
        return item


class FakeSurface:
    """Display surface that records frames and replays queued keys."""

    def __init__(self, keys: list[str] | None = None, rows: int = 5) -> None:
        self.frames = []
        self.flashes: list[str] = []
        self.prompts = []
        self.keys: deque[str] = deque(keys or [])
        self.rows = rows
        self.closed = False
        self.replies: deque[str | None] = deque()
        self.orchestrator = None

    @property
    def visible_rows(self) -> int:
        return self.rows

    def draw(self, frame) -> None:
        self.frames.append(frame)

    def read_key(self) -> str | None:
        return self.keys.popleft() if self.keys else None

    def begin_prompt(self, prompt) -> None:
        self.prompts.append(prompt)
        # Blocking surfaces answer the prompt before returning
        if self.replies and self.orchestrator is not None:
            self.orchestrator.submit_prompt(self.replies.popleft())

    def flash(self, message: str) -> None:
        self.flashes.append(message)

    def shutdown(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface()


@pytest.fixture
def sampling_error() -> SamplingError:
    return SamplingError("/proc unavailable")
