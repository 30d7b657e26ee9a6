"""Tick loop for sysmon: sample, compute, rank, render, wait."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

import structlog

from sysmon.commands import PROMPTS, Effect, Prompt, apply_command, apply_prompt, command_for_key
from sysmon.config import POLL_SLICE, EngineConfig
from sysmon.engine import SnapshotStore, Utilization, compute
from sysmon.models import MemInfo, ProcessSample, Snapshot, SortKey
from sysmon.monitor import MetricsSource, SamplingError, SystemSample
from sysmon.ranking import rank, viewport

log = structlog.get_logger()

# Returned by DisplaySurface.read_key when no key is waiting
NO_INPUT = None


class State(Enum):
    """Orchestrator states."""

    SAMPLING = "sampling"
    WAITING = "waiting"
    PROMPTING = "prompting"
    STOPPED = "stopped"


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything the display surface needs for one full redraw."""

    load_avg: tuple[float, float, float]
    cpu_percent: float
    memory: MemInfo
    refresh_interval: float
    sort_key: SortKey
    rows: list[ProcessSample]
    offset: int
    total: int


class DisplaySurface(Protocol):
    @property
    def visible_rows(self) -> int: ...

    def draw(self, frame: Frame) -> None: ...

    def read_key(self) -> str | None: ...

    def begin_prompt(self, prompt: Prompt) -> None: ...

    def flash(self, message: str) -> None: ...

    def shutdown(self) -> None: ...


class Orchestrator:
    """
    Single-threaded tick loop driving the engine.

    Each call to poll() performs one cooperative step of the state machine:
    SAMPLING runs a full tick and arms the wait deadline, WAITING consumes
    queued keys until the deadline passes, and PROMPTING holds everything
    (including the deadline) until the surface submits the modal input.
    """

    def __init__(
        self,
        source: MetricsSource,
        surface: DisplaySurface,
        config: EngineConfig | None = None,
        *,
        poll_slice: float = POLL_SLICE,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the Orchestrator.

        Args:
            source: Metrics source sampled once per tick.
            surface: Display surface that renders frames and supplies keys.
            config: Initial engine configuration. Defaults to EngineConfig().
            poll_slice: Sleep between polls in run(), in seconds.
            clock: Monotonic clock used for the wait deadline.
            sleep: Sleep function used by run().
        """
        self._source = source
        self._surface = surface
        self._config = config if config is not None else EngineConfig()
        self._poll_slice = poll_slice
        self._clock = clock
        self._sleep = sleep

        self._store = SnapshotStore()
        self._sample = SystemSample.empty()
        self._utilization = Utilization(processes=[], cpu_percent=0.0)
        self._state = State.SAMPLING
        self._deadline = 0.0
        self._remaining = 0.0
        self._prompt: Prompt | None = None
        self._frame: Frame | None = None

    @property
    def state(self) -> State:
        return self._state

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def utilization(self) -> Utilization:
        """Result of the most recent tick."""
        return self._utilization

    @property
    def frame(self) -> Frame | None:
        """Last frame handed to the surface."""
        return self._frame

    def start(self) -> None:
        """Prime the snapshot store so the first tick has a real delta."""
        sample = self._read_source()
        if sample is not None:
            self._store.rotate(Snapshot.capture(sample.totals, sample.processes))
        self._state = State.SAMPLING

    def run(self) -> None:
        """Run the loop until quit, sleeping one poll slice between polls."""
        self.start()
        while self._state is not State.STOPPED:
            self.poll()
            if self._state not in (State.SAMPLING, State.STOPPED):
                self._sleep(self._poll_slice)

    def poll(self) -> None:
        """Advance the state machine by one step."""
        if self._state is State.SAMPLING:
            self.tick()
            self._deadline = self._clock() + self._config.refresh_interval
            self._state = State.WAITING
        elif self._state is State.WAITING:
            self._drain_keys()
            if self._state is State.WAITING and self._clock() >= self._deadline:
                self._state = State.SAMPLING

    def tick(self) -> None:
        """Sample, compute and render once."""
        sample = self._read_source()
        if sample is None:
            # Keep the last good snapshot so the next delta spans the gap
            self._sample = SystemSample.empty()
            self._utilization = Utilization(processes=[], cpu_percent=0.0)
        else:
            snapshot = Snapshot.capture(sample.totals, sample.processes)
            self._store.rotate(snapshot)
            previous = self._store.previous or snapshot
            self._sample = sample
            self._utilization = compute(
                sample.processes, previous, sample.totals, sample.memory
            )
            log.debug(
                "tick",
                processes=len(sample.processes),
            cpu_percent=round(self._utilization.cpu_percent, 1),
            )
        self._redraw()

    def handle_key(self, key: str) -> None:
        command = command_for_key(key)
        if command is None:
            return

        effect = apply_command(command, self._config, self._surface.visible_rows)
        if effect is Effect.QUIT:
            self.stop()
        elif effect is Effect.REDRAW:
            self._redraw()
        elif effect is Effect.PROMPT:
            self._begin_prompt(PROMPTS[command])

    def submit_prompt(self, text: str | None) -> None:
        """
        Finish the modal prompt with the submitted text (None when cancelled).

        The wait deadline resumes with the time that was left when the
        prompt opened.
        """
        if self._state is not State.PROMPTING or self._prompt is None:
            return

        prompt, self._prompt = self._prompt, None
        result = apply_prompt(prompt.kind, text, self._config)
        if result is not None:
            self._surface.flash(result.message)

        self._deadline = self._clock() + self._remaining
        self._state = State.WAITING
        self._redraw()

    def stop(self) -> None:
        if self._state is State.STOPPED:
            return
        self._state = State.STOPPED
        log.info("stopped")
        self._surface.shutdown()

    def _read_source(self) -> SystemSample | None:
        try:
            return self._source.sample()
        except SamplingError:
            log.warning("sampling_failed", exc_info=True)
            return None

    def _drain_keys(self) -> None:
        while self._state is State.WAITING:
            key = self._surface.read_key()
            if key is NO_INPUT:
                return
            self.handle_key(key)

    def _begin_prompt(self, prompt: Prompt) -> None:
        self._remaining = max(0.0, self._deadline - self._clock())
        self._prompt = prompt
        self._state = State.PROMPTING
        self._surface.begin_prompt(prompt)

    def _redraw(self) -> None:
        ranked = rank(self._utilization.processes, self._config.sort_key)
        view = viewport(ranked, self._config.scroll_offset, self._surface.visible_rows)
        self._config.scroll_offset = view.offset
        self._frame = Frame(
            load_avg=self._sample.load_avg,
            cpu_percent=self._utilization.cpu_percent,
            memory=self._sample.memory,
            refresh_interval=self._config.refresh_interval,
            sort_key=self._config.sort_key,
            rows=view.rows,
            offset=view.offset,
            total=view.total,
        )
        self._surface.draw(self._frame)
