"""Key map and command interpreter for sysmon."""

import signal
from dataclasses import dataclass
from enum import Enum

import psutil
import structlog

from sysmon.config import REFRESH_MAX, REFRESH_MIN, EngineConfig
from sysmon.models import SortKey
from sysmon.ranking import page_size

log = structlog.get_logger()


class Command(Enum):
    """Discrete user commands."""

    QUIT = "quit"
    SORT_CPU = "sort_cpu"
    SORT_MEM = "sort_mem"
    LINE_UP = "line_up"
    LINE_DOWN = "line_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    KILL = "kill"
    REFRESH = "refresh"


class Effect(Enum):
    """What the orchestrator must do after a command is applied."""

    NONE = "none"
    REDRAW = "redraw"
    PROMPT = "prompt"
    QUIT = "quit"


class PromptKind(Enum):
    SIGNAL = "signal"
    REFRESH = "refresh"


@dataclass(slots=True, frozen=True)
class Prompt:
    """A modal text-input request shown by the display surface."""

    kind: PromptKind
    message: str


KEYMAP = {
    "q": Command.QUIT,
    "Q": Command.QUIT,
    "escape": Command.QUIT,
    "c": Command.SORT_CPU,
    "C": Command.SORT_CPU,
    "m": Command.SORT_MEM,
    "M": Command.SORT_MEM,
    "k": Command.KILL,
    "K": Command.KILL,
    "r": Command.REFRESH,
    "R": Command.REFRESH,
    "up": Command.LINE_UP,
    "down": Command.LINE_DOWN,
    "pageup": Command.PAGE_UP,
    "pagedown": Command.PAGE_DOWN,
}

PROMPTS = {
    Command.KILL: Prompt(
        PromptKind.SIGNAL,
        "Enter PID to kill (Enter=SIGTERM, append '!' for SIGKILL). Example: 1234 or 1234!",
    ),
    Command.REFRESH: Prompt(
        PromptKind.REFRESH,
        f"Enter refresh seconds ({REFRESH_MIN} .. {REFRESH_MAX}):",
    ),
}


def command_for_key(key: str) -> Command | None:
    """Map a raw key name to a command; unknown keys map to None."""
    return KEYMAP.get(key)


def apply_command(command: Command, config: EngineConfig, visible_rows: int) -> Effect:
    """
    Apply a non-modal command to the engine configuration.

    Scrolling only moves the requested offset; the orchestrator re-clamps it
    against the process count on the next render.
    """
    if command is Command.QUIT:
        return Effect.QUIT
    if command in PROMPTS:
        return Effect.PROMPT

    if command is Command.SORT_CPU:
        config.sort_key = SortKey.CPU
        log.info("sort_changed", sort_key=config.sort_key.value)
    elif command is Command.SORT_MEM:
        config.sort_key = SortKey.MEM
        log.info("sort_changed", sort_key=config.sort_key.value)
    elif command is Command.LINE_UP:
        config.scroll(-1)
    elif command is Command.LINE_DOWN:
        config.scroll(1)
    elif command is Command.PAGE_UP:
        config.scroll(-page_size(visible_rows))
    elif command is Command.PAGE_DOWN:
        config.scroll(page_size(visible_rows))
    return Effect.REDRAW


@dataclass(slots=True, frozen=True)
class SignalRequest:
    pid: int
    signal: signal.Signals


@dataclass(slots=True, frozen=True)
class SignalResult:
    """Outcome of the signal delivery call, not of the target process."""

    ok: bool
    message: str


def parse_signal_request(text: str) -> SignalRequest | None:
    """
    Parse "<pid>" (SIGTERM) or "<pid>!" (SIGKILL).

    Returns None for empty or unparsable input.
    """
    text = text.strip()
    sig = signal.SIGTERM
    if text.endswith("!"):
        sig = signal.SIGKILL
        text = text[:-1].strip()
    try:
        pid = int(text)
    except ValueError:
        return None
    return SignalRequest(pid=pid, signal=sig)


def send_signal(request: SignalRequest) -> SignalResult:
    """
    Deliver a signal without waiting for or checking the target's exit.

    PIDs at or below 1 are refused before any system call is made.
    """
    pid = request.pid
    name = request.signal.name
    if pid <= 1:
        log.warning("signal_rejected", pid=pid, signal=name)
        return SignalResult(ok=False, message=f"Refusing to signal PID {pid}.")

    try:
        psutil.Process(pid).send_signal(request.signal)
    except psutil.NoSuchProcess:
        message = f"Failed to signal {pid}: no such process."
    except psutil.AccessDenied:
        message = f"Failed to signal {pid}: permission denied."
    except (psutil.Error, OSError) as exc:
        message = f"Failed to signal {pid}: {exc}."
    else:
        log.info("signal_sent", pid=pid, signal=name)
        return SignalResult(ok=True, message=f"Signal {name} sent to {pid}.")

    log.warning("signal_failed", pid=pid, signal=name, reason=message)
    return SignalResult(ok=False, message=message)


def parse_refresh_interval(text: str) -> float | None:
    """Parse a decimal seconds value; None if it is not a number."""
    try:
        return float(text.strip())
    except ValueError:
        return None


def apply_prompt(kind: PromptKind, text: str | None, config: EngineConfig) -> SignalResult | None:
    """
    Apply the text submitted to a modal prompt.

    Cancelled, unparsable or out-of-range input is discarded and leaves the
    configuration unchanged. Only signal delivery produces a result to report.
    """
    if text is None:
        return None

    if kind is PromptKind.SIGNAL:
        request = parse_signal_request(text)
        if request is None:
            return None
        return send_signal(request)

    value = parse_refresh_interval(text)
    if value is not None and config.set_refresh_interval(value):
        log.info("refresh_interval_changed", refresh_interval=value)
    return None
