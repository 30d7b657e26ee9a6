"""sysmon - Main Textual application."""

import os
from collections import deque

from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Input, Label, Static

from sysmon.commands import Prompt
from sysmon.config import PAGE_SIZE, POLL_SLICE, STATUS_TIMEOUT, USER_WIDTH
from sysmon.log import configure
from sysmon.models import ProcessSample, SortKey
from sysmon.monitor import MetricsSource, PsutilMetricsSource, user_name
from sysmon.orchestrator import NO_INPUT, Frame, Orchestrator

DEFAULT_VISIBLE_ROWS = 20
MIB = 1024.0 * 1024.0
GIB = 1024.0 * 1024.0 * 1024.0

FOOTER_HINT = "c:CPU-sort  m:MEM-sort  k:kill  r:refresh  arrows/PgUp/PgDn:scroll  Esc/q:quit"


def header_line(frame: Frame) -> str:
    """Format the one-line system summary."""
    mem = frame.memory
    l1, l5, l15 = frame.load_avg
    return (
        f"SYS-monitor  |  Load: {l1:.2f} {l5:.2f} {l15:.2f}  |  "
        f"CPU: {frame.cpu_percent:5.1f}%  |  "
        f"Mem: {mem.used_percent:5.1f}%  ({mem.used / GIB:.1f}/{mem.total / GIB:.1f} GiB)  |  "
        f"Swap: {mem.swap_used / GIB:.1f}/{mem.swap_total / GIB:.1f} GiB  |  "
        f"Refresh: {frame.refresh_interval:.1f}s"
    )


def column_line(sort_key: SortKey) -> str:
    return (
        f"{'PID':<8} {'USER':<{USER_WIDTH}} {'CPU%':>6}  {'MEM%':>7}  "
        f"{'RSS(MiB)':>10}  {'VSZ(MiB)':>9}   {'STATE':<5}  NAME"
        f"    [Sort: {sort_key.value.upper()}]"
    )


def process_line(proc: ProcessSample) -> str:
    """Format one process row."""
    user = user_name(proc.uid)[:USER_WIDTH]
    rss_mib = proc.rss_pages * PAGE_SIZE / MIB
    vsz_mib = proc.vsize / MIB
    return (
        f"{proc.pid:<8d} {user:<{USER_WIDTH}} {proc.cpu_percent:6.2f}  "
        f"{proc.memory_percent:7.3f}  {rss_mib:10.1f}  {vsz_mib:9.1f}   "
        f"{proc.state:<5}  {proc.name}"
    )


class HeaderStats(Static):
    """Header widget showing load, CPU, memory and swap."""

    DEFAULT_CSS = """
    HeaderStats {
        height: 1;
        background: $surface;
    }
    """

    def update_frame(self, frame: Frame) -> None:
        self.update(header_line(frame))


class ProcessTable(Container):
    """Column header plus the visible window of ranked processes."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }

    #columns {
        height: 1;
        text-style: bold;
    }

    #rows {
        height: 1fr;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield Static(column_line(SortKey.CPU), id="columns", markup=False)
        yield Static("", id="rows", markup=False)

    @property
    def visible_rows(self) -> int:
        """Rows the body can show; zero until the first layout."""
        return self.query_one("#rows", Static).size.height

    def update_frame(self, frame: Frame) -> None:
        self.query_one("#columns", Static).update(column_line(frame.sort_key))
        self.query_one("#rows", Static).update("\n".join(process_line(proc) for proc in frame.rows))


class PromptScreen(ModalScreen[str | None]):
    """Modal text input; dismisses with the submitted text, or None on escape."""

    DEFAULT_CSS = """
    PromptScreen {
        align: center bottom;
    }

    #prompt {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, message: str) -> None:
        super().__init__()
        self._message = message

    def compose(self) -> ComposeResult:
        yield Vertical(
            Label(self._message, markup=False),
            Input(id="prompt-input"),
            id="prompt",
        )

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class SysmonApp(App):
    """
    Main sysmon application.

    The app is the orchestrator's display surface: key presses are queued
    here and drained by the orchestrator, which is polled from a timer on
    Textual's own event loop.
    """

    TITLE = "sysmon"
    SUB_TITLE = "Process and system monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #hint {
        height: 1;
        background: $surface;
    }
    """

    def __init__(self, source: MetricsSource | None = None) -> None:
        """Initialize the SysmonApp."""
        super().__init__()
        self._pending_keys: deque[str] = deque()
        self._orchestrator = Orchestrator(
            source if source is not None else PsutilMetricsSource(),
            self,
        )

    @property
    def orchestrator(self) -> Orchestrator:
        return self._orchestrator

    @property
    def visible_rows(self) -> int:
        try:
            rows = self.query_one(ProcessTable).visible_rows
        except NoMatches:
            rows = 0
        return rows or DEFAULT_VISIBLE_ROWS

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats("", id="header-stats", markup=False)
        yield ProcessTable(id="process-table")
        yield Static(FOOTER_HINT, id="hint", markup=False)

    def on_mount(self) -> None:
        """Prime the orchestrator and poll it once per slice."""
        self._orchestrator.start()
        self.set_interval(POLL_SLICE, self._orchestrator.poll)

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, PromptScreen):
            return
        self._pending_keys.append(event.key)
        event.stop()

    def draw(self, frame: Frame) -> None:
        try:
            self.query_one(HeaderStats).update_frame(frame)
            self.query_one(ProcessTable).update_frame(frame)
        except NoMatches:
            pass  # Not mounted yet

    def read_key(self) -> str | None:
        if not self._pending_keys:
            return NO_INPUT
        return self._pending_keys.popleft()

    def begin_prompt(self, prompt: Prompt) -> None:
        # Type-ahead queued before the prompt mounted must not run as commands
        self._pending_keys.clear()
        self.push_screen(PromptScreen(prompt.message), callback=self._orchestrator.submit_prompt)

    def flash(self, message: str) -> None:
        self.notify(message, timeout=STATUS_TIMEOUT)

    def shutdown(self) -> None:
        self.exit()


def main() -> None:
    """Entry point for the sysmon application."""
    configure(os.environ.get("SYSMON_LOG_FILE"))
    app = SysmonApp()
    app.run()


if __name__ == "__main__":
    main()
