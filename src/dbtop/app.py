"""dbtop - interactive Textual view."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from dbtop.config import Options
from dbtop.diff import DiffResult
from dbtop.monitor import Dispatcher, Monitor, queue_sink
from dbtop.ranking import rank, resolve_list_count, truncate
from dbtop.render import format_timestamp
from dbtop.units import format_float


class HeaderStats(Static):
    """Header widget showing what is being sampled."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 3;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._label: str = ""
        self._mode: str = ""
        self._sort_latency: bool = False
        self._elapsed: float = 0.0
        self._entries: int = 0
        self._updated: str = ""
        self._error: str = ""

    def configure(self, label: str, mode: str, sort_latency: bool) -> None:
        self._label = label
        self._mode = mode
        self._sort_latency = sort_latency
        self.update(self._render_text())

    def update_stats(self, diff: DiffResult, sort_latency: bool) -> None:
        """Update the header from a diff result."""
        self._sort_latency = sort_latency
        self._elapsed = diff.elapsed
        self._entries = len(diff.totals)
        self._updated = format_timestamp(diff.created)
        self._error = ""
        self.update(self._render_text())

    def show_error(self, message: str) -> None:
        self._error = message
        self.update(self._render_text())

    def _render_text(self) -> str:
        sort = "latency" if self._sort_latency else "total"
        lines = [
            f"[b]{self._label or 'not connected'}[/b]  mode: {self._mode}  sort: {sort}",
            f"entries: {self._entries}  interval: {format_float(self._elapsed, 2)}s  "
            f"updated: {self._updated or 'waiting for second sample...'}",
        ]
        if self._error:
            lines.append(f"[red]{self._error}[/red]")
        return "\n".join(lines)


class DiffTable(Container):
    """Container for the ranked diff table."""

    DEFAULT_CSS = """
    DiffTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._columns: list[str] = []
        self._current_keys: list[str] = []

    @property
    def current_keys(self) -> list[str]:
        return list(self._current_keys)

    def compose(self) -> ComposeResult:
        yield DataTable(id="diff-table")

    def on_mount(self) -> None:
        table = self.query_one("#diff-table", DataTable)
        table.cursor_type = "row"

    def update_diff(self, diff: DiffResult, sort_latency: bool, list_count: int) -> None:
        """Replace the rows with the ranked entries of ``diff``."""
        table = self.query_one("#diff-table", DataTable)
        header = diff.grid_header()
        if header != self._columns:
            table.clear(columns=True)
            for index, title in enumerate(header):
                table.add_column(title, key=f"c{index}")
            self._columns = header
        else:
            table.clear()

        rows = truncate(rank(diff, sort_latency), resolve_list_count(list_count))
        for key, delta in rows:
            table.add_row(*diff.grid_cells(key, delta), key=key)
        self._current_keys = [key for key, _ in rows]


class DbtopApp(App):
    """Main dbtop application."""

    TITLE = "dbtop"
    SUB_TITLE = "Database Usage Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("s", "toggle_sort", "Sort"),
    ]

    def __init__(self, dispatcher: Dispatcher, options: Options, *, num_cores: int = 1) -> None:
        super().__init__()
        self._options = options
        self._sort_latency = options.sort_latency
        self._last_diff: DiffResult | None = None
        self._update_queue: Queue[DiffResult] = Queue()
        self._label = getattr(dispatcher, "label", "")
        self._monitor = Monitor(
            dispatcher,
            options,
            queue_sink(self._update_queue),
            num_cores=num_cores,
            label=self._label,
        )

    @property
    def sort_latency(self) -> bool:
        return self._sort_latency

    def compose(self) -> ComposeResult:
        yield HeaderStats(id="header-stats")
        yield DiffTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        header = self.query_one("#header-stats", HeaderStats)
        header.configure(self._label, self._options.shape.value, self._sort_latency)
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and show the most recent diff."""
        latest = None
        while True:
            try:
                latest = self._update_queue.get_nowait()
            except Empty:
                break

        if latest is not None:
            self.show_diff(latest)
        elif self._monitor.error is not None:
            self.query_one("#header-stats", HeaderStats).show_error(f"Failed: {self._monitor.error}")

    def show_diff(self, diff: DiffResult) -> None:
        self._last_diff = diff
        self.query_one("#header-stats", HeaderStats).update_stats(diff, self._sort_latency)
        self.query_one(DiffTable).update_diff(diff, self._sort_latency, self._options.list_count)

    def action_toggle_sort(self) -> None:
        """Switch between total and latency ordering and re-rank."""
        self._sort_latency = not self._sort_latency
        if self._last_diff is not None:
            self.show_diff(self._last_diff)
        self.notify(f"Sort: {'LATENCY' if self._sort_latency else 'TOTAL'}")

    def on_unmount(self) -> None:
        self._monitor.stop()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()
