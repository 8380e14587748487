"""Poll loop: sample, diff, hand off, sleep, repeat."""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from queue import Queue
from typing import Any, Protocol

from bson.errors import BSONError
from pymongo.errors import PyMongoError

from dbtop.config import Options
from dbtop.decode import decode
from dbtop.diff import DiffResult, diff
from dbtop.errors import DbtopError, FatalStartupFailure, TransientSampleFailure
from dbtop.models import Shape, Snapshot
from dbtop.stat_fields import ReaderConfig

log = logging.getLogger(__name__)

SAMPLE_ERRORS = (PyMongoError, BSONError, DbtopError, OSError)


class PollState(Enum):
    """States of the poll loop."""

    IDLE = "idle"
    SAMPLING = "sampling"
    EMITTING = "emitting"
    SLEEPING = "sleeping"
    FATAL = "fatal"


class Dispatcher(Protocol):
    """Issues the administrative commands a monitor samples."""

    def top(self) -> Mapping[str, Any]: ...

    def server_status(self) -> Mapping[str, Any]: ...

    def operation_metrics(self) -> Iterable[Mapping[str, Any]]: ...


class Monitor:
    """
    Polls one server and turns consecutive samples into diffs.

    The previous sample of each shape belongs to the monitor instance, so
    several monitors (one per host) never see each other's state.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        options: Options,
        sink: Callable[[DiffResult], None],
        *,
        num_cores: int = 1,
        notify: Callable[[str], None] | None = None,
        label: str = "",
        poll_rate: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the Monitor.

        Args:
            dispatcher: Command dispatcher for the monitored server.
            options: Run options; selects the shape and the row budget.
            sink: Receives every diff produced.
            num_cores: Server core count, for per-core percentages.
            notify: Receives the one-time connection notice.
            label: Sanitized connection string shown in the notice.
            poll_rate: Seconds between polls. Defaults to options.sleep_time.
            clock: Monotonic clock used to timestamp samples.
        """
        self._dispatcher = dispatcher
        self._options = options
        self._sink = sink
        self._num_cores = num_cores
        self._notify = notify
        self._label = label
        self._poll_rate = float(options.sleep_time if poll_rate is None else poll_rate)
        self._clock = clock
        self._previous: dict[Shape, Snapshot] = {}
        self._has_data = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.state = PollState.IDLE
        self.error: FatalStartupFailure | None = None

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.01, value)

    @property
    def has_data(self) -> bool:
        return self._has_data

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def previous(self, shape: Shape) -> Snapshot | None:
        return self._previous.get(shape)

    def sample(self, shape: Shape) -> Snapshot:
        """Fetch and decode one snapshot of ``shape``."""
        captured_at = self._clock()
        if shape is Shape.TOP:
            reply: Any = self._dispatcher.top()
        elif shape is Shape.OPERATION_METRICS:
            reply = self._dispatcher.operation_metrics()
        else:
            reply = self._dispatcher.server_status()
        return decode(reply, shape, captured_at=captured_at, num_cores=self._num_cores)

    def step(self) -> DiffResult | None:
        """
        Take one sample and diff it against the previous one.

        Returns None when there is nothing to diff against yet. A failed
        sample forgets the previous sample of that shape before re-raising.
        """
        shape = self._options.shape
        try:
            current = self.sample(shape)
        except SAMPLE_ERRORS:
            self._previous.pop(shape, None)
            raise
        previous = self._previous.get(shape)
        self._previous[shape] = current
        if previous is None:
            return None
        if shape is Shape.STAT:
            return diff(
                current,
                previous,
                config=ReaderConfig(
                    cpu_count=self._num_cores, human_readable=self._options.human_readable
                ),
                all_fields=self._options.all_fields,
                keys=self._options.fields,
                header_index=self._options.header_index,
            )
        return diff(current, previous)

    def _budget_spent(self, iterations: int) -> bool:
        return self._options.row_count > 0 and iterations > self._options.row_count

    def _sleep(self) -> None:
        self.state = PollState.SLEEPING
        self._stop_event.wait(timeout=self._poll_rate)

    def run(self) -> None:
        """
        Poll until the row budget is spent or stop() is called.

        Raises:
            FatalStartupFailure: The very first sample failed.
        """
        iterations = 0
        while not self._stop_event.is_set():
            if self._budget_spent(iterations):
                break
            iterations += 1
            self.state = PollState.SAMPLING
            try:
                result = self.step()
            except SAMPLE_ERRORS as exc:
                if not self._has_data:
                    # nothing was ever shown; retrying is pointless
                    self.state = PollState.FATAL
                    raise FatalStartupFailure(str(exc)) from exc
                failure = TransientSampleFailure(str(exc))
                log.error(
                    "Error: %s",
                    failure,
                    extra={
                        "event": "poll.error",
                        "extra_fields": {"error": repr(exc), "shape": self._options.shape.value},
                    },
                )
                self._sleep()
                continue

            if not self._has_data:
                self._has_data = True
                if not self._options.json and self._notify is not None:
                    self._notify(f"connected to: {self._label}")

            if result is not None:
                self.state = PollState.EMITTING
                self._sink(result)

            if self._budget_spent(iterations):
                break
            self._sleep()
        self.state = PollState.IDLE

    def start(self) -> None:
        """Start polling in a background thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="Monitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Background thread body."""
        try:
            self.run()
        except FatalStartupFailure as exc:
            self.error = exc
            log.error("Failed: %s", exc, extra={"event": "poll.fatal"})


def queue_sink(queue: "Queue[DiffResult]") -> Callable[[DiffResult], None]:
    """Sink that hands diffs to another thread."""
    return queue.put
