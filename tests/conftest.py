"""Shared fixtures and server reply builders."""

import logging
from collections.abc import Iterable, Iterator

import pytest

from dbtop.log import SERVICE


def top_entry(total=(0, 0), read=(0, 0), write=(0, 0)) -> dict:
    """Build one namespace document of a ``top`` reply; pairs are (time, count)."""
    return {
        "total": {"time": total[0], "count": total[1]},
        "readLock": {"time": read[0], "count": read[1]},
        "writeLock": {"time": write[0], "count": write[1]},
    }


def top_reply(**namespaces) -> dict:
    return {"totals": {ns.replace("__", "."): info for ns, info in namespaces.items()}, "ok": 1.0}


def lock_entry(R=0, W=0, r=0, w=0) -> dict:
    return {
        "timeLockedMicros": {"R": R, "W": W, "r": r, "w": w},
        "timeAcquiringMicros": {"R": 0, "W": 0, "r": 0, "w": 0},
    }


def status_reply(**databases) -> dict:
    return {"host": "db1:27017", "locks": dict(databases), "ok": 1.0}


def metrics_record(db, *, cpu_nanos=0, units_read=0, units_written=0, secondary_units_read=0) -> dict:
    return {
        "db": db,
        "primaryMetrics": {"docUnitsRead": units_read},
        "secondaryMetrics": {"docUnitsRead": secondary_units_read},
        "docUnitsWritten": units_written,
        "cpuNanos": cpu_nanos,
    }


class FakeClock:
    """Monotonic clock that advances a fixed step on every call."""

    def __init__(self, start: float = 100.0, step: float = 1.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class FakeDispatcher:
    """
    Scripted stand-in for MongoDispatcher.

    Each command pops the next scripted reply; a scripted exception is raised
    instead of returned. The last reply repeats once the script runs out.
    """

    def __init__(self, *, top=(), server_status=(), operation_metrics=(), cores=4) -> None:
        self.label = "mongodb://localhost:27017"
        self._scripts = {
            "top": list(top),
            "server_status": list(server_status),
            "operation_metrics": list(operation_metrics),
        }
        self._last: dict[str, object] = {}
        self.calls: list[str] = []
        self.cores = cores
        self.closed = False

    def _next(self, command: str):
        self.calls.append(command)
        script = self._scripts[command]
        reply = script.pop(0) if script else self._last.get(command)
        self._last[command] = reply
        if isinstance(reply, BaseException):
            raise reply
        if reply is None:
            raise AssertionError(f"no reply scripted for {command}")
        return reply

    def top(self):
        return self._next("top")

    def server_status(self):
        return self._next("server_status")

    def operation_metrics(self) -> Iterator[dict]:
        records: Iterable = self._next("operation_metrics")
        yield from records

    def num_cores(self) -> int:
        self.calls.append("host_info")
        return self.cores

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_dbtop_logger():
    """Undo setup_logging so caplog sees dbtop records in every test."""
    logger = logging.getLogger(SERVICE)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
