"""Diff engine: deltas between two snapshots of the same shape.

Every diff result is a ``DiffResult``: it knows how to project itself for
ranking (``sort_entries``) and how to lay out its JSON and grid forms
(``json_totals``, ``grid_header``, ``grid_cells``). The poll loop only ever
talks to this interface, so it does not care which shape it is sampling.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from dbtop.models import (
    LockDelta,
    LockUsageSnapshot,
    MemberMetrics,
    NamespaceTopInfo,
    OperationMetricsDelta,
    OperationMetricsEntry,
    OperationMetricsSnapshot,
    ServerStatusSnapshot,
    Shape,
    Snapshot,
    TopField,
    TopSnapshot,
)
from dbtop.ranking import SortEntry
from dbtop.stat_fields import ReaderConfig, active_fields, capabilities, key_names, selected_fields
from dbtop.units import format_float, micros_to_millis, per_second, percent_of, safe_div


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass(slots=True, frozen=True)
class DiffResult(ABC):
    """Deltas keyed by entity, the elapsed time and the current snapshot."""

    totals: dict[str, Any]
    elapsed: float  # seconds
    current: Any
    created: datetime = field(default_factory=_now, compare=False)

    shape: ClassVar[Shape]
    supports_json: ClassVar[bool] = True

    @abstractmethod
    def sort_entries(self, sort_latency: bool = False) -> list[SortEntry]:
        """Project every entry for ranking."""

    @abstractmethod
    def grid_header(self) -> list[str]:
        """Column titles, without the trailing timestamp column."""

    @abstractmethod
    def grid_cells(self, key: str, delta: Any) -> list[str]:
        """Formatted cells of one row, without the trailing blank column."""

    @abstractmethod
    def json_totals(self) -> dict[str, Any]:
        """JSON-ready ``totals`` member."""

    @property
    def elapsed_millis(self) -> float:
        return self.elapsed * 1000


# Namespace top


def _top_field_delta(current: TopField, previous: TopField) -> TopField:
    return TopField(
        time=micros_to_millis(current.time - previous.time),
        count=current.count - previous.count,
    )


def _top_field_json(value: TopField) -> dict[str, int]:
    return {"time": value.time, "count": value.count}


@dataclass(slots=True, frozen=True)
class TopDiff(DiffResult):
    """Per-namespace total/read/write time (ms) and count deltas."""

    num_cores: int = 1

    shape: ClassVar[Shape] = Shape.TOP

    def sort_entries(self, sort_latency: bool = False) -> list[SortEntry]:
        entries = []
        for ns, delta in self.totals.items():
            if sort_latency:
                metric = safe_div(delta.total.time, delta.total.count)
            else:
                metric = float(delta.total.time)
            entries.append(SortEntry(ns, metric, self.current.totals[ns].total.time))
        return entries

    def grid_header(self) -> list[str]:
        return [
            "ns",
            "TOTAL(ms)",
            "total%",
            "total%/core",
            "time/op",
            "op/s",
            "READ(ms)",
            "read%",
            "time/op",
            "op/s",
            "WRITE(ms)",
            "write%",
            "time/op",
            "op/s",
        ]

    def _field_cells(self, value: TopField, per_core: bool = False) -> list[str]:
        share = percent_of(value.time, self.elapsed_millis)
        cells = [f"{value.time}ms", f"{format_float(share)}%"]
        if per_core:
            cells.append(f"{format_float(safe_div(share, self.num_cores), 2)}%")
        cells.append(f"{format_float(safe_div(value.time, value.count))}ms/op")
        cells.append(f"{format_float(per_second(value.count, self.elapsed))}op/s")
        return cells

    def grid_cells(self, key: str, delta: NamespaceTopInfo) -> list[str]:
        return [
            key,
            *self._field_cells(delta.total, per_core=True),
            *self._field_cells(delta.read),
            *self._field_cells(delta.write),
        ]

    def json_totals(self) -> dict[str, Any]:
        return {
            ns: {
                "total": _top_field_json(delta.total),
                "read": _top_field_json(delta.read),
                "write": _top_field_json(delta.write),
            }
            for ns, delta in self.totals.items()
        }


def diff_top(current: TopSnapshot, previous: TopSnapshot) -> TopDiff:
    totals = {}
    for ns, prev in previous.totals.items():
        cur = current.totals.get(ns)
        if cur is None:
            continue
        totals[ns] = NamespaceTopInfo(
            total=_top_field_delta(cur.total, prev.total),
            read=_top_field_delta(cur.read, prev.read),
            write=_top_field_delta(cur.write, prev.write),
        )
    return TopDiff(
        totals=totals,
        elapsed=current.time - previous.time,
        current=current,
        num_cores=previous.num_cores,
    )


# Lock usage


@dataclass(slots=True, frozen=True)
class LockUsageDiff(DiffResult):
    """Per-database read/write lock time deltas (ms)."""

    shape: ClassVar[Shape] = Shape.LOCKS

    def sort_entries(self, sort_latency: bool = False) -> list[SortEntry]:
        entries = []
        for db, delta in self.totals.items():
            locked = self.current.locks[db].time_locked_micros
            entries.append(SortEntry(db, float(delta.total), locked.read_lower + locked.write_lower))
        return entries

    def grid_header(self) -> list[str]:
        return ["db", "total(ms)", "read(ms)", "write(ms)"]

    def grid_cells(self, key: str, delta: LockDelta) -> list[str]:
        return [key, f"{delta.total}ms", f"{delta.read}ms", f"{delta.write}ms"]

    def json_totals(self) -> dict[str, Any]:
        return {db: {"read": d.read, "write": d.write} for db, d in self.totals.items()}


def diff_locks(current: LockUsageSnapshot, previous: LockUsageSnapshot) -> LockUsageDiff:
    totals = {}
    for db, prev in previous.locks.items():
        cur = current.locks.get(db)
        if cur is None:
            continue
        before = prev.time_locked_micros
        after = cur.time_locked_micros
        totals[db] = LockDelta(
            read=micros_to_millis(
                after.read + after.read_lower - (before.read + before.read_lower)
            ),
            write=micros_to_millis(
                after.write + after.write_lower - (before.write + before.write_lower)
            ),
        )
    return LockUsageDiff(totals=totals, elapsed=current.time - previous.time, current=current)


# Operation metrics


def _member_delta(current: MemberMetrics, previous: MemberMetrics) -> MemberMetrics:
    return MemberMetrics(
        doc_bytes_read=current.doc_bytes_read - previous.doc_bytes_read,
        doc_units_read=current.doc_units_read - previous.doc_units_read,
        idx_entry_bytes_read=current.idx_entry_bytes_read - previous.idx_entry_bytes_read,
        idx_entry_units_read=current.idx_entry_units_read - previous.idx_entry_units_read,
        keys_sorted=current.keys_sorted - previous.keys_sorted,
        sorter_spills=current.sorter_spills - previous.sorter_spills,
        doc_units_returned=current.doc_units_returned - previous.doc_units_returned,
        cursor_seeks=current.cursor_seeks - previous.cursor_seeks,
    )


def _entry_delta(current: OperationMetricsEntry, previous: OperationMetricsEntry) -> OperationMetricsDelta:
    return OperationMetricsDelta(
        primary_metrics=_member_delta(current.primary_metrics, previous.primary_metrics),
        secondary_metrics=_member_delta(current.secondary_metrics, previous.secondary_metrics),
        doc_bytes_written=current.doc_bytes_written - previous.doc_bytes_written,
        doc_units_written=current.doc_units_written - previous.doc_units_written,
        idx_entry_bytes_written=current.idx_entry_bytes_written - previous.idx_entry_bytes_written,
        idx_entry_units_written=current.idx_entry_units_written - previous.idx_entry_units_written,
        cpu_nanos=current.cpu_nanos - previous.cpu_nanos,
    )


@dataclass(slots=True, frozen=True)
class OperationMetricsDiff(DiffResult):
    """Per-database resource consumption deltas."""

    num_cores: int = 1

    shape: ClassVar[Shape] = Shape.OPERATION_METRICS
    supports_json: ClassVar[bool] = False

    def sort_entries(self, sort_latency: bool = False) -> list[SortEntry]:
        entries = []
        for db, delta in self.totals.items():
            current = self.current.entries[db]
            if sort_latency:
                entries.append(SortEntry(db, float(delta.total_doc_units), current.total_doc_units))
            else:
                entries.append(SortEntry(db, float(delta.cpu_nanos), current.cpu_nanos))
        return entries

    def grid_header(self) -> list[str]:
        return ["ns", "TOTAL", "total Units/s", "total RUnits/s", "total WUnits/s"]

    def grid_cells(self, key: str, delta: OperationMetricsDelta) -> list[str]:
        return [
            key,
            "",
            f"{format_float(per_second(delta.total_doc_units, self.elapsed))}Units/s",
            f"{format_float(per_second(delta.read_doc_units, self.elapsed))}RUnits/s",
            f"{format_float(per_second(delta.doc_units_written, self.elapsed))}WUnits/s",
        ]

    def json_totals(self) -> dict[str, Any]:
        return {}


def diff_operation_metrics(
    current: OperationMetricsSnapshot, previous: OperationMetricsSnapshot
) -> OperationMetricsDiff:
    totals = {
        db: _entry_delta(current.entries[db], prev)
        for db, prev in previous.entries.items()
        if db in current.entries
    }
    return OperationMetricsDiff(
        totals=totals,
        elapsed=current.time - previous.time,
        current=current,
        num_cores=previous.num_cores,
    )


# Server status line


@dataclass(slots=True, frozen=True)
class StatusLineDiff(DiffResult):
    """One status line per host, cells keyed by field key."""

    columns: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()

    shape: ClassVar[Shape] = Shape.STAT

    def sort_entries(self, sort_latency: bool = False) -> list[SortEntry]:
        return [SortEntry(host, 0.0, 0) for host in self.totals]

    def grid_header(self) -> list[str]:
        return list(self.headers)

    def grid_cells(self, key: str, delta: dict[str, str]) -> list[str]:
        return [delta[column] for column in self.columns]

    def json_totals(self) -> dict[str, Any]:
        return {host: dict(cells) for host, cells in self.totals.items()}


def diff_status(
    current: ServerStatusSnapshot,
    previous: ServerStatusSnapshot,
    config: ReaderConfig | None = None,
    *,
    all_fields: bool = False,
    keys: tuple[str, ...] = (),
    header_index: int = 0,
) -> StatusLineDiff:
    config = config or ReaderConfig()
    elapsed = current.time - previous.time
    if keys:
        fields = selected_fields(keys)
    else:
        fields = active_fields(capabilities(current.document, all_fields=all_fields))
    names = key_names(header_index)
    new, old = current.document, previous.document
    cells = {f.key: f.read(config, new, old, elapsed) for f in fields}
    return StatusLineDiff(
        totals={current.host: cells},
        elapsed=elapsed,
        current=current,
        columns=tuple(f.key for f in fields),
        headers=tuple(names[f.key] for f in fields),
    )


_DIFFERS = {
    TopSnapshot: diff_top,
    LockUsageSnapshot: diff_locks,
    OperationMetricsSnapshot: diff_operation_metrics,
    ServerStatusSnapshot: diff_status,
}


def diff(current: Snapshot, previous: Snapshot, **options: Any) -> DiffResult:
    """Compute the deltas from ``previous`` to ``current``.

    Only keys present in both snapshots appear in the result. Deltas are not
    clamped, so a counter reset shows up as a negative value.
    """
    if type(current) is not type(previous):
        raise TypeError(
            f"cannot diff {type(current).__name__} against {type(previous).__name__}"
        )
    differ = _DIFFERS[type(current)]
    return differ(current, previous, **options)
