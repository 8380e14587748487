"""Data models for dbtop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Shape(Enum):
    """Reporting modes the server can be sampled in."""

    TOP = "top"
    LOCKS = "locks"
    OPERATION_METRICS = "operation_metrics"
    STAT = "stat"


@dataclass(slots=True, frozen=True)
class TopField:
    """Time and count for a single lock statistic of the top command."""

    time: int  # microseconds in a snapshot, milliseconds in a diff
    count: int


@dataclass(slots=True, frozen=True)
class NamespaceTopInfo:
    """Total/read/write usage of a single namespace."""

    total: TopField
    read: TopField
    write: TopField


@dataclass(slots=True, frozen=True)
class ReadWriteLockTimes:
    """Read/write lock times on a database (server keys R, W, r, w)."""

    read: int = 0
    write: int = 0
    read_lower: int = 0
    write_lower: int = 0


@dataclass(slots=True, frozen=True)
class LockStats:
    """Time spent acquiring and holding a lock."""

    time_locked_micros: ReadWriteLockTimes
    time_acquiring_micros: ReadWriteLockTimes
    acquire_count: ReadWriteLockTimes | None = None


@dataclass(slots=True, frozen=True)
class LockDelta:
    """Lock time differences (milliseconds) for one database."""

    read: int
    write: int

    @property
    def total(self) -> int:
        return self.read + self.write


@dataclass(slots=True, frozen=True)
class MemberMetrics:
    """Per-member (primary or secondary) read metrics of a database."""

    doc_bytes_read: int = 0
    doc_units_read: int = 0
    idx_entry_bytes_read: int = 0
    idx_entry_units_read: int = 0
    keys_sorted: int = 0
    sorter_spills: int = 0
    doc_units_returned: int = 0
    cursor_seeks: int = 0


@dataclass(slots=True, frozen=True)
class OperationMetricsEntry:
    """One record of the $operationMetrics aggregation."""

    db: str
    primary_metrics: MemberMetrics
    secondary_metrics: MemberMetrics
    doc_bytes_written: int = 0
    doc_units_written: int = 0
    idx_entry_bytes_written: int = 0
    idx_entry_units_written: int = 0
    cpu_nanos: int = 0

    @property
    def read_doc_units(self) -> int:
        return self.primary_metrics.doc_units_read + self.secondary_metrics.doc_units_read

    @property
    def total_doc_units(self) -> int:
        return self.read_doc_units + self.doc_units_written


@dataclass(slots=True, frozen=True)
class OperationMetricsDelta:
    """Difference between two operation metrics records of one database."""

    primary_metrics: MemberMetrics
    secondary_metrics: MemberMetrics
    doc_bytes_written: int
    doc_units_written: int
    idx_entry_bytes_written: int
    idx_entry_units_written: int
    cpu_nanos: int

    @property
    def read_doc_units(self) -> int:
        return self.primary_metrics.doc_units_read + self.secondary_metrics.doc_units_read

    @property
    def total_doc_units(self) -> int:
        return self.read_doc_units + self.doc_units_written

    @property
    def total(self) -> int:
        return self.total_doc_units


@dataclass(slots=True, frozen=True)
class TopSnapshot:
    """Immutable capture of the top command, keyed by namespace."""

    time: float  # monotonic seconds
    totals: dict[str, NamespaceTopInfo]
    num_cores: int = 1

    shape = Shape.TOP


@dataclass(slots=True, frozen=True)
class LockUsageSnapshot:
    """Immutable capture of serverStatus lock information, keyed by database."""

    time: float
    locks: dict[str, LockStats]

    shape = Shape.LOCKS


@dataclass(slots=True, frozen=True)
class OperationMetricsSnapshot:
    """Immutable capture of $operationMetrics, keyed by database name."""

    time: float
    entries: dict[str, OperationMetricsEntry]
    num_cores: int = 1

    shape = Shape.OPERATION_METRICS


@dataclass(slots=True, frozen=True)
class ServerStatusSnapshot:
    """Raw serverStatus document kept whole for the status line readers."""

    time: float
    document: dict[str, Any] = field(default_factory=dict)

    shape = Shape.STAT

    @property
    def host(self) -> str:
        return str(self.document.get("host", ""))


Snapshot = TopSnapshot | LockUsageSnapshot | OperationMetricsSnapshot | ServerStatusSnapshot
