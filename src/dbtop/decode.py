"""Turn raw administrative command replies into typed snapshots.

The decoder never logs and never retries: every problem is raised to the
caller as a DecodeError (or UnsupportedFeature) and no partial snapshot is
ever returned.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from bson.errors import BSONError
from pymongo.errors import PyMongoError

from dbtop.errors import DecodeError, UnsupportedFeature
from dbtop.models import (
    LockStats,
    LockUsageSnapshot,
    MemberMetrics,
    NamespaceTopInfo,
    OperationMetricsEntry,
    OperationMetricsSnapshot,
    ReadWriteLockTimes,
    ServerStatusSnapshot,
    Shape,
    Snapshot,
    TopField,
    TopSnapshot,
)

LOCKS_UNSUPPORTED = "server does not support reporting lock information"

# (attribute, server key) pairs of a per-member operation metrics document
_MEMBER_FIELDS = (
    ("doc_bytes_read", "docBytesRead"),
    ("doc_units_read", "docUnitsRead"),
    ("idx_entry_bytes_read", "idxEntryBytesRead"),
    ("idx_entry_units_read", "idxEntryUnitsRead"),
    ("keys_sorted", "keysSorted"),
    ("sorter_spills", "sorterSpills"),
    ("doc_units_returned", "docUnitsReturned"),
    ("cursor_seeks", "cursorSeeks"),
)

_ENTRY_FIELDS = (
    ("doc_bytes_written", "docBytesWritten"),
    ("doc_units_written", "docUnitsWritten"),
    ("idx_entry_bytes_written", "idxEntryBytesWritten"),
    ("idx_entry_units_written", "idxEntryUnitsWritten"),
    ("cpu_nanos", "cpuNanos"),
)


def _as_int(value: Any, name: str) -> int:
    """Coerce a numeric BSON value to int, rejecting anything else."""
    if isinstance(value, bool):
        raise DecodeError(f"field {name!r} is not numeric: {value!r}")
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise DecodeError(f"field {name!r} is not numeric: {value!r}")


def _sub_document(doc: Mapping[str, Any], key: str, context: str) -> Mapping[str, Any]:
    value = doc.get(key)
    if not isinstance(value, Mapping):
        raise DecodeError(f"{context}: missing or invalid {key!r} document")
    return value


def _top_field(doc: Mapping[str, Any], key: str, ns: str) -> TopField:
    sub = _sub_document(doc, key, ns)
    return TopField(
        time=_as_int(sub.get("time", 0), f"{ns}.{key}.time"),
        count=_as_int(sub.get("count", 0), f"{ns}.{key}.count"),
    )


def decode_top(reply: Mapping[str, Any], *, captured_at: float, num_cores: int = 1) -> TopSnapshot:
    """Decode the reply of the ``top`` command."""
    totals = reply.get("totals")
    if not isinstance(totals, Mapping):
        raise DecodeError("top reply has no 'totals' document")

    decoded: dict[str, NamespaceTopInfo] = {}
    for ns, info in totals.items():
        if ns == "note":
            continue  # free-text annotation, not a namespace
        if not isinstance(info, Mapping):
            raise DecodeError(f"{ns}: expected a document, got {type(info).__name__}")
        decoded[ns] = NamespaceTopInfo(
            total=_top_field(info, "total", ns),
            read=_top_field(info, "readLock", ns),
            write=_top_field(info, "writeLock", ns),
        )
    return TopSnapshot(time=captured_at, totals=decoded, num_cores=num_cores)


def _lock_times(doc: Mapping[str, Any] | None, name: str) -> ReadWriteLockTimes:
    if doc is None:
        return ReadWriteLockTimes()
    if not isinstance(doc, Mapping):
        raise DecodeError(f"{name}: expected a document, got {type(doc).__name__}")
    return ReadWriteLockTimes(
        read=_as_int(doc.get("R", 0), f"{name}.R"),
        write=_as_int(doc.get("W", 0), f"{name}.W"),
        read_lower=_as_int(doc.get("r", 0), f"{name}.r"),
        write_lower=_as_int(doc.get("w", 0), f"{name}.w"),
    )


def decode_server_status(reply: Mapping[str, Any], *, captured_at: float) -> LockUsageSnapshot:
    """Decode the per-database lock section of a ``serverStatus`` reply."""
    locks = reply.get("locks")
    if locks is None:
        raise UnsupportedFeature(LOCKS_UNSUPPORTED)
    if not isinstance(locks, Mapping):
        raise DecodeError("serverStatus 'locks' is not a document")

    decoded: dict[str, LockStats] = {}
    for db, info in locks.items():
        if not isinstance(info, Mapping):
            raise DecodeError(f"{db}: expected a document, got {type(info).__name__}")
        if info.get("acquireCount") is not None:
            # per-operation acquire counts instead of aggregate timings
            raise UnsupportedFeature(LOCKS_UNSUPPORTED)
        decoded[db] = LockStats(
            time_locked_micros=_lock_times(info.get("timeLockedMicros"), f"{db}.timeLockedMicros"),
            time_acquiring_micros=_lock_times(
                info.get("timeAcquiringMicros"), f"{db}.timeAcquiringMicros"
            ),
        )
    return LockUsageSnapshot(time=captured_at, locks=decoded)


def _member_metrics(doc: Mapping[str, Any] | None, name: str) -> MemberMetrics:
    if doc is None:
        return MemberMetrics()
    if not isinstance(doc, Mapping):
        raise DecodeError(f"{name}: expected a document, got {type(doc).__name__}")
    return MemberMetrics(
        **{attr: _as_int(doc.get(key, 0), f"{name}.{key}") for attr, key in _MEMBER_FIELDS}
    )


def decode_operation_metrics_entry(record: Mapping[str, Any]) -> OperationMetricsEntry:
    """Decode a single $operationMetrics record."""
    if not isinstance(record, Mapping):
        raise DecodeError(f"expected a document, got {type(record).__name__}")
    db = record.get("db")
    if not isinstance(db, str):
        raise DecodeError("record has no database name")
    return OperationMetricsEntry(
        db=db,
        primary_metrics=_member_metrics(record.get("primaryMetrics"), f"{db}.primaryMetrics"),
        secondary_metrics=_member_metrics(record.get("secondaryMetrics"), f"{db}.secondaryMetrics"),
        **{attr: _as_int(record.get(key, 0), f"{db}.{key}") for attr, key in _ENTRY_FIELDS},
    )


def decode_operation_metrics(
    cursor: Iterable[Mapping[str, Any]], *, captured_at: float, num_cores: int = 1
) -> OperationMetricsSnapshot:
    """Drain an $operationMetrics cursor into a snapshot keyed by database."""
    entries: dict[str, OperationMetricsEntry] = {}
    records = iter(cursor)
    try:
        while True:
            try:
                record = next(records)
            except StopIteration:
                break
            except (PyMongoError, BSONError) as exc:
                raise DecodeError(f"failure reading from cursor, err: {exc}") from exc
            try:
                entry = decode_operation_metrics_entry(record)
            except DecodeError as exc:
                raise DecodeError(f"failure decoding from cursor, err: {exc}") from exc
            entries[entry.db] = entry
    finally:
        # release the server cursor and deadline even when aborting early
        close = getattr(records, "close", None)
        if close is not None:
            close()
    return OperationMetricsSnapshot(time=captured_at, entries=entries, num_cores=num_cores)


def decode_status_document(reply: Mapping[str, Any], *, captured_at: float) -> ServerStatusSnapshot:
    """Keep a whole ``serverStatus`` reply for the status line readers."""
    if not isinstance(reply, Mapping):
        raise DecodeError(f"expected a document, got {type(reply).__name__}")
    return ServerStatusSnapshot(time=captured_at, document=dict(reply))


def decode(
    reply: Any, shape: Shape, *, captured_at: float, num_cores: int = 1
) -> Snapshot:
    """Decode ``reply`` according to ``shape``."""
    if shape is Shape.TOP:
        return decode_top(reply, captured_at=captured_at, num_cores=num_cores)
    if shape is Shape.LOCKS:
        return decode_server_status(reply, captured_at=captured_at)
    if shape is Shape.OPERATION_METRICS:
        return decode_operation_metrics(reply, captured_at=captured_at, num_cores=num_cores)
    return decode_status_document(reply, captured_at=captured_at)
