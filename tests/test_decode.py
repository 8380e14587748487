"""Tests for decoding server replies into snapshots."""

import pytest
from bson.errors import InvalidBSON
from pymongo.errors import AutoReconnect

from conftest import lock_entry, metrics_record, status_reply, top_entry, top_reply
from dbtop.decode import (
    LOCKS_UNSUPPORTED,
    decode,
    decode_operation_metrics,
    decode_server_status,
    decode_top,
)
from dbtop.errors import DecodeError, UnsupportedFeature
from dbtop.models import (
    LockUsageSnapshot,
    OperationMetricsSnapshot,
    ServerStatusSnapshot,
    Shape,
    TopField,
    TopSnapshot,
)


class TestDecodeTop:
    """Tests for the top command decoder."""

    def test_decodes_namespaces(self):
        """Test each namespace maps to total/read/write fields."""
        reply = top_reply(app__users=top_entry(total=(3000, 15), read=(1000, 10), write=(2000, 5)))
        snapshot = decode_top(reply, captured_at=5.0, num_cores=8)

        assert snapshot.time == 5.0
        assert snapshot.num_cores == 8
        info = snapshot.totals["app.users"]
        assert info.total == TopField(3000, 15)
        assert info.read == TopField(1000, 10)
        assert info.write == TopField(2000, 5)

    def test_note_key_is_skipped(self):
        """Test the free-text note entry is not treated as a namespace."""
        reply = {"totals": {"note": "all times in microseconds", "a.b": top_entry()}}
        snapshot = decode_top(reply, captured_at=0.0)
        assert list(snapshot.totals) == ["a.b"]

    def test_float_counters_accepted(self):
        """Test integral doubles decode as integers."""
        reply = top_reply(a__b=top_entry(total=(2000.0, 4.0)))
        assert decode_top(reply, captured_at=0.0).totals["a.b"].total == TopField(2000, 4)

    def test_missing_totals_fails(self):
        """Test a reply without totals is rejected."""
        with pytest.raises(DecodeError):
            decode_top({"ok": 1.0}, captured_at=0.0)

    def test_missing_lock_document_fails(self):
        """Test a namespace without a writeLock document is rejected."""
        entry = top_entry()
        del entry["writeLock"]
        with pytest.raises(DecodeError):
            decode_top({"totals": {"a.b": entry}}, captured_at=0.0)

    def test_non_numeric_counter_fails(self):
        """Test a string counter is a decode error, not a partial snapshot."""
        entry = top_entry()
        entry["total"]["time"] = "lots"
        with pytest.raises(DecodeError):
            decode_top({"totals": {"a.b": entry}}, captured_at=0.0)


class TestDecodeServerStatus:
    """Tests for the lock usage decoder."""

    def test_decodes_lock_times(self):
        """Test timeLockedMicros keys land in read/write fields."""
        reply = status_reply(app=lock_entry(R=1, W=2, r=3, w=4))
        snapshot = decode_server_status(reply, captured_at=1.0)

        locked = snapshot.locks["app"].time_locked_micros
        assert (locked.read, locked.write, locked.read_lower, locked.write_lower) == (1, 2, 3, 4)
        assert snapshot.locks["app"].acquire_count is None

    def test_missing_locks_unsupported(self):
        """Test a server without lock information is unsupported."""
        with pytest.raises(UnsupportedFeature, match=LOCKS_UNSUPPORTED):
            decode_server_status({"host": "x"}, captured_at=0.0)

    def test_acquire_count_unsupported(self):
        """Test per-operation acquire counts are an unsupported lock format."""
        entry = lock_entry()
        entry["acquireCount"] = {"r": 10}
        reply = status_reply(app=lock_entry(), Global=entry)

        with pytest.raises(UnsupportedFeature):
            decode_server_status(reply, captured_at=0.0)

    def test_unsupported_is_a_decode_error(self):
        """Test callers catching DecodeError also see UnsupportedFeature."""
        assert issubclass(UnsupportedFeature, DecodeError)


class TestDecodeOperationMetrics:
    """Tests for the $operationMetrics cursor decoder."""

    def test_keyed_by_database(self):
        """Test records are keyed by their db name."""
        cursor = [metrics_record("a", cpu_nanos=5), metrics_record("b", units_written=3)]
        snapshot = decode_operation_metrics(cursor, captured_at=2.0, num_cores=2)

        assert set(snapshot.entries) == {"a", "b"}
        assert snapshot.entries["a"].cpu_nanos == 5
        assert snapshot.entries["b"].doc_units_written == 3
        assert snapshot.num_cores == 2

    def test_missing_member_metrics_default_to_zero(self):
        """Test absent primary/secondary documents decode as zeros."""
        snapshot = decode_operation_metrics([{"db": "a"}], captured_at=0.0)
        assert snapshot.entries["a"].read_doc_units == 0

    def test_cursor_failure_wrapped(self):
        """Test a driver error mid-iteration becomes a reading failure."""

        def cursor():
            yield metrics_record("a")
            raise AutoReconnect("connection reset")

        with pytest.raises(DecodeError, match="failure reading from cursor"):
            decode_operation_metrics(cursor(), captured_at=0.0)

    def test_invalid_bson_wrapped(self):
        """Test a reply the driver cannot decode becomes a reading failure."""

        def cursor():
            yield metrics_record("a")
            raise InvalidBSON("invalid utf-8 in document")

        with pytest.raises(DecodeError, match="failure reading from cursor") as info:
            decode_operation_metrics(cursor(), captured_at=0.0)
        assert isinstance(info.value.__cause__, InvalidBSON)

    def test_cursor_closed_on_bad_record(self):
        """Test the cursor is released when a record fails to decode."""
        closed = []

        def cursor():
            try:
                yield {"cpuNanos": 1}
                yield metrics_record("b")
            finally:
                closed.append(True)

        with pytest.raises(DecodeError):
            decode_operation_metrics(cursor(), captured_at=0.0)
        assert closed == [True]

    def test_bad_record_wrapped(self):
        """Test an undecodable record becomes a decoding failure."""
        with pytest.raises(DecodeError, match="failure decoding from cursor"):
            decode_operation_metrics([{"cpuNanos": 1}], captured_at=0.0)


class TestDispatch:
    """Tests for shape-based dispatch."""

    def test_dispatch_by_shape(self):
        """Test each shape yields its own snapshot type."""
        assert isinstance(decode(top_reply(), Shape.TOP, captured_at=0.0), TopSnapshot)
        assert isinstance(decode(status_reply(), Shape.LOCKS, captured_at=0.0), LockUsageSnapshot)
        assert isinstance(
            decode([], Shape.OPERATION_METRICS, captured_at=0.0), OperationMetricsSnapshot
        )
        assert isinstance(decode({"host": "h"}, Shape.STAT, captured_at=0.0), ServerStatusSnapshot)
