"""Tests for JSON and grid rendering."""

import json
from datetime import datetime, timedelta, timezone

from conftest import metrics_record, top_entry, top_reply
from dbtop.decode import decode_operation_metrics, decode_top
from dbtop.diff import diff
from dbtop.ranking import rank
from dbtop.render import UNSUPPORTED_JSON, format_timestamp, render, to_grid, to_json

NOON_UTC = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


def many_namespaces(count: int, elapsed: float = 1.0):
    names = {f"db__c{i:02d}": top_entry() for i in range(count)}
    busy = {f"db__c{i:02d}": top_entry(total=(1000 * (i + 1), i + 1)) for i in range(count)}
    previous = decode_top(top_reply(**names), captured_at=0.0)
    current = decode_top(top_reply(**busy), captured_at=elapsed)
    return diff(current, previous)


class TestFormatTimestamp:
    """Tests for header timestamps."""

    def test_utc_uses_z(self):
        """Test UTC times end in Z."""
        assert format_timestamp(NOON_UTC) == "2024-05-01T12:30:00Z"

    def test_offset_kept(self):
        """Test non-UTC offsets are kept."""
        moment = NOON_UTC.astimezone(timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2024-05-01T14:30:00+02:00"


class TestToJson:
    """Tests for JSON rendering."""

    def test_totals_and_time(self):
        """Test the document carries totals and a timestamp."""
        result = many_namespaces(2)
        document = json.loads(to_json(result))

        assert set(document) == {"totals", "time"}
        assert document["totals"]["db.c01"]["total"] == {"time": 2, "count": 2}

    def test_unsupported_sentinel(self):
        """Test operation metrics render the fixed sentinel."""
        previous = decode_operation_metrics([metrics_record("x")], captured_at=0.0)
        current = decode_operation_metrics([metrics_record("x", cpu_nanos=1)], captured_at=1.0)

        assert to_json(diff(current, previous)) == UNSUPPORTED_JSON
        assert json.loads(UNSUPPORTED_JSON) == {"unsupported": True}

    def test_render_selects_json(self):
        """Test render returns JSON when asked."""
        assert json.loads(render(many_namespaces(1), json_output=True))["totals"]


class TestToGrid:
    """Tests for grid rendering."""

    def test_header_ends_with_timestamp(self):
        """Test the last header cell is the render timestamp."""
        result = many_namespaces(1)
        header = to_grid(result, rank(result), now=NOON_UTC).splitlines()[0]

        assert header.startswith("ns")
        assert header.rstrip().endswith("2024-05-01T12:30:00Z")

    def test_default_limit_of_nine(self):
        """Test a list count of 0 shows at most nine of twenty entries."""
        result = many_namespaces(20)
        lines = to_grid(result, rank(result), 0, now=NOON_UTC).splitlines()

        assert len(lines) == 1 + 9
        assert lines[1].startswith("db.c19")

    def test_explicit_limit(self):
        """Test a positive list count is honored."""
        result = many_namespaces(20)
        lines = to_grid(result, rank(result), 3, now=NOON_UTC).splitlines()
        assert len(lines) == 1 + 3

    def test_no_entries_prints_header(self):
        """Test an empty diff still renders its header line."""
        result = many_namespaces(0)
        lines = to_grid(result, rank(result), now=NOON_UTC).splitlines()
        assert len(lines) == 1
        assert "TOTAL(ms)" in lines[0]

    def test_zero_elapsed_renders_non_finite(self):
        """Test percentages over a zero interval print as +Inf or NaN."""
        result = many_namespaces(1, elapsed=0.0)
        text = to_grid(result, rank(result), now=NOON_UTC)

        assert "+Inf%" in text
        assert "+Infop/s" in text

    def test_zero_ops_renders_nan_latency(self):
        """Test 0ms over 0 ops prints NaN."""
        previous = decode_top(top_reply(a__b=top_entry()), captured_at=0.0)
        current = decode_top(top_reply(a__b=top_entry()), captured_at=1.0)
        result = diff(current, previous)

        assert "NaNms/op" in to_grid(result, rank(result), now=NOON_UTC)

    def test_columns_separated(self):
        """Test cells are separated by at least four spaces."""
        result = many_namespaces(1)
        row = to_grid(result, rank(result), now=NOON_UTC).splitlines()[1]
        assert "db.c00    " in row
