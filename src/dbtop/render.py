"""Presentation of diff results as JSON documents or text grids."""

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from tabulate import DataRow, TableFormat, tabulate

from dbtop.diff import DiffResult
from dbtop.ranking import rank, resolve_list_count, truncate

UNSUPPORTED_JSON = '{"unsupported": true}'

# No rules, four spaces between columns.
GRID_FORMAT = TableFormat(
    lineabove=None,
    linebelowheader=None,
    linebetweenrows=None,
    linebelow=None,
    headerrow=DataRow("", "    ", ""),
    datarow=DataRow("", "    ", ""),
    padding=0,
    with_header_hide=None,
)


def _zone_suffix(text: str) -> str:
    if text.endswith("+00:00"):
        return text[: -len("+00:00")] + "Z"
    return text


def format_timestamp(moment: datetime | None = None) -> str:
    """Header timestamp, e.g. ``2024-05-01T12:30:00+02:00`` or ``...Z`` in UTC."""
    moment = moment or datetime.now().astimezone()
    return _zone_suffix(moment.isoformat(timespec="seconds"))


def format_rfc3339(moment: datetime) -> str:
    return _zone_suffix(moment.isoformat())


def to_json(diff: DiffResult) -> str:
    """Serialize the public fields of a diff result."""
    if not diff.supports_json:
        return UNSUPPORTED_JSON
    document = {"totals": diff.json_totals(), "time": format_rfc3339(diff.created)}
    return json.dumps(document)


def to_grid(
    diff: DiffResult,
    ranked: Sequence[tuple[str, Any]],
    list_count: int = 0,
    *,
    now: datetime | None = None,
) -> str:
    """Render one header row and up to ``list_count`` ranked rows."""
    rows = truncate(ranked, resolve_list_count(list_count))
    header = [*diff.grid_header(), format_timestamp(now)]
    body = [[*diff.grid_cells(key, delta), ""] for key, delta in rows]
    colalign = ("left",) + ("right",) * (len(header) - 1)
    return tabulate(
        body,
        headers=header,
        tablefmt=GRID_FORMAT,
        colalign=colalign if body else None,
        disable_numparse=True,
    )


def render(diff: DiffResult, *, json_output: bool, sort_latency: bool = False, list_count: int = 0) -> str:
    """Rank and render a diff result in the selected output format."""
    if json_output:
        return to_json(diff)
    return to_grid(diff, rank(diff, sort_latency), list_count)
