"""Ordering and truncation of diff entries for display."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from dbtop.diff import DiffResult

T = TypeVar("T")

DEFAULT_LIST_COUNT = 9


@dataclass(slots=True, frozen=True)
class SortEntry:
    """Transient projection of a diff entry used only while ranking."""

    key: str
    sort_metric: float
    tiebreak_metric: int


def compare_sort_entries(a: SortEntry, b: SortEntry) -> int:
    """
    Descending comparator over sort entries.

    A NaN metric sorts ahead of any number. Two NaNs count as a tie. Ties on
    the metric go to the larger current absolute value, then to the larger
    key, so the order is total.
    """
    a_nan = math.isnan(a.sort_metric)
    b_nan = math.isnan(b.sort_metric)
    if a_nan != b_nan:
        return -1 if a_nan else 1
    if not a_nan and a.sort_metric != b.sort_metric:
        return -1 if a.sort_metric > b.sort_metric else 1
    if a.tiebreak_metric != b.tiebreak_metric:
        return -1 if a.tiebreak_metric > b.tiebreak_metric else 1
    if a.key != b.key:
        return -1 if a.key > b.key else 1
    return 0


def sort_entries(entries: Sequence[SortEntry]) -> list[SortEntry]:
    return sorted(entries, key=cmp_to_key(compare_sort_entries))


def rank(diff: "DiffResult", sort_latency: bool = False) -> list[tuple[str, Any]]:
    """Order a diff result's entries, most significant first."""
    ordered = sort_entries(diff.sort_entries(sort_latency))
    return [(entry.key, diff.totals[entry.key]) for entry in ordered]


def truncate(entries: Sequence[T], limit: int) -> list[T]:
    """First ``limit`` entries; a limit of 0 keeps everything."""
    if limit <= 0:
        return list(entries)
    return list(entries[:limit])


def resolve_list_count(list_count: int) -> int:
    """Per-render entry limit; 0 selects the default."""
    return list_count if list_count > 0 else DEFAULT_LIST_COUNT
