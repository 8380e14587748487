"""Runtime options for dbtop."""

import os
from dataclasses import dataclass

from dbtop.errors import BadOptions
from dbtop.models import Shape
from dbtop.stat_fields import FIELDS_BY_KEY, HEADER_STYLES

DEFAULT_URI = "mongodb://localhost:27017"


def int_env(name: str, default: int, *, min_value: int | None = None) -> int:
    """
    Read an env var and convert to int.

    Falls back to ``default`` if the variable is unset or does not parse.
    """
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except (ValueError, TypeError):
        value = int(default)
    if min_value is not None and value < min_value:
        value = min_value
    return value


def env_uri() -> str:
    return os.getenv("DBTOP_URI", DEFAULT_URI)


def env_log_level() -> str:
    return os.getenv("DBTOP_LOG_LEVEL", "INFO").upper()


def split_fields(raw: str) -> tuple[str, ...]:
    return tuple(key.strip() for key in raw.split(",") if key.strip())


@dataclass(slots=True, frozen=True)
class Options:
    """User-selected options for a dbtop run."""

    uri: str = DEFAULT_URI
    sleep_time: int = 1  # seconds between polls
    locks: bool = False
    operation_metrics: bool = False
    stat: bool = False
    all_fields: bool = False
    fields: tuple[str, ...] = ()  # explicit status line columns
    headers: str = "short"
    human_readable: bool = True
    row_count: int = 0  # 0 polls forever
    list_count: int = 0  # 0 shows the default number of entries
    sort_latency: bool = False
    json: bool = False
    ignore_cpu: bool = False
    tui: bool = False
    log_level: str = "INFO"

    @property
    def shape(self) -> Shape:
        if self.locks:
            return Shape.LOCKS
        if self.operation_metrics:
            return Shape.OPERATION_METRICS
        if self.stat:
            return Shape.STAT
        return Shape.TOP

    @property
    def header_index(self) -> int:
        return HEADER_STYLES.index(self.headers)

    def validate(self) -> "Options":
        """Return self, or raise BadOptions for invalid combinations."""
        if sum((self.locks, self.operation_metrics, self.stat)) > 1:
            raise BadOptions("--locks, --operationmetrics and --stat are mutually exclusive")
        if self.sleep_time < 1:
            raise BadOptions(f"invalid sleep time: {self.sleep_time}")
        if self.row_count < 0:
            raise BadOptions(f"invalid row count: {self.row_count}")
        if self.list_count < 0:
            raise BadOptions(f"invalid list count: {self.list_count}")
        if self.json and self.tui:
            raise BadOptions("--json cannot be combined with --tui")
        unknown = [key for key in self.fields if key not in FIELDS_BY_KEY]
        if unknown:
            raise BadOptions(f"unknown status line field: {', '.join(unknown)}")
        if self.headers not in HEADER_STYLES:
            raise BadOptions(f"invalid header style: {self.headers}")
        return self
