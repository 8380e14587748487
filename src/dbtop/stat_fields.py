"""Declarative registry of server status line columns.

Each column is a ``StatField`` record: its key, its display names, the
capability flags that activate it and a reader that turns two serverStatus
documents into a cell. Adding a column means adding a record; nothing else
inspects the field list.
"""

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Flag, auto
from typing import Any

from dbtop.units import (
    average,
    format_bits,
    format_bytes,
    format_megabytes,
    percentage,
    truncating_rate,
)

Document = Mapping[str, Any]


class Capability(Flag):
    """Conditions under which a column is shown."""

    ALWAYS = auto()
    METRICS = auto()
    REPL = auto()
    LOCKS = auto()
    COLLECTION_LOCKS = auto()
    OP_LATENCIES = auto()
    ALL = auto()
    MMAP = auto()
    WT = auto()


@dataclass(slots=True, frozen=True)
class ReaderConfig:
    cpu_count: int = 1
    human_readable: bool = True


Reader = Callable[[ReaderConfig, Document, Document, float], str]


@dataclass(slots=True, frozen=True)
class StatField:
    """One column of the status line."""

    key: str
    names: tuple[str, str, str]  # short, long, deprecated
    flags: Capability
    read: Reader

    def is_active(self, capabilities: Capability) -> bool:
        return bool(self.flags & capabilities)


def lookup(doc: Document | None, path: str, default: Any = None) -> Any:
    """Follow a dotted path through nested documents."""
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return default
        value = value[part]
    return value


def _num(doc: Document | None, path: str) -> int:
    value = lookup(doc, path, 0)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return int(value)


def _truthy(value: Any) -> bool:
    if isinstance(value, int | float):
        return value != 0
    return bool(value)


_MONGOS_PROCESS = re.compile(r"^.*\bmongos\b[^\\/]*(\s.*)?$")


def storage_engine(doc: Document) -> str:
    return lookup(doc, "storageEngine.name") or "mmapv1"


def is_mongos(doc: Document) -> bool:
    return doc.get("shardCursorType") is not None or bool(
        _MONGOS_PROCESS.match(str(doc.get("process", "")))
    )


def is_repl_set(doc: Document) -> bool:
    repl = doc.get("repl")
    if not isinstance(repl, Mapping):
        return False
    return repl.get("isreplicaset") is True or bool(repl.get("setName"))


def _uses_acquire_counts(doc: Document) -> bool:
    return lookup(doc, "locks.Global.acquireCount") is not None


def has_locks(doc: Document) -> bool:
    if is_mongos(doc) or not isinstance(doc.get("locks"), Mapping):
        return False
    if _uses_acquire_counts(doc):
        return False
    return bool(doc["locks"]) or doc.get("globalLock") is not None


def has_collection_locks(doc: Document) -> bool:
    return (
        not is_mongos(doc)
        and _uses_acquire_counts(doc)
        and lookup(doc, "locks.Collection.acquireWaitCount") is not None
    )


def capabilities(doc: Document, *, all_fields: bool = False) -> Capability:
    """Derive the active capability set from a serverStatus document."""
    caps = Capability.ALWAYS
    engine = storage_engine(doc)
    if engine == "wiredTiger":
        caps |= Capability.WT
    if engine == "mmapv1":
        caps |= Capability.MMAP
    if isinstance(doc.get("metrics"), Mapping):
        caps |= Capability.METRICS
    if isinstance(doc.get("opLatencies"), Mapping):
        caps |= Capability.OP_LATENCIES
    if is_repl_set(doc):
        caps |= Capability.REPL
    if has_locks(doc):
        caps |= Capability.LOCKS
    if has_collection_locks(doc):
        caps |= Capability.COLLECTION_LOCKS
    if all_fields:
        caps |= Capability.ALL
    return caps


# Readers


def _rate(path: str) -> Reader:
    def read(_c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        return str(truncating_rate(_num(new, path), _num(old, path), elapsed))

    return read


def _opcount(name: str, both: bool = False) -> Reader:
    def read(_c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        opcount = repl = 0
        if isinstance(new.get("opcounters"), Mapping) and isinstance(old.get("opcounters"), Mapping):
            opcount = truncating_rate(
                _num(new, f"opcounters.{name}"), _num(old, f"opcounters.{name}"), elapsed
            )
        if isinstance(new.get("opcountersRepl"), Mapping) and isinstance(
            old.get("opcountersRepl"), Mapping
        ):
            repl = truncating_rate(
                _num(new, f"opcountersRepl.{name}"), _num(old, f"opcountersRepl.{name}"), elapsed
            )
        if both or (opcount > 0 and repl > 0):
            return f"{opcount}|{repl}"
        if opcount > 0:
            return str(opcount)
        if repl > 0:
            return f"*{repl}"
        return "*0"

    return read


def _wt(reader: Reader) -> Reader:
    """Only read when both samples carry wiredTiger statistics."""

    def read(c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        if not isinstance(new.get("wiredTiger"), Mapping) or not isinstance(
            old.get("wiredTiger"), Mapping
        ):
            return ""
        return reader(c, new, old, elapsed)

    return read


def _metrics(reader: Reader) -> Reader:
    def read(c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        if not isinstance(new.get("metrics"), Mapping) or not isinstance(old.get("metrics"), Mapping):
            return ""
        return reader(c, new, old, elapsed)

    return read


_CACHE = "wiredTiger.cache"


def _cache_ratio(path: str) -> Reader:
    def read(c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
        if not isinstance(new.get("wiredTiger"), Mapping):
            return ""
        maximum = _num(new, f"{_CACHE}.maximum bytes configured")
        if maximum == 0:
            return ""
        value = f"{100 * _num(new, path) / maximum:.1f}"
        return value + "%" if c.human_readable else value

    return read


def _cache_bytes(path: str) -> Reader:
    def read(c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        amount = truncating_rate(_num(new, path), _num(old, path), elapsed)
        return format_bytes(amount) if c.human_readable else str(amount)

    return _wt(read)


def _delta(new: Document, old: Document, path: str) -> int:
    return _num(new, path) - _num(old, path)


def read_host(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    return str(new.get("host", ""))


def read_storage_engine(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    return storage_engine(new)


def read_page_hit_ratio(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    requested = _delta(new, old, f"{_CACHE}.pages requested from the cache")
    read_into = _delta(new, old, f"{_CACHE}.pages read into cache")
    return f"{percentage(requested - read_into, requested):.1f}%"


def read_cache_percentages(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    held = _num(new, f"{_CACHE}.pages currently held in the cache")
    parts = [
        percentage(_delta(new, old, f"{_CACHE}.{name}"), held)
        for name in (
            "pages read into cache",
            "pages written from cache",
            "modified pages evicted",
            "unmodified pages evicted",
        )
    ]
    return "|".join(f"{part:.1f}%" for part in parts)


def read_flushes(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    if isinstance(new.get("wiredTiger"), Mapping) and isinstance(old.get("wiredTiger"), Mapping):
        return str(_delta(new, old, "wiredTiger.transaction.transaction checkpoints"))
    if isinstance(new.get("backgroundFlushing"), Mapping) and isinstance(
        old.get("backgroundFlushing"), Mapping
    ):
        return str(_delta(new, old, "backgroundFlushing.flushes"))
    return "0"


def _memory(path: str, *, mongos: bool | None = None, minus_mapped: bool = False) -> Reader:
    def read(c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
        if not _truthy(lookup(new, "mem.supported")):
            return ""
        if mongos is not None and is_mongos(new) != mongos:
            return ""
        amount = _num(new, path)
        if minus_mapped:
            amount -= _num(new, "mem.mapped")
        return format_megabytes(amount) if c.human_readable else str(amount * 1024 * 1024)

    return read


def read_faults(_c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
    if storage_engine(new) != "mmapv1":
        return "n/a"
    path = "extra_info.page_faults"
    if lookup(new, path) is None or lookup(old, path) is None:
        return "-1"
    return str(truncating_rate(_num(new, path), _num(old, path), elapsed))


def _collection_lock_deltas(new: Document, old: Document) -> dict[str, int] | None:
    if is_mongos(new) or not has_collection_locks(old) or not has_collection_locks(new):
        return None
    coll = "locks.Collection"
    return {
        "r_wait": _delta(new, old, f"{coll}.acquireWaitCount.R"),
        "w_wait": _delta(new, old, f"{coll}.acquireWaitCount.W"),
        "r_total": _delta(new, old, f"{coll}.acquireCount.R"),
        "w_total": _delta(new, old, f"{coll}.acquireCount.W"),
        "r_acquire": _delta(new, old, f"{coll}.timeAcquiringMicros.R"),
        "w_acquire": _delta(new, old, f"{coll}.timeAcquiringMicros.W"),
    }


def read_lrw(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    deltas = _collection_lock_deltas(new, old)
    if deltas is None:
        return ""
    r = percentage(deltas["r_wait"], deltas["r_total"])
    w = percentage(deltas["w_wait"], deltas["w_total"])
    return f"{r:.1f}%|{w:.1f}%"


def read_lrwt(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    deltas = _collection_lock_deltas(new, old)
    if deltas is None:
        return ""
    r = average(deltas["r_acquire"], deltas["r_wait"])
    w = average(deltas["w_acquire"], deltas["w_wait"])
    return f"{r}|{w}"


def _db_lock_usage(doc: Document) -> dict[str, tuple[int, int]]:
    usage = {}
    for db, info in (doc.get("locks") or {}).items():
        locked = info.get("timeLockedMicros") if isinstance(info, Mapping) else None
        usage[db] = (
            _num(locked, "R") + _num(locked, "r"),
            _num(locked, "W") + _num(locked, "w"),
        )
    return usage


def read_locked_db(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    if is_mongos(new) or not has_locks(new) or not isinstance(old.get("locks"), Mapping):
        return ""
    previous = _db_lock_usage(old)
    diffs = [
        (db, reads - previous[db][0], writes - previous[db][1])
        for db, (reads, writes) in _db_lock_usage(new).items()
        if db in previous
    ]
    if not diffs:
        if new.get("globalLock") is None:
            return ""
        locked = percentage(_num(new, "globalLock.lockTime"), _num(new, "globalLock.totalTime"))
        return f":{locked:.1f}%"

    db, _reads, writes = max(diffs, key=lambda d: d[1] + d[2])
    if db != ".":
        writes += sum(w for name, _r, w in diffs if name == ".")
    # lock times are micros, uptime is millis
    elapsed_millis = _num(new, "uptimeMillis") - _num(old, "uptimeMillis")
    return f"{db}:{percentage(writes // 1000, elapsed_millis):.1f}%"


def read_query_efficiency(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    scanned = max(
        _delta(new, old, "metrics.queryExecutor.scanned"),
        _delta(new, old, "metrics.queryExecutor.scannedObjects"),
    )
    returned = max(_delta(new, old, "metrics.document.returned"), 1)
    return f"{scanned / returned:.1f}"


def read_document_stats(_c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
    return "|".join(
        str(truncating_rate(_num(new, path), _num(old, path), elapsed))
        for path in (
            "metrics.document.returned",
            "metrics.document.inserted",
            "metrics.document.updated",
            "metrics.document.deleted",
        )
    )


def read_gle_millis(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    count = _delta(new, old, "metrics.getLastError.wtime.num")
    millis = _delta(new, old, "metrics.getLastError.wtime.totalMillis")
    return str(average(millis, count))


def _latencies(new: Document, old: Document) -> list[tuple[int, int]] | None:
    if not isinstance(new.get("opLatencies"), Mapping) or not isinstance(
        old.get("opLatencies"), Mapping
    ):
        return None
    return [
        (
            _delta(new, old, f"opLatencies.{kind}.ops"),
            _delta(new, old, f"opLatencies.{kind}.latency"),
        )
        for kind in ("reads", "writes", "commands")
    ]


def read_op_latencies(_c: ReaderConfig, new: Document, old: Document, _e: float) -> str:
    latencies = _latencies(new, old)
    if latencies is None:
        return ""
    # micros per op, shown as millis
    return "|".join(str(average(micros, ops) // 1000) for ops, micros in latencies)


def read_op_latency_util(c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
    latencies = _latencies(new, old)
    if latencies is None:
        return ""
    sample_micros = int(elapsed * 1_000_000)
    cpus = max(c.cpu_count, 1)
    return "|".join(
        f"{percentage(micros // cpus, sample_micros):.1f}%" for _ops, micros in latencies
    )


def read_qrw(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    qr = qw = 0
    if lookup(new, "globalLock.currentQueue") is not None:
        if isinstance(new.get("wiredTiger"), Mapping):
            qr = max(
                _num(new, "globalLock.currentQueue.readers")
                + _num(new, "globalLock.activeClients.readers")
                - _num(new, "wiredTiger.concurrentTransactions.read.out"),
                0,
            )
            qw = max(
                _num(new, "globalLock.currentQueue.writers")
                + _num(new, "globalLock.activeClients.writers")
                - _num(new, "wiredTiger.concurrentTransactions.write.out"),
                0,
            )
        else:
            qr = _num(new, "globalLock.currentQueue.readers")
            qw = _num(new, "globalLock.currentQueue.writers")
    return f"{qr}|{qw}"


def read_arw(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    ar = aw = 0
    if new.get("globalLock") is not None:
        if isinstance(new.get("wiredTiger"), Mapping):
            ar = _num(new, "wiredTiger.concurrentTransactions.read.out")
            aw = _num(new, "wiredTiger.concurrentTransactions.write.out")
        elif lookup(new, "globalLock.activeClients") is not None:
            ar = _num(new, "globalLock.activeClients.readers")
            aw = _num(new, "globalLock.activeClients.writers")
    return f"{ar}|{aw}"


def _network(path: str) -> Reader:
    def read(c: ReaderConfig, new: Document, old: Document, elapsed: float) -> str:
        amount = truncating_rate(_num(new, path), _num(old, path), elapsed)
        return format_bits(amount) if c.human_readable else str(amount)

    return read


def read_conn(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    return str(_num(new, "connections.current"))


def read_set(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    return str(lookup(new, "repl.setName", "") or "")


def read_repl(_c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    repl = new.get("repl")
    if not isinstance(repl, Mapping):
        return "RTR" if is_mongos(new) else ""
    if _truthy(repl.get("ismaster")):
        return "PRI"
    if _truthy(repl.get("secondary")):
        return "SEC"
    if _truthy(repl.get("isreplicaset")):
        return "REC"
    if _truthy(repl.get("arbiterOnly")):
        return "ARB"
    if repl.get("me") in (repl.get("passives") or []):
        return "PSV"
    return "SLV" if is_repl_set(new) else "UNK"


def read_time(c: ReaderConfig, new: Document, _o: Document, _e: float) -> str:
    local_time = new.get("localTime")
    if not isinstance(local_time, datetime):
        local_time = datetime.now().astimezone()
    if c.human_readable:
        return local_time.strftime("%b %d %H:%M:%S.") + f"{local_time.microsecond // 1000:03d}"
    return local_time.isoformat(timespec="seconds")


FIELDS: tuple[StatField, ...] = (
    StatField("host", ("host", "Host", "host"), Capability.ALL, read_host),
    StatField(
        "storage_engine",
        ("storage_engine", "Storage engine", "engine"),
        Capability.ALL,
        read_storage_engine,
    ),
    StatField("insert", ("insert", "Insert opcounter (diff)", "insert"), Capability.ALWAYS, _opcount("insert")),
    StatField("query", ("query", "Query opcounter (diff)", "query"), Capability.ALWAYS, _opcount("query")),
    StatField("update", ("update", "Update opcounter (diff)", "update"), Capability.ALWAYS, _opcount("update")),
    StatField("delete", ("delete", "Delete opcounter (diff)", "delete"), Capability.ALWAYS, _opcount("delete")),
    StatField(
        "getmore",
        ("getmore", "GetMore opcounter (diff)", "getmore"),
        Capability.ALWAYS,
        _rate("opcounters.getmore"),
    ),
    StatField(
        "command",
        ("command", "Command opcounter (diff)", "command"),
        Capability.ALWAYS,
        _opcount("command", both=True),
    ),
    StatField(
        "dirty",
        ("dirty", "Cache dirty (percentage)", "% dirty"),
        Capability.WT,
        _cache_ratio(f"{_CACHE}.tracked dirty bytes in the cache"),
    ),
    StatField(
        "used",
        ("used", "Cache used (percentage)", "% used"),
        Capability.WT,
        _cache_ratio(f"{_CACHE}.bytes currently in the cache"),
    ),
    StatField(
        "read",
        ("read", "Cache bytes read into (diff)", "read"),
        Capability.WT,
        _cache_bytes(f"{_CACHE}.bytes read into cache"),
    ),
    StatField(
        "written",
        ("written", "Cache bytes written from (diff)", "written"),
        Capability.WT,
        _cache_bytes(f"{_CACHE}.bytes written from cache"),
    ),
    StatField(
        "pread",
        ("pread", "Cache pages read into (diff)", "pread"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.pages read into cache")),
    ),
    StatField(
        "preq",
        ("preq", "Cache pages requested (diff)", "preq"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.pages requested from the cache")),
    ),
    StatField(
        "pwritten",
        ("pwritten", "Cache pages written from (diff)", "pwritten"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.pages written from cache")),
    ),
    StatField(
        "pagehit%",
        ("pagehit%", "Cache page hit ratio (percentage)", "pagehit%"),
        Capability.WT,
        _wt(read_page_hit_ratio),
    ),
    StatField(
        "evict-um",
        ("evict-um", "Cache unmodified pages evicted (diff)", "evict-um"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.unmodified pages evicted")),
    ),
    StatField(
        "evict-m",
        ("evict-m", "Cache modified pages evicted (diff)", "evict-m"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.modified pages evicted")),
    ),
    StatField(
        "evict-i",
        ("evict-i", "Cache internal pages evicted (diff)", "evict-i"),
        Capability.WT,
        _wt(_rate(f"{_CACHE}.internal pages evicted")),
    ),
    StatField(
        "r%|w%|em%|eum%",
        ("r%|w%|em%|eum%", "Cache page stats (percentage)", "r%|w%|em%|eum%"),
        Capability.WT,
        _wt(read_cache_percentages),
    ),
    StatField("flushes", ("flushes", "Number of flushes (diff)", "flushes"), Capability.ALWAYS, read_flushes),
    StatField(
        "mapped",
        ("mapped", "Mapped (size)", "mapped"),
        Capability.MMAP,
        _memory("mem.mapped", mongos=True),
    ),
    StatField("vsize", ("vsize", "Virtual (size)", "vsize"), Capability.ALWAYS, _memory("mem.virtual")),
    StatField("res", ("res", "Resident (size)", "res"), Capability.ALWAYS, _memory("mem.resident")),
    StatField(
        "nonmapped",
        ("nonmapped", "Non-mapped (size)", "non-mapped"),
        Capability.MMAP | Capability.ALL,
        _memory("mem.virtual", mongos=False, minus_mapped=True),
    ),
    StatField("faults", ("faults", "Page faults (diff)", "faults"), Capability.MMAP, read_faults),
    StatField(
        "lrw",
        ("lrw", "Lock acquire count, read|write (diff percentage)", "lr|lw %"),
        Capability.MMAP | Capability.COLLECTION_LOCKS | Capability.ALL,
        read_lrw,
    ),
    StatField(
        "lrwt",
        ("lrwt", "Lock acquire time, read|write (diff percentage)", "lrt|lwt"),
        Capability.MMAP | Capability.COLLECTION_LOCKS | Capability.ALL,
        read_lrwt,
    ),
    StatField(
        "locked_db",
        ("locked_db", "Locked db info, '(db):(percentage)'", "locked"),
        Capability.LOCKS,
        read_locked_db,
    ),
    StatField(
        "sao",
        ("sao", "Scan and Order (diff)", "sao"),
        Capability.METRICS | Capability.ALL,
        _metrics(_rate("metrics.operation.scanAndOrder")),
    ),
    StatField(
        "wc",
        ("wc", "Write Conflicts (diff)", "wc"),
        Capability.METRICS | Capability.ALL,
        _metrics(_rate("metrics.operation.writeConflicts")),
    ),
    StatField(
        "ns",
        ("ns", "NScanned (diff)", "ns"),
        Capability.METRICS | Capability.ALL,
        _metrics(_rate("metrics.queryExecutor.scanned")),
    ),
    StatField(
        "nso",
        ("nso", "NScanned Objects (diff)", "nso"),
        Capability.METRICS | Capability.ALL,
        _metrics(_rate("metrics.queryExecutor.scannedObjects")),
    ),
    StatField(
        "effic",
        ("effic", "Query Efficiency: max(nscanned, nscannedObjects)/nreturned (ratio)", "effic"),
        Capability.METRICS | Capability.ALL,
        _metrics(read_query_efficiency),
    ),
    StatField(
        "r|i|u|d",
        ("r|i|u|d", "Document metrics Returned|Inserted|Updated|Deleted (diff)", "r|i|u|d"),
        Capability.METRICS | Capability.ALL,
        _metrics(read_document_stats),
    ),
    StatField(
        "moves",
        ("moves", "Document moves (diff)", "moves"),
        Capability.METRICS | Capability.MMAP | Capability.ALL,
        _metrics(_rate("metrics.record.moves")),
    ),
    StatField(
        "gleto",
        ("gleto", "Get Last Error timeouts (diff)", "gleto"),
        Capability.METRICS | Capability.ALL,
        _metrics(_rate("metrics.getLastError.wtimeouts")),
    ),
    StatField(
        "glems",
        ("glems", "Average time waiting for GLE (millis)", "glems"),
        Capability.METRICS | Capability.ALL,
        _metrics(read_gle_millis),
    ),
    StatField(
        "r|w|c",
        ("r|w|c", "Average execution time per read/write/command (millis)", "r|w|c"),
        Capability.OP_LATENCIES,
        read_op_latencies,
    ),
    StatField(
        "r%|w%|c%",
        ("r%|w%|c%", "Average utilization percent per read/write/command (diff percentage)", "r%|w%|c%"),
        Capability.OP_LATENCIES,
        read_op_latency_util,
    ),
    StatField("qrw", ("qrw", "Queued accesses, read|write", "qr|qw"), Capability.ALWAYS, read_qrw),
    StatField("arw", ("arw", "Active accesses, read|write", "ar|aw"), Capability.ALWAYS, read_arw),
    StatField("net_in", ("net_in", "Network input (size)", "netIn"), Capability.ALWAYS, _network("network.bytesIn")),
    StatField(
        "net_out", ("net_out", "Network output (size)", "netOut"), Capability.ALWAYS, _network("network.bytesOut")
    ),
    StatField("conn", ("conn", "Current connection count", "conn"), Capability.ALWAYS, read_conn),
    StatField("set", ("set", "Replica set name", "set"), Capability.REPL, read_set),
    StatField("repl", ("repl", "Replica set type", "repl"), Capability.REPL, read_repl),
    StatField("time", ("time", "Time of sample", "time"), Capability.ALWAYS, read_time),
)

FIELDS_BY_KEY: dict[str, StatField] = {f.key: f for f in FIELDS}

HEADER_STYLES = ("short", "long", "deprecated")


def active_fields(caps: Capability) -> list[StatField]:
    """Fields shown for the given capability set, in display order."""
    return [f for f in FIELDS if f.is_active(caps)]


def selected_fields(keys: tuple[str, ...]) -> list[StatField]:
    """Fields picked by key, in the order given."""
    return [FIELDS_BY_KEY[key] for key in keys]


def key_names(index: int = 0) -> dict[str, str]:
    """Map field keys to their short (0), long (1) or deprecated (2) names."""
    return {f.key: f.names[index] for f in FIELDS}
