"""Tests for the status line field registry."""

from datetime import datetime

from dbtop.stat_fields import (
    FIELDS,
    FIELDS_BY_KEY,
    Capability,
    ReaderConfig,
    active_fields,
    capabilities,
    is_mongos,
    key_names,
    lookup,
    selected_fields,
)

WT_DOC = {
    "host": "h:1",
    "process": "mongod",
    "storageEngine": {"name": "wiredTiger"},
    "repl": {"setName": "rs0", "ismaster": True},
    "wiredTiger": {
        "cache": {
            "maximum bytes configured": 1000,
            "bytes currently in the cache": 250,
            "tracked dirty bytes in the cache": 10,
        }
    },
}


def read(key, new, old=None, elapsed=1.0, config=None):
    return FIELDS_BY_KEY[key].read(config or ReaderConfig(), new, old or new, elapsed)


class TestRegistry:
    """Tests for the declarative field table."""

    def test_keys_unique(self):
        """Test every field key appears once."""
        assert len(FIELDS_BY_KEY) == len(FIELDS)

    def test_time_is_last(self):
        """Test the sample time closes the line."""
        assert FIELDS[-1].key == "time"

    def test_key_names(self):
        """Test long names are available by key."""
        assert key_names(1)["conn"] == "Current connection count"
        assert key_names()["net_in"] == "net_in"

    def test_selected_fields_keep_order(self):
        """Test fields picked by key come back in the order asked for."""
        assert [f.key for f in selected_fields(("conn", "host", "insert"))] == ["conn", "host", "insert"]


class TestCapabilities:
    """Tests for capability detection."""

    def test_wired_tiger_replica_member(self):
        """Test engine and topology flags come from the document."""
        caps = capabilities(WT_DOC)
        assert Capability.WT in caps
        assert Capability.REPL in caps
        assert Capability.MMAP not in caps
        assert Capability.ALL not in caps

    def test_default_engine_is_mmap(self):
        """Test documents without an engine are treated as mmapv1."""
        assert Capability.MMAP in capabilities({})

    def test_all_fields_flag(self):
        """Test --all adds the ALL capability."""
        assert Capability.ALL in capabilities({}, all_fields=True)

    def test_active_fields_follow_capabilities(self):
        """Test fields are activated by their flags only."""
        keys = [f.key for f in active_fields(capabilities(WT_DOC))]
        assert "dirty" in keys
        assert "set" in keys
        assert "faults" not in keys
        assert "host" not in keys

    def test_mongos_detection(self):
        """Test mongos is recognised by its process name."""
        assert is_mongos({"process": "/usr/bin/mongos --port 27017"})
        assert not is_mongos({"process": "mongod"})


class TestReaders:
    """Tests for individual column readers."""

    def test_lookup(self):
        """Test dotted paths walk nested documents."""
        assert lookup({"a": {"b": 1}}, "a.b") == 1
        assert lookup({"a": 1}, "a.b", "x") == "x"

    def test_opcounter_repl_marker(self):
        """Test replicated-only activity is starred."""
        old = {"opcounters": {"insert": 0}, "opcountersRepl": {"insert": 0}}
        new = {"opcounters": {"insert": 0}, "opcountersRepl": {"insert": 4}}
        assert read("insert", new, old) == "*4"

    def test_opcounter_both(self):
        """Test commands always show local and replicated counts."""
        old = {"opcounters": {"command": 0}, "opcountersRepl": {"command": 0}}
        new = {"opcounters": {"command": 6}, "opcountersRepl": {"command": 2}}
        assert read("command", new, old, elapsed=2.0) == "3|1"

    def test_cache_ratio(self):
        """Test cache usage is a percentage of the configured maximum."""
        assert read("used", WT_DOC) == "25.0%"
        assert read("used", WT_DOC, config=ReaderConfig(human_readable=False)) == "25.0"

    def test_repl_role(self):
        """Test the replica set role of a primary."""
        assert read("repl", WT_DOC) == "PRI"
        assert read("set", WT_DOC) == "rs0"

    def test_network_rate(self):
        """Test network throughput is shown in bits."""
        old = {"network": {"bytesIn": 0}}
        new = {"network": {"bytesIn": 2000}}
        assert read("net_in", new, old, elapsed=2.0) == "8.0k"

    def test_faults_not_applicable_on_wired_tiger(self):
        """Test page faults are mmapv1-only."""
        assert read("faults", WT_DOC) == "n/a"

    def test_time_human_readable(self):
        """Test the sample time is shown with milliseconds by default."""
        doc = {"localTime": datetime(2024, 5, 1, 12, 30, 5, 250000)}
        assert read("time", doc) == "May 01 12:30:05.250"

    def test_time_machine_readable(self):
        """Test --no-humanreadable prints the sample time as ISO 8601."""
        doc = {"localTime": datetime(2024, 5, 1, 12, 30, 5, 250000)}
        assert read("time", doc, config=ReaderConfig(human_readable=False)) == "2024-05-01T12:30:05"
