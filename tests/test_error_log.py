"""Tests for SyncErrorLog."""

from google.api_core import exceptions as google_exceptions

from quotemaker_firestoredb.sync.error_log import SyncErrorLog


class TestSyncErrorLog:
    def test_bounded_newest_last(self):
        log = SyncErrorLog(max_size=3)
        for index in range(5):
            log.record("products", RuntimeError(f"failure {index}"))

        assert len(log) == 3
        assert [entry.message for entry in log.entries()] == ["failure 2", "failure 3", "failure 4"]

    def test_entries_carry_code_and_source(self):
        log = SyncErrorLog()
        entry = log.record("clients", google_exceptions.PermissionDenied("denied"), source="firestore")

        assert entry.code == "permission-denied"
        assert entry.source == "firestore"
        assert entry.timestamp.tzinfo is not None

    def test_queries(self):
        log = SyncErrorLog()
        log.record("clients", RuntimeError("a"))
        log.record("products", ValueError("b"))
        log.record("clients", RuntimeError("c"))

        assert log.last_error("clients").message == "c"
        assert log.last_error("orders") is None
        assert len(log.entries("clients")) == 2
        assert [entry.message for entry in log.recent(limit=2)] == ["b", "c"]
        assert log.stats() == {
            "byCode": {"unknown": 2, "invalid-argument": 1},
            "byCollection": {"clients": 2, "products": 1},
        }

        log.clear()
        assert len(log) == 0
