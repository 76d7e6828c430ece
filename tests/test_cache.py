"""Tests for CollectionCache."""

import pytest

from quotemaker_firestoredb.sync.cache import CollectionCache

from tests._support.fakes import FakeClock


@pytest.fixture
def cache(clock):
    return CollectionCache(timeout=900, clock=clock)


class TestValidity:
    def test_missing_entry_is_invalid(self, cache):
        assert cache.get("products") is None
        assert cache.is_valid("products") is False

    def test_entry_valid_until_timeout(self, cache, clock):
        cache.put("products", [{"id": "p1"}])

        clock.advance(899.999)
        assert cache.is_valid("products") is True

        clock.advance(0.001)
        assert cache.is_valid("products") is False

    def test_expired_entry_stays_readable(self, cache, clock):
        cache.put("products", [{"id": "p1"}])
        clock.advance(1000)

        assert cache.get("products").as_list() == [{"id": "p1"}]

    def test_put_restamps(self, cache, clock):
        cache.put("products", [{"id": "p1"}])
        clock.advance(1000)
        cache.put("products", [{"id": "p2"}])

        assert cache.is_valid("products") is True
        assert cache.age("products") == 0

    def test_invalidate(self, cache):
        cache.put("products", [])
        cache.put("clients", [])

        cache.invalidate("products")
        assert cache.get("products") is None
        assert cache.names() == ("clients",)

        cache.invalidate_all()
        assert cache.names() == ()


class TestImmutability:
    def test_cached_records_are_read_only(self, cache):
        entry = cache.put("products", [{"id": "p1"}])

        with pytest.raises(TypeError):
            entry.records[0]["id"] = "changed"

    def test_as_list_returns_copies(self, cache):
        cache.put("products", [{"id": "p1"}])

        records = cache.get("products").as_list()
        records[0]["id"] = "changed"

        assert cache.get("products").as_list() == [{"id": "p1"}]

    def test_source_list_changes_do_not_leak_in(self):
        cache = CollectionCache(timeout=10, clock=FakeClock())
        source = [{"id": "p1"}]
        cache.put("products", source)
        source[0]["id"] = "changed"

        assert cache.get("products").as_list() == [{"id": "p1"}]
