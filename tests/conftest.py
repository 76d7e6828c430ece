"""
Shared pytest fixtures for the quotemaker_firestoredb tests.

This module provides:
- A populated in-memory datastore and an API fallback stand-in
- A controllable clock for cache timeouts
- An environment factory wiring the sync components around the fakes
"""

import os
from typing import Optional

import pytest

os.environ.setdefault("TESTING", "true")

from quotemaker_firestoredb.local.kv_store import MemoryKeyValueStore
from quotemaker_firestoredb.sync.context import SyncContext
from quotemaker_firestoredb.sync.environment import build_environment
from quotemaker_firestoredb.sync.retry import RetryExecutor
from tests._support.fakes import SAMPLE_PRODUCTS, FakeApiClient, FakeClock, FakeDatastore, no_sleep


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def datastore():
    return FakeDatastore({"products": SAMPLE_PRODUCTS, "clients": [{"id": "c1", "Client Name": "Jane"}]})


@pytest.fixture
def api_client():
    return FakeApiClient()


@pytest.fixture
def kv_store():
    return MemoryKeyValueStore()


@pytest.fixture
def make_environment(datastore, api_client, kv_store, clock):
    """Build a sync environment around the fakes; admin page unless told otherwise."""

    def _make(context: Optional[SyncContext] = None, **overrides):
        options = dict(
            context=context or SyncContext.privileged(),
            datastore=datastore,
            kv_store=kv_store,
            api_client=api_client,
            executor=RetryExecutor(sleep=no_sleep),
            clock=clock,
            ready_timeout=1.0,
        )
        options.update(overrides)
        return build_environment(**options)

    return _make
