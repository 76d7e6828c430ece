"""Tests for SyncContext and the sync environment wiring."""

import pytest

from quotemaker_firestoredb.sync.context import SyncContext, SyncMode
from quotemaker_firestoredb.sync.environment import build_environment
from tests._support.fakes import FakeApiClient, FakeDatastore


class TestSyncContext:
    @pytest.mark.parametrize(
        "page,mode",
        [
            ("admin-panel.html", SyncMode.PRIVILEGED),
            ("/app/admin-sync-interface.html", SyncMode.PRIVILEGED),
            ("/admin/products", SyncMode.PRIVILEGED),
            ("index.html", SyncMode.RESTRICTED),
            ("/quotes/new.html", SyncMode.RESTRICTED),
            ("", SyncMode.RESTRICTED),
        ],
    )
    def test_mode_from_page(self, page, mode):
        assert SyncContext.from_page(page).mode is mode

    def test_context_is_frozen(self):
        context = SyncContext.restricted()

        with pytest.raises(AttributeError):
            context.mode = SyncMode.PRIVILEGED


class TestBuildEnvironment:
    def test_restricted_page_gets_no_network_clients(self, kv_store):
        env = build_environment(page_identity="index.html", datastore=FakeDatastore(), api_client=FakeApiClient(), kv_store=kv_store)

        assert env.context.is_restricted
        assert env.resolver.datastore is None
        assert env.resolver.api_client is None
        assert env.orchestrator.datastore is None
        assert env.monitor is None

    def test_admin_page_keeps_supplied_clients(self, kv_store):
        datastore = FakeDatastore()
        api = FakeApiClient()

        env = build_environment(page_identity="admin-panel.html", datastore=datastore, api_client=api, kv_store=kv_store)

        assert env.context.is_privileged
        assert env.resolver.datastore is datastore
        assert env.resolver.api_client is api
        assert env.storage.datastore is datastore
        assert env.monitor.datastore is datastore
        assert env.resolver.monitor is env.monitor

    @pytest.mark.asyncio
    async def test_start_loads_and_schedules_refresh(self, make_environment):
        env = make_environment()

        await env.start()

        assert env.orchestrator.is_ready
        assert env.orchestrator.get_status().background_refresh_active is True
        assert env.monitor.is_running
        await env.orchestrator.wait_for_background()
        await env.close()
        assert env.orchestrator.get_status().background_refresh_active is False
        assert not env.monitor.is_running
