"""Tests for the spreadsheet importer."""

import pytest

from quotemaker_firestoredb.sheets.importer import SpreadsheetImporter, rows_to_mappings
from quotemaker_firestoredb.sync.context import SyncContext
from quotemaker_firestoredb.utils.exceptions import PermissionDeniedError

ROWS = [
    ["Product Name", "Price List Name", "Category", "Rate", ""],
    ["Silk Yarn", "Retail", "Luxury", "45", "ignored"],
    ["", "", "", ""],
    ["Linen", "Wholesale"],
]


class TestRowsToMappings:
    def test_header_row_and_padding(self):
        assert rows_to_mappings(ROWS) == [
            {"Product Name": "Silk Yarn", "Price List Name": "Retail", "Category": "Luxury", "Rate": "45"},
            {"Product Name": "Linen", "Price List Name": "Wholesale", "Category": "", "Rate": ""},
        ]

    def test_no_rows(self):
        assert rows_to_mappings([]) == []
        assert rows_to_mappings([["id"]]) == []


class TestSpreadsheetImporter:
    @pytest.mark.asyncio
    async def test_imports_and_refreshes(self, make_environment, datastore):
        env = make_environment()
        await env.orchestrator.load_all()
        await env.orchestrator.wait_for_background()

        result = await SpreadsheetImporter(env.orchestrator).import_rows("products", ROWS)

        assert result.imported == 2
        assert result.failed == 0
        categories = [c["name"] for c in await env.orchestrator.get_data("categories")]
        assert "Luxury" in categories
        written = [fields for collection, _, fields in datastore.writes if collection == "products"]
        assert written[0]["Rate"] == 45.0
        await env.close()

    @pytest.mark.asyncio
    async def test_restricted_page_cannot_import(self, make_environment):
        env = make_environment(context=SyncContext.restricted())

        with pytest.raises(PermissionDeniedError):
            await SpreadsheetImporter(env.orchestrator).import_rows("products", ROWS)

    @pytest.mark.asyncio
    async def test_failed_rows_are_counted(self, make_environment, datastore):
        env = make_environment()
        await env.orchestrator.load_all()
        await env.orchestrator.wait_for_background()
        datastore.write_error = ValueError("rejected")

        result = await SpreadsheetImporter(env.orchestrator).import_mappings("clients", [{"name": "A"}, {}])

        assert result.imported == 0
        assert result.failed == 1
        assert result.skipped == 1
        assert result.errors[0].startswith("record 1")
        await env.close()
