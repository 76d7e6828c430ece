from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from ..utils.error_codes import ErrorCodes
from ..utils.logger import logger


class ImportResult(BaseModel):
    collection: str
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


def rows_to_mappings(rows: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """
    Turn spreadsheet values (a header row followed by value rows, as the Sheets API
    returns them) into one mapping per non-empty row. Short rows are padded with
    empty strings; blank header cells are dropped.
    """
    if not rows:
        return []

    headers = [str(header).strip() for header in rows[0]]
    mappings = []
    for row in rows[1:]:
        if not any(str(cell).strip() for cell in row if cell is not None):
            continue
        cells = list(row) + [""] * (len(headers) - len(row))
        mappings.append({header: cells[index] for index, header in enumerate(headers) if header})
    return mappings


class SpreadsheetImporter:
    """Writes spreadsheet rows into a collection through the orchestrator's write path."""

    def __init__(self, orchestrator):
        self.orchestrator = orchestrator

    async def import_rows(self, collection: str, rows: Sequence[Sequence[Any]]) -> ImportResult:
        return await self.import_mappings(collection, rows_to_mappings(rows))

    async def import_mappings(self, collection: str, mappings: Sequence[Mapping[str, Any]]) -> ImportResult:
        result = ImportResult(collection=collection)
        resolver = self.orchestrator.resolver

        for index, mapping in enumerate(mappings):
            if not any(value not in (None, "") for value in mapping.values()):
                result.skipped += 1
                continue
            try:
                await resolver.write_record(collection, mapping)
                result.imported += 1
            except Exception as e:
                if ErrorCodes.is_permission_error(e) and result.imported == 0:
                    # nothing can succeed from this context
                    raise
                result.failed += 1
                result.errors.append(f"record {index + 1}: {e}")
                logger.error(f"❌ Failed to import record {index + 1} into {collection}: {e}")

        if result.imported:
            await self._refresh(collection)
        logger.info(f"📥 Imported {result.imported} rows into {collection} ({result.failed} failed, {result.skipped} skipped)")
        return result

    async def _refresh(self, collection: str) -> Optional[list]:
        self.orchestrator.cache.invalidate(collection)
        return await self.orchestrator.refresh(collection)
