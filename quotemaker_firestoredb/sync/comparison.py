from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from ..utils.logger import logger

ID_FIELDS = ("id", "_id", "key", "name", "title")


class SourceSummary(BaseModel):
    count: int = 0
    unique_ids: List[str] = Field(default_factory=list)
    duplicates: List[str] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


class CollectionComparison(BaseModel):
    collection: str
    sources: Dict[str, SourceSummary] = Field(default_factory=dict)
    total_unique_ids: int = 0
    common_ids: List[str] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return all(not summary.missing and not summary.duplicates for summary in self.sources.values())


def record_identity(record: Mapping[str, Any]) -> Optional[str]:
    for field in ID_FIELDS:
        value = record.get(field)
        if value not in (None, ""):
            return str(value)
    return None


def compare_sources(collection: str, sources: Mapping[str, Sequence[Mapping[str, Any]]]) -> CollectionComparison:
    """
    Compare the same collection as seen by several sources (Firestore, local
    snapshot, spreadsheet...). Records without any identity field are counted
    but otherwise ignored.
    """
    ids_by_source: Dict[str, List[str]] = {}
    summaries: Dict[str, SourceSummary] = {}
    for source, records in sources.items():
        ids = [identity for identity in (record_identity(record) for record in records) if identity is not None]
        counts = Counter(ids)
        ids_by_source[source] = list(dict.fromkeys(ids))
        summaries[source] = SourceSummary(
            count=len(records),
            unique_ids=ids_by_source[source],
            duplicates=[identity for identity, seen in counts.items() if seen > 1],
        )

    all_ids = list(dict.fromkeys(identity for ids in ids_by_source.values() for identity in ids))
    for source, summary in summaries.items():
        present = set(ids_by_source[source])
        summary.missing = [identity for identity in all_ids if identity not in present]

    id_sets = [set(ids) for ids in ids_by_source.values()]
    common = set.intersection(*id_sets) if id_sets else set()
    comparison = CollectionComparison(
        collection=collection,
        sources=summaries,
        total_unique_ids=len(all_ids),
        common_ids=[identity for identity in all_ids if identity in common],
    )

    if not comparison.consistent:
        logger.warning(f"⚠️ Sources disagree for {collection}: {len(comparison.common_ids)}/{len(all_ids)} ids shared")
    return comparison
