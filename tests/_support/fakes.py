"""
In-memory stand-ins for the Firestore datastore and the REST fallback client,
plus a controllable clock for cache timeouts.
"""

import asyncio
from collections import Counter
from typing import Any, Dict, List, Optional

SAMPLE_PRODUCTS = [
    {"id": "p1", "Product": "Cotton Yarn", "Category": "Yarn", "Subcategory": "Cotton", "Brand": "Acme", "PriceListName": "Retail", "Rate": "12.5"},
    {"id": "p2", "Product Name": "Wool Yarn", "Category": "Yarn", "Subcategory": "Wool", "BrandName": "Acme", "Price List Name": "Wholesale", "Rate": 9},
    {"id": "p3", "Product": "Poly Fabric", "ProductCategory": "Fabric", "Brand": "Zen", "PriceList": "Retail", "Price": "30"},
]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDatastore:
    """In-memory primary datastore. Errors are injected per collection or per operation."""

    def __init__(self, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.collections: Dict[str, List[Dict[str, Any]]] = {
            name: [dict(record) for record in records] for name, records in (collections or {}).items()
        }
        self.read_calls: Counter = Counter()
        self.read_errors: Dict[str, Exception] = {}
        self.fail_next_reads: Dict[str, List[Exception]] = {}
        self.write_error: Optional[Exception] = None
        self.find_error: Optional[Exception] = None
        self.available = True
        self.availability_checks = 0
        self.invalidations = 0
        self.gate: Optional[asyncio.Event] = None
        self.writes: List[tuple] = []
        self.watchers: Dict[str, Any] = {}
        self._next_id = 0

    async def read_collection(self, name: str) -> List[Dict[str, Any]]:
        self.read_calls[name] += 1
        if self.gate is not None:
            await self.gate.wait()
        pending = self.fail_next_reads.get(name)
        if pending:
            raise pending.pop(0)
        if name in self.read_errors:
            raise self.read_errors[name]
        return [dict(record) for record in self.collections.get(name, [])]

    async def write_document(self, collection: str, doc_id: Optional[str], fields: Dict[str, Any]) -> str:
        if self.write_error is not None:
            raise self.write_error
        if not doc_id:
            self._next_id += 1
            doc_id = f"generated-{self._next_id}"
        records = self.collections.setdefault(collection, [])
        for record in records:
            if record.get("id") == doc_id:
                record.update(fields)
                break
        else:
            records.append({"id": doc_id, **fields})
        self.writes.append((collection, doc_id, dict(fields)))
        return doc_id

    async def delete_document(self, collection: str, doc_id: str) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.collections[collection] = [r for r in self.collections.get(collection, []) if r.get("id") != doc_id]

    async def find_documents(self, collection: str, field: str, value: Any) -> List[Dict[str, Any]]:
        if self.find_error is not None:
            raise self.find_error
        return [dict(r) for r in self.collections.get(collection, []) if r.get(field) == value]

    async def is_available(self) -> bool:
        self.availability_checks += 1
        return self.available

    def invalidate_availability(self) -> None:
        self.invalidations += 1

    def watch(self, collection: str, on_change):
        self.watchers[collection] = on_change

        def unsubscribe() -> None:
            self.watchers.pop(collection, None)

        return unsubscribe


class FakeApiClient:
    def __init__(self, collections: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.collections = collections or {}
        self.get_calls: Counter = Counter()
        self.posts: List[tuple] = []
        self.closed = False

    async def get_collection(self, collection: str) -> List[Dict[str, Any]]:
        self.get_calls[collection] += 1
        return [dict(record) for record in self.collections.get(collection, [])]

    async def post_document(self, collection: str, fields) -> Dict[str, Any]:
        self.posts.append((collection, dict(fields)))
        return {"id": fields.get("id", "api-1"), **fields}

    async def aclose(self) -> None:
        self.closed = True


async def no_sleep(_seconds: float) -> None:
    return None
