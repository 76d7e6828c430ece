from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..utils.config import API_BASE_URL, API_TIMEOUT_SECONDS
from ..utils.logger import logger


class HttpFallbackClient:
    """
    Client for the REST surface that mirrors the Firestore collections:
    ``GET /api/<collection>`` and ``POST /api/<collection>``.

    Only used when Firestore is reachable but denies the request.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    def _path(self, collection: str) -> str:
        return f"/api/{collection}"

    async def get_collection(self, collection: str) -> List[Dict[str, Any]]:
        response = await self._client.get(self._path(collection))
        response.raise_for_status()
        payload = response.json()

        # the server answers either a bare array or {"data": [...]}
        if isinstance(payload, Mapping):
            payload = payload.get("data", [])
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected payload for /api/{collection}: {type(payload).__name__}")

        records = [item for item in payload if isinstance(item, Mapping)]
        logger.info(f"✅ Loaded {len(records)} items from API for {collection}")
        return records

    async def post_document(self, collection: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        response = await self._client.post(self._path(collection), json=dict(fields))
        response.raise_for_status()
        if not response.content:
            return dict(fields)
        body = response.json()
        return body if isinstance(body, dict) else dict(fields)

    async def aclose(self) -> None:
        await self._client.aclose()
