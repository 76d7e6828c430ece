from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DataSource(str, Enum):
    CACHE = "cache"
    FIRESTORE = "firestore"
    LOCAL = "local"
    API = "api"
    EMPTY = "empty"


class SyncErrorRecord(BaseModel):
    collection: str
    timestamp: datetime
    code: str
    message: str
    source: Optional[str] = None


class CollectionStatus(BaseModel):
    count: int = 0
    source: Optional[DataSource] = None
    cache_valid: bool = False
    last_loaded_at: Optional[datetime] = None


class SyncStatus(BaseModel):
    state: str
    mode: str
    page_identity: str = ""
    is_ready: bool = False
    primary_available: Optional[bool] = None
    collections: Dict[str, CollectionStatus] = Field(default_factory=dict)
    last_refresh_at: Optional[datetime] = None
    background_refresh_active: bool = False
    recent_errors: List[SyncErrorRecord] = Field(default_factory=list)
    circuit_breaker: Optional[str] = None
    consecutive_failures: int = 0


class StorageItem(BaseModel):
    key: str
    value: str
    dataType: str = "string"
    timestamp: int = 0
    deviceId: Optional[str] = None
    sessionId: Optional[str] = None
    migrated: bool = False

    def to_firestore(self) -> Dict[str, Any]:
        return self.model_dump()
