from dataclasses import dataclass
from enum import Enum

from ..utils.config import PAGE_IDENTITY

ADMIN_PAGES = frozenset({"admin-panel.html", "admin-sync-interface.html"})


class SyncMode(str, Enum):
    PRIVILEGED = "admin"
    RESTRICTED = "fallback-first"


@dataclass(frozen=True)
class SyncContext:
    """
    Whether this process may talk to Firestore directly.

    Computed once from a static signal (the page identity) and never changed:
    admin pages are privileged, every other page reads local snapshots only.
    """

    mode: SyncMode
    page_identity: str = ""

    @property
    def is_privileged(self) -> bool:
        return self.mode is SyncMode.PRIVILEGED

    @property
    def is_restricted(self) -> bool:
        return self.mode is SyncMode.RESTRICTED

    @staticmethod
    def is_admin_page(page_identity: str) -> bool:
        if not page_identity:
            return False
        current_file = page_identity.rstrip("/").split("/")[-1]
        return current_file in ADMIN_PAGES or "admin" in page_identity

    @classmethod
    def from_page(cls, page_identity: str = PAGE_IDENTITY) -> "SyncContext":
        mode = SyncMode.PRIVILEGED if cls.is_admin_page(page_identity) else SyncMode.RESTRICTED
        return cls(mode=mode, page_identity=page_identity)

    @classmethod
    def privileged(cls, page_identity: str = "admin-panel.html") -> "SyncContext":
        return cls(mode=SyncMode.PRIVILEGED, page_identity=page_identity)

    @classmethod
    def restricted(cls, page_identity: str = "index.html") -> "SyncContext":
        return cls(mode=SyncMode.RESTRICTED, page_identity=page_identity)
