"""
Firestore access: the shared client, the primary datastore adapter and the
key/value storage shim.
"""

from .client import FirestoreClient
from .datastore import FirestoreDatastore, PrimaryDatastore
from .storage import FirestoreStorage

__all__ = [
    "FirestoreClient",
    "FirestoreDatastore",
    "PrimaryDatastore",
    "FirestoreStorage",
]
