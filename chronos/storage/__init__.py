"""Storage for Chronos journal data.

Provides the on-device cache, the Firestore document client and the
local-first service that reconciles the two.
"""

from .autosave import DebouncedSaver, SaveState
from .firestore import (
    CloudError,
    CloudPermissionError,
    CloudUnavailableError,
    FirestoreClient,
)
from .local_cache import LocalCache
from .service import (
    STORAGE_KEY,
    RemoteStatus,
    SaveResult,
    StorageService,
    SyncResult,
    SyncStatus,
    create_storage,
)

__all__ = [
    "STORAGE_KEY",
    "CloudError",
    "CloudPermissionError",
    "CloudUnavailableError",
    "DebouncedSaver",
    "FirestoreClient",
    "LocalCache",
    "RemoteStatus",
    "SaveResult",
    "SaveState",
    "StorageService",
    "SyncResult",
    "SyncStatus",
    "create_storage",
]
