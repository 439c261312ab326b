from .backends import DirectoryStore, FallbackStore, StorageBackend, default_data, flatten
from .errors import StorageError, StoragePersistenceError, StorageReconnectNeeded, StorageSetupRequired
from .kv import KeyValueStore
from .registry import HandleRegistry
from .session import StorageSession
from .sync import DocumentSync, build_document

__all__ = [
    "DirectoryStore",
    "FallbackStore",
    "StorageBackend",
    "default_data",
    "flatten",
    "StorageError",
    "StoragePersistenceError",
    "StorageReconnectNeeded",
    "StorageSetupRequired",
    "KeyValueStore",
    "HandleRegistry",
    "StorageSession",
    "DocumentSync",
    "build_document",
]
