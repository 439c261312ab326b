from __future__ import annotations


class StorageError(RuntimeError):
    def __init__(self, message: str, *, code: str = "storage_error"):
        super().__init__(message)
        self.code = code


class StorageReconnectNeeded(StorageError):
    """The storage folder is gone or no longer writable; re-grant access to continue."""

    def __init__(self, message: str = "Storage folder access was lost. Reconnect the folder to keep saving."):
        super().__init__(message, code="reconnect_needed")


class StoragePersistenceError(StorageError):
    def __init__(self, message: str):
        super().__init__(message, code="storage_error")


class StorageSetupRequired(StorageError):
    def __init__(self, message: str = "Choose a folder to store your data first."):
        super().__init__(message, code="needs_setup")
