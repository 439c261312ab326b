from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from gaptrack.core.config import Settings
from gaptrack.schemas import Document
from gaptrack.storage.backends import DirectoryStore, FallbackStore
from gaptrack.storage.errors import StorageError, StorageReconnectNeeded, StorageSetupRequired
from gaptrack.storage.kv import KeyValueStore
from gaptrack.storage.registry import HandleRegistry
from gaptrack.storage.sync import DocumentSync

logger = logging.getLogger(__name__)


class StorageSession:
    """Picks the storage backend once per run and owns the document it feeds."""

    def __init__(self, config: Settings, kv: KeyValueStore | None = None):
        self._config = config
        self._kv = kv or KeyValueStore(config.storage_db_path)
        self.registry = HandleRegistry(self._kv)
        self.sync = DocumentSync()
        self.storage_type: str | None = None
        self.started = False

    @property
    def document(self) -> Document:
        return self.sync.document

    @property
    def needs_setup(self) -> bool:
        return self.storage_type == "directory" and self.sync.backend is None

    def require_ready(self) -> DocumentSync:
        if self.needs_setup:
            raise StorageSetupRequired()
        # Edits before the first successful load would overwrite what is on disk.
        if not self.sync.loaded:
            raise StorageReconnectNeeded()
        return self.sync

    async def start(self) -> None:
        if self.started:
            return
        self.started = True

        if not self._config.directory_storage_enabled:
            self.storage_type = "fallback"
            backend = FallbackStore(self._kv)
            await backend.initialize_defaults()
            self.sync.attach(backend)
            await self.sync.load()
            self._log_start()
            return

        self.storage_type = "directory"
        remembered = self.registry.directory()
        if remembered and self.registry.has_folder():
            self.sync.attach(DirectoryStore(remembered))
            try:
                await self.sync.load()
            except StorageError as exc:
                self.sync.persistence_error = exc
                logger.warning("storage_folder_unavailable path=%s code=%s", remembered, exc.code)
        self._log_start()

    def _log_start(self) -> None:
        logger.info(
            json.dumps(
                {
                    "event": "storage_started",
                    "storage_type": self.storage_type,
                    "needs_setup": self.needs_setup,
                    "reconnect_needed": self.sync.reconnect_needed,
                }
            )
        )

    def _require_directory_mode(self) -> None:
        if self.storage_type != "directory":
            raise StorageError("Folder storage is not available in this session.", code="storage_locked")

    async def setup_directory(self, path: str) -> Document:
        """First-time setup: create the folder if needed and write default files."""
        self._require_directory_mode()
        folder = Path(path).expanduser().resolve()
        await asyncio.to_thread(folder.mkdir, parents=True, exist_ok=True)
        backend = DirectoryStore(folder)
        await backend.initialize_defaults()
        return await self._bind(backend)

    async def open_directory(self, path: str) -> Document:
        """Use an existing folder as is; missing files read as defaults."""
        self._require_directory_mode()
        backend = DirectoryStore(Path(path).expanduser().resolve())
        if not await backend.verify_permission():
            raise StorageReconnectNeeded(f"Folder '{path}' does not exist or is not writable.")
        return await self._bind(backend)

    async def _bind(self, backend: DirectoryStore) -> Document:
        if self.sync.backend is None:
            self.sync.attach(backend)
        else:
            await self.sync.flush()
            self.sync = DocumentSync(backend)
        document = await self.sync.load()
        self.registry.remember(str(backend.path))
        return document

    async def reconnect(self) -> Document:
        """Re-validate folder access and push the in-memory state back to disk."""
        backend = self.sync.backend
        if backend is None:
            raise StorageSetupRequired()
        if not await backend.verify_permission():
            error = StorageReconnectNeeded()
            self.sync.persistence_error = error
            raise error
        self.sync.persistence_error = None
        if not self.sync.loaded:
            return await self.sync.load()
        self.sync.retry_pending()
        await self.sync.flush()
        return self.sync.document

    async def reset(self) -> Document:
        self.require_ready()
        return await self.sync.reset()

    def status(self) -> dict[str, Any]:
        error = self.sync.persistence_error
        backend = self.sync.backend
        return {
            "storageType": self.storage_type,
            "needsSetup": self.needs_setup,
            "reconnectNeeded": self.sync.reconnect_needed,
            "directory": str(backend.path) if isinstance(backend, DirectoryStore) else None,
            "pending": sorted(category.value for category in self.sync.pending_categories),
            "error": None if error is None else {"code": error.code, "message": str(error)},
        }

    async def close(self) -> None:
        await self.sync.flush()
        self._kv.close()
