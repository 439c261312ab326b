from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError

from gaptrack.schemas import Category, Document, dump_category, to_category, utc_now, validate_category
from gaptrack.storage.backends import LIST_CATEGORIES, StorageBackend
from gaptrack.storage.errors import StorageError, StoragePersistenceError, StorageReconnectNeeded

logger = logging.getLogger(__name__)


def _coerce(category: Category, value: Any) -> Any:
    try:
        return validate_category(category, value)
    except ValidationError as exc:
        logger.warning("storage_category_invalid category=%s errors=%s", category.value, exc.error_count())

    if category in LIST_CATEGORIES and isinstance(value, list):
        kept = []
        for item in value:
            try:
                kept.extend(validate_category(category, [item]))
            except ValidationError:
                continue
        return kept
    return validate_category(category, None)


def build_document(raw: dict[str, Any]) -> Document:
    """Validate a flat document read from a backend, dropping records that do not fit."""
    values = {category.value: _coerce(category, raw.get(category.value)) for category in Category}
    return Document(**values, updated_at=raw.get("updatedAt") or utc_now())


class DocumentSync:
    """Owns the in-memory document and writes category changes back to storage.

    Reads never touch the backend. ``replace_category`` swaps the value in
    memory synchronously and leaves persistence to one writer task per
    category. A writer always serialises the value that is current when it
    runs, so replaces that pile up while a write is in flight collapse into
    a single follow-up write of the latest value.
    """

    def __init__(self, backend: StorageBackend | None = None):
        self._backend = backend
        self._document = Document()
        self._dirty: set[Category] = set()
        self._writers: dict[Category, asyncio.Task] = {}
        self.persistence_error: StorageError | None = None
        self.loaded = False

    @property
    def backend(self) -> StorageBackend | None:
        return self._backend

    @property
    def document(self) -> Document:
        return self._document

    @property
    def reconnect_needed(self) -> bool:
        return self.persistence_error is not None and self.persistence_error.code == "reconnect_needed"

    @property
    def pending_categories(self) -> set[Category]:
        return set(self._dirty)

    def attach(self, backend: StorageBackend) -> None:
        if self._backend is not None and self._backend.kind != backend.kind:
            raise StorageError("Storage type cannot change while the app is running.", code="storage_locked")
        self._backend = backend

    def get(self, name: str | Category) -> Any:
        return getattr(self._document, to_category(name).value)

    def snapshot(self) -> dict[str, Any]:
        return self._document.to_json_dict()

    async def load(self) -> Document:
        if self._backend is None:
            return self._document
        raw = await self._backend.read_all()
        self._document = build_document(raw)
        self._dirty.clear()
        self.persistence_error = None
        self.loaded = True
        return self._document

    def replace_category(self, name: str | Category, value: Any) -> Any:
        """Replace one category wholesale and schedule its write.

        Raises ``pydantic.ValidationError`` before touching the document when
        ``value`` does not validate, and ``StorageReconnectNeeded`` while the
        attached backend has never loaded. Must be called from the event loop.
        """
        category = to_category(name)
        if self._backend is not None and not self.loaded:
            raise StorageReconnectNeeded()
        validated = validate_category(category, value)
        stamp = utc_now()
        if category not in LIST_CATEGORIES:
            validated = validated.model_copy(update={"updated_at": stamp})
        self._document = self._document.model_copy(update={category.value: validated, "updated_at": stamp})
        self._schedule(category)
        return validated

    def _schedule(self, category: Category) -> None:
        self._dirty.add(category)
        if self._backend is None:
            return
        writer = self._writers.get(category)
        if writer is None or writer.done():
            self._writers[category] = asyncio.get_running_loop().create_task(self._write_loop(category))

    async def _write_loop(self, category: Category) -> None:
        while category in self._dirty and self._backend is not None:
            self._dirty.discard(category)
            value = dump_category(category, getattr(self._document, category.value))
            try:
                await self._backend.write_category(category, value)
            except Exception as exc:  # noqa: BLE001
                error = exc if isinstance(exc, StorageError) else StoragePersistenceError(str(exc))
                self._dirty.add(category)
                self.persistence_error = error
                logger.warning(
                    json.dumps(
                        {
                            "event": "storage_write_failed",
                            "backend": self._backend.kind,
                            "category": category.value,
                            "code": error.code,
                            "error": str(error),
                        }
                    )
                )
                return
            logger.info(
                json.dumps({"event": "storage_write", "backend": self._backend.kind, "category": category.value})
            )
        if self.persistence_error is not None and not self._dirty:
            self.persistence_error = None

    def retry_pending(self) -> None:
        for category in list(self._dirty):
            self._schedule(category)

    async def flush(self) -> None:
        while True:
            pending = [task for task in self._writers.values() if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def reset(self) -> Document:
        for task in self._writers.values():
            if not task.done():
                task.cancel()
        await asyncio.gather(*self._writers.values(), return_exceptions=True)
        self._writers.clear()
        self._dirty.clear()
        self.persistence_error = None
        if self._backend is None:
            self._document = Document()
            return self._document
        await self._backend.reset()
        return await self.load()
