from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Protocol

from gaptrack.schemas import Category, to_category, utc_now
from gaptrack.storage.errors import StoragePersistenceError, StorageReconnectNeeded
from gaptrack.storage.kv import KeyValueStore

logger = logging.getLogger(__name__)

FILES = {
    Category.APPLICATIONS: "jobs.json",
    Category.CONTACTS: "contacts.json",
    Category.RESUME: "resume.json",
    Category.SETTINGS: "settings.json",
}
LIST_CATEGORIES = frozenset({Category.APPLICATIONS, Category.CONTACTS})
FALLBACK_KEY = "gaptrack-data"
FORMAT_VERSION = 1


def default_data() -> dict[str, dict[str, Any]]:
    """Default body of each persisted file, keyed by category."""
    now = utc_now()

    def header() -> dict[str, Any]:
        return {"version": FORMAT_VERSION, "createdAt": now, "updatedAt": now}

    return {
        Category.APPLICATIONS.value: {**header(), "items": []},
        Category.CONTACTS.value: {**header(), "items": []},
        Category.RESUME.value: {
            **header(),
            "fileName": None,
            "content": None,
            "parsedData": None,
            "uploadedAt": None,
        },
        Category.SETTINGS.value: {
            **header(),
            "aiProvider": None,
            "geminiApiKey": None,
            "openaiApiKey": None,
            "ollamaModel": "mistral",
            "viewPreference": "list",
        },
    }


def flatten(raw: dict[str, Any] | None) -> dict[str, Any]:
    """Turn per-file bodies into the flat document shape, defaulting gaps."""
    raw = raw or {}
    defaults = default_data()
    flat: dict[str, Any] = {}
    for category in Category:
        body = raw.get(category.value)
        if category in LIST_CATEGORIES:
            items = body.get("items") if isinstance(body, dict) else None
            flat[category.value] = items if isinstance(items, list) else []
        else:
            flat[category.value] = body if isinstance(body, dict) else defaults[category.value]
    flat["updatedAt"] = utc_now()
    return flat


def _stamp_body(category: Category, value: Any, stamp: str, existing: dict[str, Any] | None) -> dict[str, Any]:
    existing = existing or {}
    if category in LIST_CATEGORIES:
        return {
            "version": existing.get("version", FORMAT_VERSION),
            "createdAt": existing.get("createdAt", stamp),
            "updatedAt": stamp,
            "items": list(value or []),
        }
    body = dict(value or {})
    body.setdefault("version", existing.get("version", FORMAT_VERSION))
    body.setdefault("createdAt", existing.get("createdAt", stamp))
    body["updatedAt"] = stamp
    return body


class StorageBackend(Protocol):
    kind: str

    async def read_all(self) -> dict[str, Any]: ...

    async def write_category(self, name: str | Category, value: Any) -> str: ...

    async def initialize_defaults(self) -> None: ...

    async def reset(self) -> None: ...

    async def verify_permission(self) -> bool: ...


class DirectoryStore:
    """One pretty-printed JSON file per category inside a user-chosen folder."""

    kind = "directory"

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def _has_access(self) -> bool:
        return self.path.is_dir() and os.access(self.path, os.R_OK | os.W_OK | os.X_OK)

    def _require_access(self) -> None:
        if not self._has_access():
            raise StorageReconnectNeeded()

    def _read_file(self, category: Category) -> dict[str, Any] | None:
        file_path = self.path / FILES[category]
        try:
            if not file_path.exists():
                return None
            text = file_path.read_text(encoding="utf-8")
        except PermissionError as exc:
            raise StorageReconnectNeeded() from exc
        except OSError as exc:
            raise StoragePersistenceError(f"Could not read {file_path.name}: {exc}") from exc

        if not text.strip():
            return None
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("storage_file_unreadable file=%s", file_path.name)
            return None
        return data if isinstance(data, dict) else None

    def _write_file(self, category: Category, body: dict[str, Any]) -> None:
        self._require_access()
        file_path = self.path / FILES[category]
        tmp_path = file_path.with_name(f".{file_path.name}.tmp")
        try:
            tmp_path.write_text(json.dumps(body, indent=2, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, file_path)
        except (PermissionError, FileNotFoundError) as exc:
            raise StorageReconnectNeeded() from exc
        except OSError as exc:
            raise StoragePersistenceError(f"Could not write {file_path.name}: {exc}") from exc

    def _read_all_sync(self) -> dict[str, Any]:
        self._require_access()
        return flatten({category.value: self._read_file(category) for category in Category})

    def _write_category_sync(self, category: Category, value: Any) -> str:
        stamp = utc_now()
        body = _stamp_body(category, value, stamp, self._read_file(category))
        self._write_file(category, body)
        return stamp

    def _initialize_defaults_sync(self) -> None:
        self._require_access()
        defaults = default_data()
        for category in Category:
            if self._read_file(category) is None:
                self._write_file(category, defaults[category.value])

    def _reset_sync(self) -> None:
        self._require_access()
        for file_name in FILES.values():
            try:
                (self.path / file_name).unlink(missing_ok=True)
            except OSError as exc:
                raise StoragePersistenceError(f"Could not remove {file_name}: {exc}") from exc
        self._initialize_defaults_sync()

    async def verify_permission(self) -> bool:
        return await asyncio.to_thread(self._has_access)

    async def read_all(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read_all_sync)

    async def write_category(self, name: str | Category, value: Any) -> str:
        return await asyncio.to_thread(self._write_category_sync, to_category(name), value)

    async def initialize_defaults(self) -> None:
        await asyncio.to_thread(self._initialize_defaults_sync)

    async def reset(self) -> None:
        await asyncio.to_thread(self._reset_sync)


class FallbackStore:
    """The whole flat document as one JSON blob under a single key."""

    kind = "fallback"

    def __init__(self, kv: KeyValueStore, key: str = FALLBACK_KEY):
        self._kv = kv
        self._key = key
        self._lock = threading.Lock()

    def _load_blob(self) -> dict[str, Any] | None:
        stored = self._kv.get(self._key)
        if not stored:
            return None
        try:
            data = json.loads(stored)
        except ValueError:
            logger.warning("storage_blob_unreadable key=%s", self._key)
            return None
        return data if isinstance(data, dict) else None

    def _save_blob(self, blob: dict[str, Any]) -> None:
        try:
            self._kv.set(self._key, json.dumps(blob, ensure_ascii=False))
        except Exception as exc:  # noqa: BLE001
            raise StoragePersistenceError(f"Could not save data: {exc}") from exc

    def _complete(self, blob: dict[str, Any] | None) -> dict[str, Any]:
        defaults = flatten(None)
        merged = dict(blob or {})
        for category in Category:
            value = merged.get(category.value)
            expected = list if category in LIST_CATEGORIES else dict
            if not isinstance(value, expected):
                merged[category.value] = defaults[category.value]
        merged.setdefault("updatedAt", defaults["updatedAt"])
        return merged

    def _read_all_sync(self) -> dict[str, Any]:
        with self._lock:
            return self._complete(self._load_blob())

    def _write_category_sync(self, category: Category, value: Any) -> str:
        stamp = utc_now()
        with self._lock:
            blob = self._complete(self._load_blob())
            if category in LIST_CATEGORIES:
                blob[category.value] = list(value or [])
            else:
                blob[category.value] = _stamp_body(category, value, stamp, blob.get(category.value))
            blob["updatedAt"] = stamp
            self._save_blob(blob)
        return stamp

    def _initialize_defaults_sync(self) -> None:
        with self._lock:
            current = self._load_blob()
            completed = self._complete(current)
            if completed != current:
                self._save_blob(completed)

    def _reset_sync(self) -> None:
        with self._lock:
            self._kv.delete(self._key)
        self._initialize_defaults_sync()

    async def verify_permission(self) -> bool:
        return True

    async def read_all(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read_all_sync)

    async def write_category(self, name: str | Category, value: Any) -> str:
        return await asyncio.to_thread(self._write_category_sync, to_category(name), value)

    async def initialize_defaults(self) -> None:
        await asyncio.to_thread(self._initialize_defaults_sync)

    async def reset(self) -> None:
        await asyncio.to_thread(self._reset_sync)
