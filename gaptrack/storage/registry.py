from __future__ import annotations

from gaptrack.storage.kv import KeyValueStore

DIR_KEY = "gaptrack-dir"
HAS_FOLDER_KEY = "gaptrack-has-folder"


class HandleRegistry:
    """Remembers the chosen storage folder across restarts."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def directory(self) -> str | None:
        return self._kv.get(DIR_KEY) or None

    def has_folder(self) -> bool:
        return self._kv.get(HAS_FOLDER_KEY) == "true"

    def remember(self, path: str) -> None:
        self._kv.set(DIR_KEY, path)
        self._kv.set(HAS_FOLDER_KEY, "true")
