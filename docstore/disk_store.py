from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, TypeVar

from json_store import atomic_write_json, read_json

from .interfaces import KeyValueDocumentStore
from .locks import GLOBAL_PATH_LOCKS

T = TypeVar("T")


class DiskJsonDocumentStore(KeyValueDocumentStore):
    """
    Stores a single JSON document on disk at a fixed path.

    - Always returns a dict (empty dict on missing/invalid JSON).
    - Writes atomically.

    Backs the non-authoritative files (secondary cache, clean flags), where a
    damaged file should read as empty rather than fail. Collections use
    DiskCollectionStore, which raises instead.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            raw = read_json(self._path)
            return raw if isinstance(raw, dict) else {}

    def save(self, doc: dict[str, Any]) -> None:
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            atomic_write_json(self._path, doc)

    def update(self, mutate: Callable[[dict[str, Any]], T]) -> T:
        """
        Load, mutate in place and save, all under the path lock.
        Returns whatever ``mutate`` returns.
        """
        with GLOBAL_PATH_LOCKS.lock_for(self._path):
            doc = self.load()
            result = mutate(doc)
            self.save(doc)
            return result
