from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Sequence

from .disk_store import DiskJsonDocumentStore
from .errors import MalformedCacheEntry

logger = logging.getLogger(__name__)

EMPTY_ENTRY = "[]"


class SecondaryCache:
    """
    Flat string -> string map persisted next to the collections.

    Values are JSON text, so an entry can be damaged independently of the map
    itself. Nothing here is authoritative: a missing key means "unknown", never
    "no data".
    """

    def __init__(self, store: DiskJsonDocumentStore):
        self._store = store

    def _items(self) -> dict[str, Any]:
        return self._store.load()

    def keys(self) -> list[str]:
        return sorted(self._items())

    def get_item(self, key: str) -> str | None:
        value = self._items().get(key)
        if value is None:
            return None
        # Non-string values only appear when the file was edited by hand.
        return value if isinstance(value, str) else json.dumps(value)

    def set_item(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("cache values must be strings")
        self._store.update(lambda items: items.__setitem__(key, value))

    def remove_item(self, key: str) -> bool:
        return self._store.update(lambda items: items.pop(key, None) is not None)

    def read_records(self, key: str) -> list[dict[str, Any]] | None:
        """
        Parse the entry under ``key`` as a list of documents.

        Returns None when the key is absent; raises MalformedCacheEntry when the
        value is not JSON or not a list of mappings.
        """
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            raise MalformedCacheEntry(key, f"invalid JSON ({e})") from e
        if not isinstance(parsed, list):
            raise MalformedCacheEntry(key, f"expected a list, got {type(parsed).__name__}")
        if not all(isinstance(r, dict) for r in parsed):
            raise MalformedCacheEntry(key, "list contains non-document values")
        return parsed

    def write_records(self, key: str, records: Sequence[Mapping[str, Any]]) -> None:
        self.set_item(key, json.dumps([dict(r) for r in records]))

    def repair(self) -> list[str]:
        """
        Reset every JSON-looking entry that no longer parses to an empty list.
        Plain string values are left alone.
        """

        def _fix(items: dict[str, Any]) -> list[str]:
            fixed: list[str] = []
            for key, value in items.items():
                if not isinstance(value, str) or not value.lstrip().startswith(("[", "{")):
                    continue
                try:
                    json.loads(value)
                except ValueError:
                    items[key] = EMPTY_ENTRY
                    fixed.append(key)
            return sorted(fixed)

        repaired = self._store.update(_fix)
        if repaired:
            logger.warning("reset %d corrupt cache entr(ies): %s", len(repaired), ", ".join(repaired))
        return repaired
