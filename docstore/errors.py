from __future__ import annotations

from pathlib import Path


class DocStoreError(Exception):
    """Base class for every error raised by the document store."""


class UnknownCollection(DocStoreError, KeyError):
    """An operation named a collection that is not in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Collection '{name}' does not exist")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0])


class StorageFault(DocStoreError, OSError):
    """The backing file of a collection could not be read or written."""

    def __init__(self, message: str, *, path: Path | None = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return str(self.args[0])


class MalformedCacheEntry(DocStoreError):
    """A secondary cache entry holds something other than a JSON list of documents."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Malformed cache entry '{key}': {reason}")
        self.key = key
        self.reason = reason


class InvalidQuery(DocStoreError, ValueError):
    pass


class InvalidDocument(DocStoreError, ValueError):
    pass


class DuplicateId(DocStoreError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document with _id '{doc_id}' already exists in '{collection}'")
        self.collection = collection
        self.doc_id = doc_id


class StoreNotReady(DocStoreError):
    """The registry has not finished initialization; the bridge is not accepting calls yet."""
