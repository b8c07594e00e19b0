from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

Document = dict[str, Any]
Query = Mapping[str, Any]


class KeyValueDocumentStore(Protocol):
    """
    A single JSON-like document persisted under a key.
    """

    def load(self) -> dict[str, Any]:
        """Load and return the full document (never None)."""
        ...

    def save(self, doc: dict[str, Any]) -> None:
        """Persist the full document atomically."""
        ...


class CollectionStore(Protocol):
    """
    One named collection of schema-less documents with query-by-example access.
    """

    @property
    def name(self) -> str: ...

    def find(self, query: Query | None = None) -> list[Document]: ...
    def find_one(self, query: Query | None = None) -> Document | None: ...
    def insert(self, document: Mapping[str, Any]) -> Document: ...
    def update(self, query: Query, patch: Mapping[str, Any], *, multi: bool = False, upsert: bool = False) -> int: ...
    def remove(self, query: Query | None = None, *, multi: bool = False) -> int: ...
    def count(self, query: Query | None = None) -> int: ...
    def replace_all(self, documents: Sequence[Mapping[str, Any]]) -> int: ...


class DatasetReader(Protocol):
    """One source the fallback layer can read a logical dataset from."""

    @property
    def source(self) -> str: ...

    async def read(self, dataset: str) -> tuple[str, list[Document]]:
        """Return (source label, documents); an empty list means "nothing here"."""
        ...
