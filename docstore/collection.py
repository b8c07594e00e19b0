from __future__ import annotations

import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Mapping, Sequence

from json_store import atomic_write_json, read_json_strict

from .errors import DuplicateId, InvalidDocument, StorageFault
from .interfaces import CollectionStore, Document, Query
from .locks import GLOBAL_PATH_LOCKS
from .query import ID_FIELD, apply_patch, matches, upsert_seed, validate_query

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex[:16]


def check_id(doc_id: Any) -> None:
    if isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)):
        raise InvalidDocument(f"_id must be a string or integer, got {type(doc_id).__name__}")


def _ensure_json(doc: Any, what: str) -> None:
    try:
        json.dumps(doc)
    except (TypeError, ValueError) as e:
        raise InvalidDocument(f"{what} is not JSON-serializable: {e}") from e


class DiskCollectionStore(CollectionStore):
    """
    One collection persisted as a single JSON file:

      { "documents": [ {"_id": "...", ...}, ... ] }

    Every operation takes the file's path lock for its whole read-modify-write,
    and every write replaces the file atomically, so callers never observe a
    partially written document. Unlike DiskJsonDocumentStore, an unreadable or
    damaged file is a StorageFault, not an empty collection.
    """

    def __init__(self, name: str, path: Path):
        self._name = name
        self._path = path

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    def _lock(self):
        return GLOBAL_PATH_LOCKS.lock_for(self._path)

    def _read(self) -> list[Document]:
        try:
            raw = read_json_strict(self._path)
        except (OSError, ValueError) as e:
            raise StorageFault(f"cannot read collection '{self._name}': {e}", path=self._path) from e
        if raw is None:
            return []
        docs = raw.get("documents") if isinstance(raw, dict) else None
        if not isinstance(docs, list) or not all(isinstance(d, dict) for d in docs):
            raise StorageFault(f"collection '{self._name}' has an unexpected file layout", path=self._path)
        return docs

    def _write(self, docs: list[Document]) -> None:
        try:
            atomic_write_json(self._path, {"documents": docs}, sort_keys=False)
        except OSError as e:
            raise StorageFault(f"cannot write collection '{self._name}': {e}", path=self._path) from e

    def ensure(self) -> bool:
        """Allocate the backing file if it does not exist yet. Returns True when created."""
        with self._lock():
            if self._path.exists():
                return False
            self._write([])
            logger.debug("created collection file %s", self._path)
            return True

    def find(self, query: Query | None = None) -> list[Document]:
        q = validate_query(query)
        with self._lock():
            return [copy.deepcopy(d) for d in self._read() if matches(d, q)]

    def find_one(self, query: Query | None = None) -> Document | None:
        q = validate_query(query)
        with self._lock():
            for d in self._read():
                if matches(d, q):
                    return copy.deepcopy(d)
        return None

    def count(self, query: Query | None = None) -> int:
        q = validate_query(query)
        with self._lock():
            return sum(1 for d in self._read() if matches(d, q))

    def insert(self, document: Mapping[str, Any]) -> Document:
        if not isinstance(document, Mapping):
            raise InvalidDocument(f"document must be a mapping, got {type(document).__name__}")
        doc = copy.deepcopy(dict(document))
        _ensure_json(doc, "document")
        with self._lock():
            docs = self._read()
            existing = {d.get(ID_FIELD) for d in docs}
            if ID_FIELD not in doc or doc[ID_FIELD] is None:
                doc_id = new_id()
                while doc_id in existing:
                    doc_id = new_id()
                doc[ID_FIELD] = doc_id
            else:
                check_id(doc[ID_FIELD])
                if doc[ID_FIELD] in existing:
                    raise DuplicateId(self._name, str(doc[ID_FIELD]))
            docs.append(doc)
            self._write(docs)
        return copy.deepcopy(doc)

    def update(self, query: Query, patch: Mapping[str, Any], *, multi: bool = False, upsert: bool = False) -> int:
        q = validate_query(query)
        with self._lock():
            docs = self._read()
            modified = 0
            for i, d in enumerate(docs):
                if not matches(d, q):
                    continue
                updated = apply_patch(d, patch)
                _ensure_json(updated, "updated document")
                docs[i] = updated
                modified += 1
                if not multi:
                    break

            if modified == 0:
                if not upsert:
                    return 0
                created = apply_patch(upsert_seed(q), patch)
                _ensure_json(created, "upserted document")
                existing = {d.get(ID_FIELD) for d in docs}
                if created.get(ID_FIELD) is None:
                    created[ID_FIELD] = new_id()
                else:
                    check_id(created[ID_FIELD])
                    if created[ID_FIELD] in existing:
                        raise DuplicateId(self._name, str(created[ID_FIELD]))
                docs.append(created)
                modified = 1

            self._write(docs)
            return modified

    def remove(self, query: Query | None = None, *, multi: bool = False) -> int:
        q = validate_query(query)
        with self._lock():
            docs = self._read()
            kept: list[Document] = []
            removed = 0
            for d in docs:
                if matches(d, q) and (multi or removed == 0):
                    removed += 1
                    continue
                kept.append(d)
            if removed:
                self._write(kept)
            return removed

    def replace_all(self, documents: Sequence[Mapping[str, Any]]) -> int:
        """
        Overwrite the whole collection. Documents without an _id get one;
        duplicate ids within the new contents are rejected before anything is written.
        """
        docs: list[Document] = []
        seen: set[Any] = set()
        for document in documents:
            if not isinstance(document, Mapping):
                raise InvalidDocument(f"document must be a mapping, got {type(document).__name__}")
            doc = copy.deepcopy(dict(document))
            if doc.get(ID_FIELD) is None:
                doc[ID_FIELD] = new_id()
            check_id(doc[ID_FIELD])
            if doc[ID_FIELD] in seen:
                raise DuplicateId(self._name, str(doc[ID_FIELD]))
            seen.add(doc[ID_FIELD])
            docs.append(doc)
        _ensure_json(docs, "documents")
        with self._lock():
            self._write(docs)
        return len(docs)
