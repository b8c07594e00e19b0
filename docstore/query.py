from __future__ import annotations

import copy
from typing import Any, Mapping

from .errors import InvalidDocument, InvalidQuery

ID_FIELD = "_id"
MODIFIERS = ("$set", "$unset", "$inc", "$push")

_MISSING = object()


def _lookup(doc: Mapping[str, Any], path: str) -> Any:
    cur: Any = doc
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def validate_query(query: Mapping[str, Any] | None) -> dict[str, Any]:
    if query is None:
        return {}
    if not isinstance(query, Mapping):
        raise InvalidQuery(f"query must be a mapping, got {type(query).__name__}")
    for key in query:
        if not isinstance(key, str) or not key:
            raise InvalidQuery(f"query field names must be non-empty strings: {key!r}")
        if key.startswith("$"):
            raise InvalidQuery(f"query operators are not supported: {key}")
    return dict(query)


def matches(doc: Mapping[str, Any], query: Mapping[str, Any]) -> bool:
    """
    Equality-only query-by-example: every query field must be present in the
    document and equal to the query value. An empty query matches everything.
    """
    for path, expected in query.items():
        actual = _lookup(doc, path)
        if actual is _MISSING or actual != expected:
            return False
        # 1 == True in Python; JSON keeps them apart.
        if isinstance(actual, bool) != isinstance(expected, bool):
            return False
    return True


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = doc
    for part in parts[:-1]:
        nxt = cur.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[part] = nxt
        cur = nxt
    cur[parts[-1]] = value


def _unset_path(doc: dict[str, Any], path: str) -> None:
    parts = path.split(".")
    cur: Any = doc
    for part in parts[:-1]:
        cur = cur.get(part) if isinstance(cur, dict) else None
        if cur is None:
            return
    if isinstance(cur, dict):
        cur.pop(parts[-1], None)


def _modifier_fields(op: str, fields: Any) -> Mapping[str, Any]:
    if not isinstance(fields, Mapping):
        raise InvalidDocument(f"{op} expects a mapping of fields")
    for path in fields:
        if path == ID_FIELD or str(path).startswith(ID_FIELD + "."):
            raise InvalidDocument("the _id field cannot be modified")
    return fields


def apply_patch(doc: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return a new document with ``patch`` applied.

    A plain patch merges its top-level fields into the document. A modifier
    patch uses only $set, $unset, $inc and $push; mixing both forms is rejected.
    """
    if not isinstance(patch, Mapping):
        raise InvalidDocument(f"patch must be a mapping, got {type(patch).__name__}")

    ops = [k for k in patch if isinstance(k, str) and k.startswith("$")]
    out = copy.deepcopy(dict(doc))

    if not ops:
        if ID_FIELD in patch and patch[ID_FIELD] != doc.get(ID_FIELD):
            raise InvalidDocument("the _id field cannot be modified")
        out.update(copy.deepcopy(dict(patch)))
        return out

    if len(ops) != len(patch):
        raise InvalidDocument("cannot mix modifiers and plain fields in one patch")

    for op in ops:
        if op not in MODIFIERS:
            raise InvalidDocument(f"unsupported modifier: {op}")
        fields = _modifier_fields(op, patch[op])
        for path, value in fields.items():
            if op == "$set":
                _set_path(out, path, copy.deepcopy(value))
            elif op == "$unset":
                _unset_path(out, path)
            elif op == "$inc":
                current = _lookup(out, path)
                if current is _MISSING:
                    current = 0
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise InvalidDocument(f"$inc on '{path}' needs a number")
                if isinstance(current, bool) or not isinstance(current, (int, float)):
                    raise InvalidDocument(f"$inc on non-numeric field '{path}'")
                _set_path(out, path, current + value)
            else:  # $push
                current = _lookup(out, path)
                if current is _MISSING:
                    current = []
                if not isinstance(current, list):
                    raise InvalidDocument(f"$push on non-list field '{path}'")
                _set_path(out, path, [*current, copy.deepcopy(value)])
    return out


def upsert_seed(query: Mapping[str, Any]) -> dict[str, Any]:
    """Build the base document for an upsert from the literal fields of a query."""
    base: dict[str, Any] = {}
    for path, value in query.items():
        _set_path(base, path, copy.deepcopy(value))
    return base
