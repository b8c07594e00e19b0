from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field

from .bridge import AsyncBridgeClient
from .collection import check_id
from .errors import DuplicateId, InvalidDocument
from .query import ID_FIELD
from .registry import COLLECTION_NAMES

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

BackupKind = Literal["all", "stock", "customers", "transactions", "ledgers"]

_KIND_COLLECTIONS: dict[str, tuple[str, ...]] = {
    "all": COLLECTION_NAMES,
    "stock": ("stock",),
    "customers": ("customers",),
    "transactions": ("bills", "purchases", "payments", "receipts", "expenses"),
    "ledgers": ("cashLedger", "bankLedger", "tradePayable", "tradeReceivable"),
}


class BackupMetadata(BaseModel):
    version: str = BACKUP_VERSION
    date: str
    type: str = "all"


class Backup(BaseModel):
    """
    Mirrors the exported backup file:
      { "metadata": {"version": "1.0", "date": "...", "type": "all"}, "data": {"<collection>": [...]} }
    """

    metadata: BackupMetadata
    data: dict[str, Any] = Field(default_factory=dict)


async def export_backup(client: AsyncBridgeClient, kind: BackupKind = "all") -> Backup:
    data: dict[str, Any] = {}
    for name in _KIND_COLLECTIONS[kind]:
        try:
            data[name] = await client.get(name)
        except Exception as e:
            logger.error("backup: could not read %s: %s", name, e)
            data[name] = []
    return Backup(metadata=BackupMetadata(date=datetime.now().isoformat(), type=kind), data=data)


async def restore_backup(
    client: AsyncBridgeClient,
    backup: Backup | Mapping[str, Any],
    *,
    replace: bool = False,
) -> dict[str, int]:
    """
    Load a backup into the store.

    replace=True overwrites each collection present in the backup; otherwise
    only documents whose _id is not already stored are inserted. Collections
    the registry does not know and payloads that are not lists are skipped, as
    are records whose _id is unusable; the other collections still load.
    """
    bk = backup if isinstance(backup, Backup) else Backup.model_validate(backup)
    restored: dict[str, int] = {}
    for name, docs in bk.data.items():
        if name not in COLLECTION_NAMES:
            logger.warning("restore: unknown collection %s, skipping", name)
            continue
        if not isinstance(docs, list) or not all(isinstance(d, dict) for d in docs):
            logger.warning("restore: skipping %s, invalid data format", name)
            continue

        if replace:
            try:
                restored[name] = await client.set(name, docs)
            except (InvalidDocument, DuplicateId) as e:
                logger.warning("restore: skipping %s: %s", name, e)
                continue
        else:
            existing = {d.get(ID_FIELD) for d in await client.get(name)}
            added = 0
            for doc in docs:
                doc_id = doc.get(ID_FIELD)
                if doc_id is not None:
                    try:
                        check_id(doc_id)
                    except InvalidDocument as e:
                        logger.warning("restore: skipping a %s record: %s", name, e)
                        continue
                    if doc_id in existing:
                        continue
                try:
                    stored = await client.insert(name, doc)
                except (InvalidDocument, DuplicateId) as e:
                    logger.warning("restore: skipping a %s record: %s", name, e)
                    continue
                existing.add(stored[ID_FIELD])
                added += 1
            restored[name] = added
        logger.info("restore: %d record(s) into %s", restored[name], name)
    return restored
