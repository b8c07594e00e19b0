from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from pydantic import BaseModel, Field

from .bridge import AsyncBridgeClient
from .cache import SecondaryCache
from .datasets import get_dataset
from .errors import MalformedCacheEntry, UnknownCollection
from .interfaces import DatasetReader, Document
from .services import LedgerService

logger = logging.getLogger(__name__)

NO_SOURCE = "none"


class PrimaryReader(DatasetReader):
    """Step 1: the service accessor for the dataset's canonical collection."""

    source = "primary"

    def __init__(self, services: LedgerService):
        self._services = services

    async def read(self, dataset: str) -> tuple[str, list[Document]]:
        return self.source, await self._services.list_dataset(dataset)


class CacheReader(DatasetReader):
    """
    Step 2: denormalized copies in the secondary cache, one key at a time.

    A malformed entry is logged and treated as absent; the next key is tried.
    """

    source = "cache"

    def __init__(self, cache: SecondaryCache):
        self._cache = cache

    async def read(self, dataset: str) -> tuple[str, list[Document]]:
        for key in get_dataset(dataset).cache_keys:
            try:
                records = await asyncio.to_thread(self._cache.read_records, key)
            except MalformedCacheEntry as e:
                logger.warning("ignoring cache entry for %s: %s", dataset, e)
                continue
            if records:
                return f"{self.source}:{key}", records
        return self.source, []


class AlternateCollectionReader(DatasetReader):
    """
    Step 3: direct bridge reads against the canonical collection and then every
    alias, bypassing the service accessor.
    """

    source = "collection"

    def __init__(self, client: AsyncBridgeClient):
        self._client = client

    async def read(self, dataset: str) -> tuple[str, list[Document]]:
        for name in get_dataset(dataset).collection_names:
            try:
                docs = await self._client.get(name)
            except UnknownCollection:
                # Aliases are usually not registered collections.
                logger.debug("no collection %s for %s", name, dataset)
                continue
            except Exception as e:
                logger.warning("direct read of %s for %s failed: %s", name, dataset, e)
                continue
            if docs:
                return f"{self.source}:{name}", docs
        return self.source, []


class RecoveryResult(BaseModel):
    dataset: str
    source: str
    documents: list[dict]
    faults: list[str] = []


class RecoveringReader:
    """
    Reads a dataset from the first source that has data, in priority order.

    Every source is isolated: a fault is logged and the next source is tried.
    All sources empty is a normal outcome and yields an empty list.
    """

    def __init__(self, readers: Sequence[DatasetReader]):
        self._readers = list(readers)

    @classmethod
    def default(cls, services: LedgerService, cache: SecondaryCache) -> "RecoveringReader":
        return cls([PrimaryReader(services), CacheReader(cache), AlternateCollectionReader(services.client)])

    async def read_with_source(self, dataset: str) -> RecoveryResult:
        # Resolve up front: a name outside the alias table is a caller bug, not a fault to degrade.
        name = get_dataset(dataset).name
        faults: list[str] = []
        for reader in self._readers:
            try:
                source, docs = await reader.read(name)
            except Exception as e:
                logger.warning("%s source failed for %s: %s", reader.source, name, e)
                faults.append(f"{reader.source}: {e}")
                continue
            if docs:
                logger.debug("%s: %d document(s) from %s", name, len(docs), source)
                return RecoveryResult(dataset=name, source=source, documents=docs, faults=faults)
        logger.info("%s: no data in any source", name)
        return RecoveryResult(dataset=name, source=NO_SOURCE, documents=[], faults=faults)

    async def read(self, dataset: str) -> list[Document]:
        return (await self.read_with_source(dataset)).documents


class SyncResult(BaseModel):
    payables_count: int = Field(default=0, serialization_alias="payablesCount")
    receivables_count: int = Field(default=0, serialization_alias="receivablesCount")


async def sync_ledger_data(reader: RecoveringReader, cache: SecondaryCache) -> SyncResult:
    """
    Copy the current payables and receivables into every cache key of their
    datasets so the fallback path has a recent copy to recover from.
    Empty datasets leave the cache untouched.
    """
    counts: dict[str, int] = {}
    for dataset in ("payables", "receivables"):
        docs = await reader.read(dataset)
        counts[dataset] = len(docs)
        if not docs:
            continue
        for key in get_dataset(dataset).cache_keys:
            try:
                await asyncio.to_thread(cache.write_records, key, docs)
            except OSError as e:
                logger.warning("could not cache %s under %s: %s", dataset, key, e)
        logger.info("synchronized %d %s across cache keys", len(docs), dataset)
    return SyncResult(payables_count=counts["payables"], receivables_count=counts["receivables"])
