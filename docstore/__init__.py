from __future__ import annotations

from .bridge import AsyncBridgeClient, BridgeRequest, BridgeServer, WriteOptions
from .cache import SecondaryCache
from .cleaner import DatabaseCleaner, ResetSummary
from .collection import DiskCollectionStore
from .datasets import DATASETS, Dataset, get_dataset
from .errors import (
    DocStoreError,
    DuplicateId,
    InvalidDocument,
    InvalidQuery,
    MalformedCacheEntry,
    StorageFault,
    StoreNotReady,
    UnknownCollection,
)
from .flags import CleanMarkers, SkipSeed
from .recovery import AlternateCollectionReader, CacheReader, PrimaryReader, RecoveringReader
from .registry import COLLECTION_NAMES, StoreRegistry
from .services import LedgerService

__all__ = [
    "AsyncBridgeClient",
    "BridgeRequest",
    "BridgeServer",
    "WriteOptions",
    "SecondaryCache",
    "DatabaseCleaner",
    "ResetSummary",
    "DiskCollectionStore",
    "DATASETS",
    "Dataset",
    "get_dataset",
    "DocStoreError",
    "DuplicateId",
    "InvalidDocument",
    "InvalidQuery",
    "MalformedCacheEntry",
    "StorageFault",
    "StoreNotReady",
    "UnknownCollection",
    "CleanMarkers",
    "SkipSeed",
    "AlternateCollectionReader",
    "CacheReader",
    "PrimaryReader",
    "RecoveringReader",
    "COLLECTION_NAMES",
    "StoreRegistry",
    "LedgerService",
]
