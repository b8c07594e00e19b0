from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import BaseModel, Field

from .collection import DiskCollectionStore
from .errors import UnknownCollection
from .flags import SkipSeed
from .paths import collection_path

logger = logging.getLogger(__name__)

COLLECTION_NAMES: tuple[str, ...] = (
    "customers",
    "stock",
    "bills",
    "payments",
    "cashLedger",
    "bankLedger",
    "tradeReceivable",
    "tradePayable",
    "purchases",
    "receipts",
    "expenses",
    "expenseCategories",
)

DEFAULT_EXPENSE_CATEGORIES: tuple[str, ...] = (
    "shop",
    "home",
    "salary",
    "rent",
    "utilities",
    "travel",
    "office",
    "other",
)


class SeedReport(BaseModel):
    seeded: list[str] = Field(default_factory=list)
    skipped: bool = False
    reason: str | None = None


def _seed_documents(now: datetime) -> dict[str, list[dict]]:
    created = now.isoformat()
    today = now.date().isoformat()
    return {
        "cashLedger": [
            {
                "date": today,
                "description": "Initial Cash Balance",
                "reference": "INIT-001",
                "cashIn": 0,
                "cashOut": 0,
                "balance": 0,
                "createdAt": created,
            }
        ],
        "bankLedger": [
            {
                "date": today,
                "description": "Initial Bank Balance",
                "reference": "INIT-001",
                "deposit": 0,
                "withdrawal": 0,
                "balance": 0,
                "createdAt": created,
            }
        ],
        "expenseCategories": [{"name": name, "createdAt": created} for name in DEFAULT_EXPENSE_CATEGORIES],
    }


class StoreRegistry:
    """
    The fixed set of named collections, one file each under <data_dir>/collections.

    The set of names is declared up front; looking up any other name raises
    UnknownCollection instead of creating a collection on the fly.
    """

    def __init__(self, data_dir: Path, names: Iterable[str] = COLLECTION_NAMES):
        self._data_dir = data_dir
        self._stores: dict[str, DiskCollectionStore] = {}
        for name in names:
            if name in self._stores:
                raise ValueError(f"duplicate collection name: {name}")
            self._stores[name] = DiskCollectionStore(name, collection_path(data_dir, name))
        self._ready = threading.Event()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._stores)

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def __contains__(self, name: object) -> bool:
        return name in self._stores

    def __iter__(self) -> Iterator[DiskCollectionStore]:
        return iter(self._stores.values())

    def collection(self, name: str) -> DiskCollectionStore:
        store = self._stores.get(name)
        if store is None:
            raise UnknownCollection(name)
        return store

    def open(self) -> list[str]:
        """Allocate every missing collection file. Returns the names that were created."""
        created = [store.name for store in self if store.ensure()]
        if created:
            logger.info("allocated %d collection file(s): %s", len(created), ", ".join(created))
        return created

    def initialize(self, *, skip_seed: SkipSeed | None = None, now: datetime | None = None) -> SeedReport:
        """
        Seed first-run data and mark the registry ready for bridge calls.

        Each seed target is only written when its collection is empty, so
        running this again is a no-op. An active SkipSeed suppresses seeding
        entirely (used right after a destructive reset).
        """
        self.open()
        skip = skip_seed or SkipSeed.never()
        ts = now or datetime.now()

        if skip.in_effect(ts.timestamp() if now is not None else None):
            logger.info("skipping seed data: %s", skip.reason or "suppressed")
            self._ready.set()
            return SeedReport(skipped=True, reason=skip.reason)

        report = SeedReport()
        for name, docs in _seed_documents(ts).items():
            store = self.collection(name)
            if store.count({}) != 0:
                continue
            for doc in docs:
                store.insert(doc)
            report.seeded.append(name)
            logger.info("seeded %s with %d document(s)", name, len(docs))

        self._ready.set()
        return report
