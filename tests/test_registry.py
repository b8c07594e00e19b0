from __future__ import annotations

import time
from datetime import datetime

import pytest

from docstore.disk_store import DiskJsonDocumentStore
from docstore.errors import UnknownCollection
from docstore.flags import CleanMarkers, SkipSeed
from docstore.registry import COLLECTION_NAMES, DEFAULT_EXPENSE_CATEGORIES, StoreRegistry


def test_open_allocates_every_collection_file(data_dir):
    reg = StoreRegistry(data_dir)
    created = reg.open()
    assert sorted(created) == sorted(COLLECTION_NAMES)
    for name in COLLECTION_NAMES:
        assert (data_dir / "collections" / f"{name}.json").exists()
    assert reg.open() == []


def test_unknown_collection_is_not_created(registry, data_dir):
    with pytest.raises(UnknownCollection):
        registry.collection("payables")
    assert not (data_dir / "collections" / "payables.json").exists()
    assert "payables" not in registry
    assert "tradePayable" in registry


def test_initialize_seeds_cash_bank_and_categories(data_dir):
    reg = StoreRegistry(data_dir)
    assert not reg.ready
    report = reg.initialize(now=datetime(2024, 4, 1, 9, 30))
    assert reg.ready
    assert sorted(report.seeded) == ["bankLedger", "cashLedger", "expenseCategories"]

    cash = reg.collection("cashLedger").find({})
    assert len(cash) == 1
    assert cash[0]["balance"] == 0
    assert cash[0]["reference"] == "INIT-001"
    assert cash[0]["date"] == "2024-04-01"

    bank = reg.collection("bankLedger").find({})
    assert len(bank) == 1 and bank[0]["balance"] == 0

    names = sorted(d["name"] for d in reg.collection("expenseCategories").find({}))
    assert names == sorted(DEFAULT_EXPENSE_CATEGORIES)


def test_initialize_is_idempotent(registry):
    report = registry.initialize()
    assert report.seeded == []
    assert registry.collection("cashLedger").count({}) == 1
    assert registry.collection("expenseCategories").count({}) == len(DEFAULT_EXPENSE_CATEGORIES)


def test_initialize_only_seeds_empty_collections(data_dir):
    reg = StoreRegistry(data_dir)
    reg.open()
    reg.collection("cashLedger").insert({"description": "existing", "balance": 50})
    report = reg.initialize()
    assert "cashLedger" not in report.seeded
    assert [d["balance"] for d in reg.collection("cashLedger").find({})] == [50]


def test_active_skip_seed_suppresses_seeding(data_dir):
    reg = StoreRegistry(data_dir)
    report = reg.initialize(skip_seed=SkipSeed.until(time.time() + 60, reason="just cleaned"))
    assert report.skipped
    assert reg.ready
    assert reg.collection("cashLedger").count({}) == 0


def test_expired_skip_seed_is_ignored(data_dir):
    reg = StoreRegistry(data_dir)
    report = reg.initialize(skip_seed=SkipSeed.until(time.time() - 1))
    assert not report.skipped
    assert reg.collection("cashLedger").count({}) == 1


def test_clean_markers_expire_and_persist(data_dir):
    store = DiskJsonDocumentStore(data_dir / "flags.json")
    markers = CleanMarkers(store, ttl_seconds=30)
    now = 1_000_000.0

    skip = markers.mark_cleaned(now=now)
    assert skip.in_effect(now + 10)
    assert not skip.in_effect(now + 31)

    # A fresh process only sees the persisted flag.
    reloaded = CleanMarkers(store, ttl_seconds=30)
    assert reloaded.skip_seed(now=now + 5).in_effect(now + 5)
    assert not reloaded.skip_seed(now=now + 45).active


def test_force_reload_flag_is_consumed_once(data_dir):
    markers = CleanMarkers(DiskJsonDocumentStore(data_dir / "flags.json"), ttl_seconds=60)
    assert markers.consume_force_reload() is False
    markers.mark_cleaned()
    assert markers.consume_force_reload() is True
    assert markers.consume_force_reload() is False


def test_clear_drops_markers(data_dir):
    markers = CleanMarkers(DiskJsonDocumentStore(data_dir / "flags.json"), ttl_seconds=60)
    markers.mark_cleaned()
    assert markers.is_just_cleaned()
    markers.clear()
    assert not markers.is_just_cleaned()


def test_in_memory_marker_is_scoped_to_its_instance(data_dir):
    store = DiskJsonDocumentStore(data_dir / "flags.json")
    markers = CleanMarkers(store, ttl_seconds=60)
    markers.mark_cleaned()

    # Drop the persisted copy: a new instance has nothing left to go on.
    store.save({})
    assert markers.is_just_cleaned()
    assert not CleanMarkers(store, ttl_seconds=60).is_just_cleaned()
