from __future__ import annotations

import pytest

from docstore.datasets import get_dataset, reset_targets
from docstore.errors import UnknownCollection
from docstore.registry import COLLECTION_NAMES


def test_cache_keys_are_ordered_and_unique():
    payables = get_dataset("payables")
    assert payables.collection == "tradePayable"
    assert payables.cache_keys == ("payables", "tradePayable", "trade_payable", "tradePayableLedger")


def test_lookup_by_collection_or_alias():
    assert get_dataset("tradeReceivable").name == "receivables"
    assert get_dataset("cash_transactions").name == "cashLedger"
    with pytest.raises(UnknownCollection):
        get_dataset("widgets")


def test_reset_targets_cover_canonical_collections_but_not_categories():
    targets = reset_targets()
    assert len(targets) == len(set(targets))
    assert "expenseCategories" not in targets
    assert "tradePayableLedger" in targets
    for name in COLLECTION_NAMES:
        if name != "expenseCategories":
            assert name in targets, name
