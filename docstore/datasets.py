from __future__ import annotations

from dataclasses import dataclass, field

from .errors import UnknownCollection


@dataclass(frozen=True)
class Dataset:
    """
    A logical data set: one canonical collection plus the legacy names the same
    data has been stored under. Only the fallback and reset paths read aliases.
    """

    name: str
    collection: str
    aliases: tuple[str, ...] = field(default_factory=tuple)

    @property
    def cache_keys(self) -> tuple[str, ...]:
        return _unique((self.name, self.collection, *self.aliases))

    @property
    def collection_names(self) -> tuple[str, ...]:
        return _unique((self.collection, *self.aliases))


def _unique(names: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(names))


DATASETS: dict[str, Dataset] = {
    d.name: d
    for d in (
        Dataset("customers", "customers"),
        Dataset("stock", "stock"),
        Dataset("bills", "bills"),
        Dataset("payments", "payments"),
        Dataset("purchases", "purchases"),
        Dataset("receipts", "receipts"),
        Dataset("expenses", "expenses"),
        Dataset("cashLedger", "cashLedger", ("cash_ledger", "cash_transactions", "cashTransactions")),
        Dataset("bankLedger", "bankLedger", ("bank_ledger", "bank_transactions", "bankTransactions")),
        Dataset("payables", "tradePayable", ("payables", "trade_payable", "tradePayableLedger")),
        Dataset("receivables", "tradeReceivable", ("receivables", "trade_receivable", "tradeReceivableLedger")),
    )
}

# Cache keys that must end up absent or "[]" after a reset.
CRITICAL_CACHE_KEYS: tuple[str, ...] = (
    "payables",
    "receivables",
    "tradePayable",
    "tradeReceivable",
    "cashLedger",
    "bankLedger",
    "cashTransactions",
    "bankTransactions",
)

# Bookkeeping keys with no collection behind them.
AUXILIARY_CACHE_KEYS: tuple[str, ...] = (
    "deletedReceiptIds",
    "deletedPaymentIds",
    "deletedBillIds",
    "deletedPurchaseIds",
    "ledgerData",
    "ledgerEntries",
)


def get_dataset(name: str) -> Dataset:
    """Resolve a dataset by logical name, canonical collection or alias."""
    found = DATASETS.get(name)
    if found is not None:
        return found
    for d in DATASETS.values():
        if name == d.collection or name in d.aliases:
            return d
    raise UnknownCollection(name)


def reset_targets() -> tuple[str, ...]:
    """Every collection name, canonical or alias, that a destructive reset sweeps."""
    names: list[str] = []
    for d in DATASETS.values():
        names.extend(d.collection_names)
    return _unique(tuple(names))
