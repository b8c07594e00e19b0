from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel

from .bridge import AsyncBridgeClient
from .cache import SecondaryCache
from .datasets import get_dataset
from .errors import MalformedCacheEntry
from .interfaces import Document
from .query import ID_FIELD

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now().isoformat()


def _num(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


class StockSummaryRow(BaseModel):
    name: str | None = None
    color: str | None = None
    totalQuantity: float = 0
    totalValue: float = 0
    averagePrice: float = 0


class LedgerService:
    """
    High-level accessors the rendering code calls.

    List accessors read the canonical collection of a dataset and let faults
    propagate; RecoveringReader is the layer that degrades. Writes stamp
    createdAt/updatedAt the way every screen expects. Given a cache, payable and
    receivable writes are mirrored into it.
    """

    def __init__(self, client: AsyncBridgeClient, cache: SecondaryCache | None = None):
        self._db = client
        self._cache = cache

    @property
    def client(self) -> AsyncBridgeClient:
        return self._db

    async def list_dataset(self, dataset: str) -> list[Document]:
        return await self._db.get(get_dataset(dataset).collection)

    async def _add(self, collection: str, doc: Mapping[str, Any]) -> Document:
        item = dict(doc)
        item["createdAt"] = item.get("createdAt") or _now_iso()
        return await self._db.insert(collection, item)

    async def _update(self, collection: str, query: Mapping[str, Any], updates: Mapping[str, Any]) -> int:
        fields = dict(updates)
        fields["updatedAt"] = _now_iso()
        return await self._db.update(collection, query, {"$set": fields})

    # Stock

    async def get_stock_items(self) -> list[Document]:
        return await self.list_dataset("stock")

    async def add_stock_item(self, item: Mapping[str, Any]) -> Document:
        return await self._add("stock", item)

    async def update_stock_item(self, doc_id: str, updates: Mapping[str, Any]) -> int:
        return await self._update("stock", {"_id": doc_id}, updates)

    async def delete_stock_item(self, doc_id: str) -> int:
        return await self._db.remove("stock", {"_id": doc_id})

    async def stock_summary(self) -> list[StockSummaryRow]:
        rows: dict[tuple[Any, Any], StockSummaryRow] = {}
        for item in await self.get_stock_items():
            key = (item.get("name"), item.get("color"))
            row = rows.get(key)
            if row is None:
                row = StockSummaryRow(name=item.get("name"), color=item.get("color"))
                rows[key] = row
            qty = _num(item.get("quantity"))
            row.totalQuantity += qty
            row.totalValue += qty * _num(item.get("price"))
        for row in rows.values():
            row.averagePrice = row.totalValue / row.totalQuantity if row.totalQuantity > 0 else 0
        return list(rows.values())

    # Customers

    async def get_customers(self) -> list[Document]:
        return await self.list_dataset("customers")

    async def get_customer(self, doc_id: str) -> Document | None:
        return await self._db.get_one("customers", {"_id": doc_id})

    async def add_customer(self, customer: Mapping[str, Any]) -> Document:
        doc = dict(customer)
        doc.setdefault("totalDebit", 0)
        doc.setdefault("totalCredit", 0)
        doc.setdefault("transactions", [])
        return await self._add("customers", doc)

    async def update_customer(self, doc_id: str, updates: Mapping[str, Any]) -> int:
        return await self._update("customers", {"_id": doc_id}, updates)

    async def delete_customer(self, doc_id: str) -> int:
        return await self._db.remove("customers", {"_id": doc_id})

    async def add_customer_transaction(self, customer_id: str, transaction: Mapping[str, Any]) -> int | None:
        customer = await self.get_customer(customer_id)
        if customer is None:
            return None
        transactions = [*(customer.get("transactions") or []), dict(transaction)]
        return await self.update_customer(
            customer_id,
            {
                "transactions": transactions,
                "totalDebit": _num(customer.get("totalDebit")) + _num(transaction.get("debit")),
                "totalCredit": _num(customer.get("totalCredit")) + _num(transaction.get("credit")),
            },
        )

    # Bills, payments, purchases, receipts, expenses

    async def get_bills(self) -> list[Document]:
        return await self.list_dataset("bills")

    async def get_bill(self, bill_id: str) -> Document | None:
        return await self._db.get_one("bills", {"id": bill_id})

    async def add_bill(self, bill: Mapping[str, Any]) -> Document:
        return await self._add("bills", bill)

    async def delete_bill(self, bill_id: str) -> int:
        return await self._db.remove("bills", {"id": bill_id})

    async def get_payments(self) -> list[Document]:
        return await self.list_dataset("payments")

    async def add_payment(self, payment: Mapping[str, Any]) -> Document:
        return await self._add("payments", payment)

    async def delete_payment(self, payment_id: str) -> int:
        return await self._db.remove("payments", {"id": payment_id})

    async def get_purchases(self) -> list[Document]:
        return await self.list_dataset("purchases")

    async def add_purchase(self, purchase: Mapping[str, Any]) -> Document:
        return await self._add("purchases", purchase)

    async def delete_purchase(self, purchase_id: str) -> int:
        return await self._db.remove("purchases", {"id": purchase_id})

    async def get_receipts(self) -> list[Document]:
        return await self.list_dataset("receipts")

    async def add_receipt(self, receipt: Mapping[str, Any]) -> Document:
        return await self._add("receipts", receipt)

    async def get_expenses(self) -> list[Document]:
        return await self.list_dataset("expenses")

    async def add_expense(self, expense: Mapping[str, Any]) -> Document:
        return await self._add("expenses", expense)

    async def get_expense_categories(self) -> list[str]:
        docs = await self._db.get("expenseCategories")
        return sorted(str(d["name"]) for d in docs if d.get("name"))

    # Cash and bank ledgers keep a running balance on every row.

    async def get_cash_transactions(self) -> list[Document]:
        return await self.list_dataset("cashLedger")

    async def cash_balance(self) -> float:
        rows = await self.get_cash_transactions()
        return sum(_num(r.get("cashIn")) for r in rows) - sum(_num(r.get("cashOut")) for r in rows)

    async def add_cash_transaction(self, transaction: Mapping[str, Any]) -> Document:
        tx = dict(transaction)
        tx["balance"] = await self.cash_balance() + _num(tx.get("cashIn")) - _num(tx.get("cashOut"))
        return await self._add("cashLedger", tx)

    async def get_bank_transactions(self) -> list[Document]:
        return await self.list_dataset("bankLedger")

    async def bank_balance(self) -> float:
        rows = await self.get_bank_transactions()
        return sum(_num(r.get("deposit")) for r in rows) - sum(_num(r.get("withdrawal")) for r in rows)

    async def add_bank_transaction(self, transaction: Mapping[str, Any]) -> Document:
        tx = dict(transaction)
        tx["balance"] = await self.bank_balance() + _num(tx.get("deposit")) - _num(tx.get("withdrawal"))
        return await self._add("bankLedger", tx)

    # Trade payables / receivables are keyed by their own "id" field. Every
    # write is mirrored into the dataset's own cache entries.

    async def _mirror(self, dataset: str, record_id: Any, record: Mapping[str, Any] | None, *, create: bool) -> None:
        if self._cache is None or record_id is None:
            return
        ds = get_dataset(dataset)
        for key in _unique_keys(ds.name, ds.collection):
            try:
                await asyncio.to_thread(_mirror_entry, self._cache, key, record_id, record, create)
            except (OSError, MalformedCacheEntry) as e:
                logger.warning("could not mirror %s %s into cache key %s: %s", dataset, record_id, key, e)

    async def _add_trade(self, dataset: str, record: Mapping[str, Any]) -> Document:
        stored = await self._add(get_dataset(dataset).collection, record)
        await self._mirror(dataset, stored.get("id"), stored, create=True)
        return stored

    async def _update_trade(self, dataset: str, record_id: str, updates: Mapping[str, Any]) -> int:
        collection = get_dataset(dataset).collection
        changed = await self._update(collection, {"id": record_id}, updates)
        if changed:
            current = await self._db.get_one(collection, {"id": record_id})
            await self._mirror(dataset, record_id, current, create=False)
        return changed

    async def _delete_trade(self, dataset: str, record_id: str) -> int:
        removed = await self._db.remove(get_dataset(dataset).collection, {"id": record_id})
        await self._mirror(dataset, record_id, None, create=False)
        return removed

    async def _record_payment(self, dataset: str, record: Mapping[str, Any]) -> Document:
        """Insert, or merge into the stored record carrying the same "id"."""
        record_id = record.get("id")
        collection = get_dataset(dataset).collection
        if record_id is not None and await self._db.get_one(collection, {"id": record_id}) is not None:
            updates = {k: v for k, v in record.items() if k not in (ID_FIELD, "id")}
            await self._update_trade(dataset, record_id, updates)
            return await self._db.get_one(collection, {"id": record_id})
        return await self._add_trade(dataset, record)

    async def get_payables(self) -> list[Document]:
        return await self.list_dataset("payables")

    async def add_payable(self, payable: Mapping[str, Any]) -> Document:
        return await self._add_trade("payables", payable)

    async def add_payable_payment(self, payable: Mapping[str, Any]) -> Document:
        return await self._record_payment("payables", payable)

    async def update_payable(self, payable_id: str, updates: Mapping[str, Any]) -> int:
        return await self._update_trade("payables", payable_id, updates)

    async def delete_payable(self, payable_id: str) -> int:
        return await self._delete_trade("payables", payable_id)

    async def get_receivables(self) -> list[Document]:
        return await self.list_dataset("receivables")

    async def add_receivable(self, receivable: Mapping[str, Any]) -> Document:
        return await self._add_trade("receivables", receivable)

    async def add_receivable_payment(self, receivable: Mapping[str, Any]) -> Document:
        return await self._record_payment("receivables", receivable)

    async def update_receivable(self, receivable_id: str, updates: Mapping[str, Any]) -> int:
        return await self._update_trade("receivables", receivable_id, updates)

    async def delete_receivable(self, receivable_id: str) -> int:
        return await self._delete_trade("receivables", receivable_id)


def _unique_keys(*keys: str) -> tuple[str, ...]:
    return tuple(dict.fromkeys(keys))


def _mirror_entry(
    cache: SecondaryCache,
    key: str,
    record_id: Any,
    record: Mapping[str, Any] | None,
    create: bool,
) -> None:
    """
    Replace, append or drop the record with ``record_id`` in one cache entry.
    Without ``create`` an absent entry or an absent record is left alone.
    """
    records = cache.read_records(key)
    if records is None and not create:
        return
    records = list(records or [])
    idx = next((i for i, r in enumerate(records) if r.get("id") == record_id), None)
    if record is None:
        if idx is None:
            return
        del records[idx]
    elif idx is not None:
        records[idx] = dict(record)
    elif create:
        records.append(dict(record))
    else:
        return
    cache.write_records(key, records)
