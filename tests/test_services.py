from __future__ import annotations

import asyncio


def test_cash_ledger_running_balance(ledger_app):
    async def _run():
        svc = ledger_app.services
        assert await svc.cash_balance() == 0

        tx = await svc.add_cash_transaction({"description": "sale", "cashIn": 100})
        assert tx["balance"] == 100
        assert tx["createdAt"]

        tx = await svc.add_cash_transaction({"description": "rent", "cashOut": 30})
        assert tx["balance"] == 70
        assert await svc.cash_balance() == 70
        assert len(await svc.get_cash_transactions()) == 3

    asyncio.run(_run())


def test_bank_ledger_running_balance(ledger_app):
    async def _run():
        svc = ledger_app.services
        await svc.add_bank_transaction({"deposit": 500})
        tx = await svc.add_bank_transaction({"withdrawal": 120})
        assert tx["balance"] == 380
        assert await svc.bank_balance() == 380

    asyncio.run(_run())


def test_customer_transactions_update_totals(ledger_app):
    async def _run():
        svc = ledger_app.services
        c = await svc.add_customer({"name": "Asha"})
        assert c["totalDebit"] == 0 and c["transactions"] == []

        assert await svc.add_customer_transaction(c["_id"], {"debit": 40, "ref": "B1"}) == 1
        assert await svc.add_customer_transaction(c["_id"], {"credit": 15, "ref": "R1"}) == 1

        got = await svc.get_customer(c["_id"])
        assert got["totalDebit"] == 40
        assert got["totalCredit"] == 15
        assert [t["ref"] for t in got["transactions"]] == ["B1", "R1"]
        assert got["updatedAt"]

        assert await svc.add_customer_transaction("missing", {"debit": 1}) is None

    asyncio.run(_run())


def test_stock_summary_groups_by_name_and_color(ledger_app):
    async def _run():
        svc = ledger_app.services
        await svc.add_stock_item({"name": "shirt", "color": "red", "quantity": 2, "price": 10})
        await svc.add_stock_item({"name": "shirt", "color": "red", "quantity": 2, "price": 20})
        await svc.add_stock_item({"name": "shirt", "color": "blue", "quantity": 0, "price": 5})

        rows = {(r.name, r.color): r for r in await svc.stock_summary()}
        red = rows[("shirt", "red")]
        assert red.totalQuantity == 4
        assert red.totalValue == 60
        assert red.averagePrice == 15
        assert rows[("shirt", "blue")].averagePrice == 0

    asyncio.run(_run())


def test_payables_crud_by_business_id(ledger_app):
    async def _run():
        svc = ledger_app.services
        await svc.add_payable({"id": "P1", "amount": 100, "status": "open"})
        assert await svc.update_payable("P1", {"status": "paid"}) == 1
        payables = await svc.get_payables()
        assert payables[0]["status"] == "paid"
        assert await svc.delete_payable("P1") == 1
        assert await svc.get_payables() == []

    asyncio.run(_run())


def test_expense_categories_are_seeded(ledger_app):
    async def _run():
        cats = await ledger_app.services.get_expense_categories()
        assert cats == sorted(["shop", "home", "salary", "rent", "utilities", "travel", "office", "other"])

    asyncio.run(_run())


def test_payable_writes_are_mirrored_into_cache(ledger_app):
    async def _run():
        svc = ledger_app.services
        cache = ledger_app.cache
        await svc.add_payable({"id": "P1", "amount": 100})
        for key in ("payables", "tradePayable"):
            assert [(r["id"], r["amount"]) for r in cache.read_records(key)] == [("P1", 100)]

        assert await svc.update_payable("P1", {"amount": 60}) == 1
        for key in ("payables", "tradePayable"):
            (record,) = cache.read_records(key)
            assert record["amount"] == 60
            assert record["updatedAt"]

        assert await svc.delete_payable("P1") == 1
        assert cache.read_records("payables") == []
        assert cache.read_records("tradePayable") == []

    asyncio.run(_run())


def test_fallback_serves_the_edited_receivable(ledger_app):
    async def _run():
        svc = ledger_app.services
        await svc.add_receivable({"id": "R1", "amount": 10})
        await svc.update_receivable("R1", {"amount": 25})

        # Lose the primary copy; the cache must hold the edit, not the original.
        await ledger_app.client.set("tradeReceivable", [])
        result = await ledger_app.reader.read_with_source("receivables")
        assert result.source == "cache:receivables"
        assert [r["amount"] for r in result.documents] == [25]

    asyncio.run(_run())


def test_update_leaves_absent_cache_entries_alone(ledger_app):
    async def _run():
        await ledger_app.client.insert("tradePayable", {"id": "P2", "amount": 1})
        assert await ledger_app.services.update_payable("P2", {"amount": 2}) == 1
        assert ledger_app.cache.read_records("payables") is None

    asyncio.run(_run())


def test_cache_fault_does_not_fail_the_write(ledger_app):
    async def _run():
        ledger_app.cache.set_item("payables", "{broken")
        stored = await ledger_app.services.add_payable({"id": "P3"})
        assert stored["id"] == "P3"
        assert await ledger_app.client.count("tradePayable", {"id": "P3"}) == 1
        assert ledger_app.cache.get_item("payables") == "{broken"
        assert [r["id"] for r in ledger_app.cache.read_records("tradePayable")] == ["P3"]

    asyncio.run(_run())


def test_payment_merges_into_existing_payable(ledger_app):
    async def _run():
        svc = ledger_app.services
        first = await svc.add_payable_payment({"id": "P1", "amount": 100, "paid": 0})
        merged = await svc.add_payable_payment({"id": "P1", "amount": 100, "paid": 40})

        assert merged["_id"] == first["_id"]
        assert merged["paid"] == 40
        assert await ledger_app.client.count("tradePayable", {"id": "P1"}) == 1
        assert [r["paid"] for r in ledger_app.cache.read_records("payables")] == [40]

    asyncio.run(_run())


def test_receivable_payment_without_match_inserts(ledger_app):
    async def _run():
        svc = ledger_app.services
        await svc.add_receivable_payment({"id": "R1", "amount": 5})
        await svc.add_receivable_payment({"id": "R2", "amount": 7})
        assert sorted(r["id"] for r in await svc.get_receivables()) == ["R1", "R2"]
        assert [r["id"] for r in ledger_app.cache.read_records("tradeReceivable")] == ["R1", "R2"]

    asyncio.run(_run())
