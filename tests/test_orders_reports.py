import asyncio
from decimal import Decimal

import pytest

from lumina_pos.core.errors import NoActiveShiftError, NotFoundError
from lumina_pos.core.schemas import (
    ExternalItemIn,
    MovementType,
    Origin,
    PaymentMethod,
    TransactionStatus,
)
from lumina_pos.services import cart as cart_ops
from lumina_pos.services.orders import OrderIntake
from lumina_pos.services.reports import low_stock, sales_summary, shift_report
from lumina_pos.services.settlement import SettlementCoordinator
from lumina_pos.services.shift_ledger import CashShiftLedger
from lumina_pos.store import PRODUCTS


def _seed(store, *products):
    async def run():
        for p in products:
            await store.insert(PRODUCTS, p)

    asyncio.run(run())


def test_create_prices_from_catalog(store, tax_excl, clock, ids, soda, shirt):
    _seed(store, soda, shirt)
    intake = OrderIntake(store, tax_excl, clock=clock, new_id=ids)

    async def run():
        order = await intake.create(
            [
                ExternalItemIn(product_id="p-soda", quantity=2),
                ExternalItemIn(product_id="p-shirt", variant_id="v-m"),
            ]
        )
        assert order.status == TransactionStatus.PENDING
        assert order.origin == Origin.ONLINE
        assert order.payment_method is None
        assert order.items[1].unit_price == Decimal("27.00")
        assert order.items[1].variant_name == "M"
        # 30 + 27 = 57, IGV 18% = 10.26
        assert order.subtotal == Decimal("57.00")
        assert order.tax == Decimal("10.26")
        assert order.total == Decimal("67.26")
        assert [o.id for o in await intake.pending()] == [order.id]

    asyncio.run(run())


def test_create_rejects_unknown_product(store, tax_excl, clock, ids, shirt):
    _seed(store, shirt)
    intake = OrderIntake(store, tax_excl, clock=clock, new_id=ids)

    async def run():
        with pytest.raises(NotFoundError):
            await intake.create([ExternalItemIn(product_id="nope")])
        with pytest.raises(NotFoundError):
            await intake.create([ExternalItemIn(product_id="p-shirt", variant_id="v-xl")])
        assert await intake.pending() == []

    asyncio.run(run())


def test_load_into_cart_needs_open_shift(store, tax_incl, clock, ids, soda):
    _seed(store, soda)
    intake = OrderIntake(store, tax_incl, clock=clock, new_id=ids)
    ledger = CashShiftLedger(store, clock=clock, new_id=ids)
    cart = cart_ops.new_cart(ids)

    async def run():
        order = await intake.create([ExternalItemIn(product_id="p-soda")])
        with pytest.raises(NoActiveShiftError):
            await intake.load_into_cart(cart, order.id, None)
        assert cart.is_empty

        shift, _ = await ledger.open(Decimal("0"))
        await intake.load_into_cart(cart, order.id, shift)
        assert cart.pending_order_id == order.id
        assert len(cart.items) == 1

        with pytest.raises(NotFoundError):
            await intake.load_into_cart(cart, "missing", shift)

    asyncio.run(run())


def test_sales_summary_and_low_stock(store, tax_excl, clock, ids, soda, shirt):
    _seed(store, soda, shirt)
    ledger = CashShiftLedger(store, clock=clock, new_id=ids)
    coordinator = SettlementCoordinator(store, tax_excl, clock=clock, new_id=ids)
    cart = cart_ops.new_cart(ids)

    async def run():
        shift, _ = await ledger.open(Decimal("50"))

        cart_ops.add_item(cart, soda, qty=1)  # 15 + 2.70 = 17.70
        r1 = await coordinator.settle(cart, shift, {PaymentMethod.CASH: Decimal("20")})
        await r1.inventory_report()

        cart_ops.add_item(cart, soda, qty=2)  # 30 + 5.40 = 35.40
        r2 = await coordinator.settle(
            cart, shift, {PaymentMethod.CARD: Decimal("20"), PaymentMethod.WALLET: Decimal("15.40")}
        )
        await r2.inventory_report()

        summary = await sales_summary(store, low_stock_threshold=10)
        assert summary["transaction_count"] == 2
        assert summary["total_sales"] == Decimal("53.10")
        assert summary["by_payment_tag"] == {"CASH": Decimal("17.70"), "MIXED": Decimal("35.40")}
        assert summary["by_method"] == {
            "CASH": Decimal("17.70"),
            "CARD": Decimal("20.00"),
            "WALLET": Decimal("15.40"),
        }
        # polo: 5 + 3 = 8 < 10 ; gaseosa: 20 - 3 = 17
        assert summary["low_stock_count"] == 1
        assert [p.id for p in await low_stock(store, 10)] == ["p-shirt"]
        assert [p.id for p in await low_stock(store, 18)] == ["p-soda", "p-shirt"]

        await ledger.record_movement(MovementType.CASH_OUT, Decimal("10"), "proveedor")
        report = await shift_report(ledger, shift.id)
        assert [t.id for t in report["transactions"]] == [r1.transaction.id, r2.transaction.id]
        assert report["reconciliation"].expected_cash == Decimal("57.70")
        assert report["by_method"]["CASH"] == Decimal("17.70")
        assert [m.type for m in report["movements"]] == [MovementType.OPEN, MovementType.CASH_OUT]

    asyncio.run(run())


def test_shift_report_unknown_shift(store, clock, ids):
    ledger = CashShiftLedger(store, clock=clock, new_id=ids)
    with pytest.raises(NotFoundError):
        asyncio.run(shift_report(ledger, "nope"))
