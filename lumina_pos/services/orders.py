"""Pedidos externos (web / delivery) que llegan PENDING y se cobran en caja."""

from typing import Callable, Iterable, List, Optional

import structlog

from ..core.clock import new_id as default_new_id
from ..core.clock import utcnow
from ..core.errors import NoActiveShiftError, NotFoundError
from ..core.schemas import (
    Cart,
    CashShift,
    ExternalItemIn,
    LineItem,
    Origin,
    TaxConfig,
    Transaction,
    TransactionStatus,
)
from ..store import PRODUCTS, TRANSACTIONS, Store
from . import cart as cart_ops
from .pricing import settle_totals

logger = structlog.get_logger(__name__)


class OrderIntake:
    def __init__(
        self,
        store: Store,
        tax: TaxConfig,
        clock: Callable = utcnow,
        new_id: Callable[[], str] = default_new_id,
    ):
        self.store = store
        self.tax = tax
        self.clock = clock
        self.new_id = new_id

    async def _line(self, it: ExternalItemIn) -> LineItem:
        product = await self.store.get(PRODUCTS, it.product_id)
        if product is None:
            raise NotFoundError(f"product {it.product_id} not found")
        price, variant_name = product.price, None
        if it.variant_id is not None:
            variant = product.variant(it.variant_id)
            if variant is None:
                raise NotFoundError(f"variant {it.variant_id} not found for {product.id}")
            price, variant_name = variant.price, variant.name
        return LineItem(
            product_id=product.id,
            name=product.name,
            unit_price=price,
            quantity=it.quantity,
            variant_id=it.variant_id,
            variant_name=variant_name,
            discount=it.discount,
        )

    async def create(self, items: Iterable[ExternalItemIn]) -> Transaction:
        lines = [await self._line(it) for it in items]
        totals = settle_totals(lines, self.tax)
        order = Transaction(
            id=self.new_id(),
            created_at=self.clock(),
            items=tuple(lines),
            subtotal=totals.subtotal,
            tax=totals.tax,
            discount=totals.discount,
            total=totals.total,
            origin=Origin.ONLINE,
            status=TransactionStatus.PENDING,
        )
        order = await self.store.insert(TRANSACTIONS, order)
        logger.info("external_order_received", order_id=order.id, total=str(order.total))
        return order

    async def pending(self) -> List[Transaction]:
        return await self.store.list(
            TRANSACTIONS, origin=Origin.ONLINE, status=TransactionStatus.PENDING
        )

    async def load_into_cart(
        self, cart: Cart, order_id: str, active_shift: Optional[CashShift]
    ) -> Cart:
        if active_shift is None or not active_shift.is_open:
            raise NoActiveShiftError("open a cash shift before charging orders")
        order = await self.store.get(TRANSACTIONS, order_id)
        if order is None:
            raise NotFoundError(f"order {order_id} not found")
        return cart_ops.import_pending_order(cart, order)
