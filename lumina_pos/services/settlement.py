"""Cobro de una venta contra el carrito, la caja abierta y el reparto del pago.

Orden de pasos:

1. totales (``pricing``) y validación del pago (``payments``), sin efectos;
2. escritura única de la venta (insert, o update del pedido externo pendiente);
3. limpieza del carrito;
4. descuento de stock en segundo plano: si falla, la venta se mantiene y la
   incidencia queda en el ``InventoryReport`` de la tarea.

Una segunda llamada para el mismo carrito o pedido espera a la primera y, si
esa ya cobró, devuelve la misma venta.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Mapping, Optional, Union

import structlog

from ..core.clock import new_id as default_new_id
from ..core.clock import utcnow
from ..core.errors import (
    EmptyCartError,
    InventoryIssue,
    NoActiveShiftError,
    NotFoundError,
    PersistenceFailure,
    PosError,
)
from ..core.money import ZERO
from ..core.schemas import (
    Cart,
    CashShift,
    Origin,
    PaymentMethod,
    PaymentSplit,
    TaxConfig,
    Totals,
    Transaction,
    TransactionStatus,
)
from ..store import TRANSACTIONS, Store
from ..utils.locks import KeyedLocks
from . import cart as cart_ops
from .inventory import InventoryAdjuster, InventoryReport
from .payments import DEFAULT_EPSILON, ensure_settleable, split_payment
from .pricing import settle_totals

logger = structlog.get_logger(__name__)

_SETTLED_MAX = 2048


@dataclass
class SettlementResult:
    transaction: Transaction
    cart: Cart
    change: Decimal = ZERO
    replayed: bool = False
    inventory: Optional["asyncio.Task[InventoryReport]"] = None

    async def inventory_report(self) -> InventoryReport:
        if self.inventory is None:
            return InventoryReport()
        return await self.inventory


class SettlementCoordinator:
    def __init__(
        self,
        store: Store,
        tax: TaxConfig,
        adjuster: Optional[InventoryAdjuster] = None,
        clock: Callable = utcnow,
        new_id: Callable[[], str] = default_new_id,
        epsilon=DEFAULT_EPSILON,
    ):
        self.store = store
        self.tax = tax
        self.adjuster = adjuster or InventoryAdjuster(store)
        self.clock = clock
        self.new_id = new_id
        self.epsilon = epsilon
        self._locks = KeyedLocks()
        # carrito/pedido ya cobrado → id de la venta
        self._settled: "OrderedDict[str, str]" = OrderedDict()
        self._tasks = set()

    def quote(self, cart: Cart) -> Totals:
        return settle_totals(cart.items, self.tax)

    def split(self, cart: Cart, tenders: Mapping[PaymentMethod, object]) -> PaymentSplit:
        return split_payment(self.quote(cart).total, tenders, epsilon=self.epsilon)

    def _remember(self, source_id: str, tx_id: str) -> None:
        self._settled[source_id] = tx_id
        self._settled.move_to_end(source_id)
        while len(self._settled) > _SETTLED_MAX:
            self._settled.popitem(last=False)

    async def _replay(self, cart: Cart, source_id: str) -> Optional[Transaction]:
        tx_id = self._settled.get(source_id)
        if tx_id is None and cart.pending_order_id:
            order = await self.store.get(TRANSACTIONS, cart.pending_order_id)
            if order is None:
                raise NotFoundError(f"order {cart.pending_order_id} not found")
            if order.status == TransactionStatus.SETTLED:
                return order
            return None
        if tx_id is None:
            return None
        return await self.store.get(TRANSACTIONS, tx_id)

    async def settle(
        self,
        cart: Cart,
        active_shift: Optional[CashShift],
        payment: Union[PaymentSplit, Mapping[PaymentMethod, object]],
    ) -> SettlementResult:
        source_id = cart.pending_order_id or cart.id
        async with self._locks.hold(source_id):
            existing = await self._replay(cart, source_id)
            if existing is not None:
                logger.info("settlement_replayed", source_id=source_id, transaction_id=existing.id)
                # en el doble toque el carrito ya quedó limpio con otro id
                if cart.id == source_id or cart.pending_order_id == source_id:
                    cart_ops.clear(cart, self.new_id)
                return SettlementResult(
                    transaction=existing, cart=cart, change=existing.change, replayed=True
                )

            if active_shift is None or not active_shift.is_open:
                raise NoActiveShiftError("open a cash shift before charging")
            if cart.is_empty:
                raise EmptyCartError("cart is empty")

            totals = self.quote(cart)
            tendered = payment.tendered() if isinstance(payment, PaymentSplit) else payment
            split = ensure_settleable(split_payment(totals.total, tendered, epsilon=self.epsilon))

            tx = Transaction(
                id=cart.pending_order_id or self.new_id(),
                created_at=self.clock(),
                items=tuple(cart.items),
                subtotal=totals.subtotal,
                tax=totals.tax,
                discount=totals.discount,
                total=totals.total,
                payment_method=split.method,
                payments=split.payments,
                change=split.change,
                shift_id=active_shift.id,
                origin=Origin.ONLINE if cart.pending_order_id else Origin.POS,
                status=TransactionStatus.SETTLED,
            )
            tx = await self._persist(tx, source_id, is_update=bool(cart.pending_order_id))
            self._remember(source_id, tx.id)
            logger.info(
                "settlement_persisted",
                transaction_id=tx.id,
                shift_id=tx.shift_id,
                origin=tx.origin.value,
                total=str(tx.total),
                method=tx.payment_method,
            )
            cart_ops.clear(cart, self.new_id)

        task = asyncio.create_task(self._adjust_inventory(tx))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return SettlementResult(transaction=tx, cart=cart, change=split.change, inventory=task)

    async def _persist(self, tx: Transaction, source_id: str, is_update: bool) -> Transaction:
        try:
            if is_update:
                return await self.store.update(TRANSACTIONS, tx)
            return await self.store.insert(TRANSACTIONS, tx)
        except PosError as e:
            logger.error("settlement_failed", source_id=source_id, error=e.code, detail=e.message)
            raise
        except Exception as e:
            logger.error("settlement_failed", source_id=source_id, error=str(e))
            raise PersistenceFailure(f"could not record sale: {e}") from e

    async def _adjust_inventory(self, tx: Transaction) -> InventoryReport:
        try:
            return await self.adjuster.apply(tx.items, reference=tx.id)
        except Exception as e:
            logger.error("inventory_issue", reference=tx.id, kind="WRITE_FAILED", detail=str(e))
            return InventoryReport(issues=[InventoryIssue("*", "WRITE_FAILED", str(e))])
