"""Contexto explícito de una terminal: store, caja, cobro y carrito activo."""

from pathlib import Path
from typing import Callable, Optional

from fastapi import Request

from .core.clock import new_id as default_new_id
from .core.clock import utcnow
from .core.config import settings
from .core.money import to_decimal
from .core.schemas import TaxConfig
from .services.cart import new_cart
from .services.inventory import InventoryAdjuster, InventoryIssueLog
from .services.orders import OrderIntake
from .services.settlement import SettlementCoordinator
from .services.shift_ledger import CashShiftLedger
from .store import MemoryStore, Store


class Terminal:
    def __init__(
        self,
        store: Store,
        tax: TaxConfig,
        clock: Callable = utcnow,
        new_id: Callable[[], str] = default_new_id,
        issue_log: Optional[Callable[..., None]] = None,
        epsilon="0.01",
        low_stock_threshold: int = 10,
        inventory_wait_seconds: float = 2.0,
    ):
        self.store = store
        self.tax = tax
        self.new_id = new_id
        self.low_stock_threshold = low_stock_threshold
        self.inventory_wait_seconds = inventory_wait_seconds
        self.ledger = CashShiftLedger(store, clock=clock, new_id=new_id)
        self.coordinator = SettlementCoordinator(
            store,
            tax,
            adjuster=InventoryAdjuster(store, issue_sink=issue_log),
            clock=clock,
            new_id=new_id,
            epsilon=to_decimal(epsilon),
        )
        self.orders = OrderIntake(store, tax, clock=clock, new_id=new_id)
        self.cart = new_cart(new_id)


def build_store() -> Store:
    if settings.store_backend == "memory":
        return MemoryStore()
    from .store.sql import SqlStore

    return SqlStore(settings.database_url)


def terminal_from_settings() -> Terminal:
    return Terminal(
        build_store(),
        TaxConfig(rate=settings.tax_rate, prices_include_tax=settings.prices_include_tax),
        issue_log=InventoryIssueLog(Path(settings.audit_dir) / "inventory_issues.jsonl"),
        epsilon=settings.payment_epsilon,
        low_stock_threshold=settings.low_stock_threshold,
        inventory_wait_seconds=settings.inventory_wait_seconds,
    )


# Dependencia FastAPI
def get_terminal(request: Request) -> Terminal:
    return request.app.state.terminal
