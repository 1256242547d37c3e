from decimal import Decimal
from typing import Dict, List

from ..core.money import ZERO, money
from ..core.schemas import Product, Transaction, TransactionStatus
from ..store import PRODUCTS, TRANSACTIONS, Store
from .shift_ledger import CashShiftLedger


def totals_by_method(transactions: List[Transaction]) -> Dict[str, Decimal]:
    """Suma por método real de cobro (los MIXED se abren en sus partes)."""
    out: Dict[str, Decimal] = {}
    for t in transactions:
        if t.status != TransactionStatus.SETTLED:
            continue
        for p in t.payments:
            out[p.method.value] = out.get(p.method.value, ZERO) + p.amount
    return out


async def low_stock(store: Store, threshold: int) -> List[Product]:
    products = await store.list(PRODUCTS)
    return [p for p in products if p.stock < threshold]


async def sales_summary(store: Store, low_stock_threshold: int) -> dict:
    settled = await store.list(TRANSACTIONS, status=TransactionStatus.SETTLED)
    by_tag: Dict[str, Decimal] = {}
    for t in settled:
        by_tag[t.payment_method] = by_tag.get(t.payment_method, ZERO) + t.total
    return {
        "total_sales": money(sum((t.total for t in settled), ZERO)),
        "transaction_count": len(settled),
        "by_payment_tag": {k: money(v) for k, v in by_tag.items()},
        "by_method": {k: money(v) for k, v in totals_by_method(settled).items()},
        "low_stock_count": len(await low_stock(store, low_stock_threshold)),
    }


async def shift_report(ledger: CashShiftLedger, shift_id: str) -> dict:
    shift = await ledger.get(shift_id)
    movements = await ledger.movements(shift_id)
    transactions = await ledger.store.list(TRANSACTIONS, shift_id=shift_id)
    recon = await ledger.reconciliation(shift)
    return {
        "shift": shift,
        "movements": movements,
        "transactions": transactions,
        "reconciliation": recon,
        "by_method": {k: money(v) for k, v in totals_by_method(transactions).items()},
    }
