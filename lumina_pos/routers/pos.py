import asyncio
from typing import Optional

from fastapi import APIRouter, Depends

from ..core.schemas import CheckoutIn, ExternalOrderIn
from ..store import TRANSACTIONS
from ..terminal import Terminal, get_terminal
from ._serialize import serialize_cart, serialize_transaction

router = APIRouter(prefix="/pos", tags=["pos"])


@router.post("/checkout")
async def checkout(payload: CheckoutIn, t: Terminal = Depends(get_terminal)):
    """
    Cobra el carrito activo contra la caja abierta.
    - Si el stock falla, el cobro igual queda hecho y vuelve como aviso.
    - Si el stock tarda más de INVENTORY_WAIT_SECONDS, se responde con pending=True.
    """
    shift = await t.ledger.current()
    result = await t.coordinator.settle(t.cart, shift, payload.tenders)

    inventory = {"ok": True, "pending": False, "warnings": []}
    if result.inventory is not None:
        try:
            report = await asyncio.wait_for(
                asyncio.shield(result.inventory), timeout=t.inventory_wait_seconds
            )
            inventory["ok"] = report.ok
            inventory["warnings"] = report.warnings()
        except asyncio.TimeoutError:
            inventory["pending"] = True

    return {
        "transaction": serialize_transaction(result.transaction),
        "change": float(result.change),
        "replayed": result.replayed,
        "inventory": inventory,
        "cart": serialize_cart(result.cart),
    }


# ---------- pedidos externos ----------
@router.post("/orders")
async def create_order(payload: ExternalOrderIn, t: Terminal = Depends(get_terminal)):
    order = await t.orders.create(payload.items)
    return serialize_transaction(order)


@router.get("/orders/pending")
async def pending_orders(t: Terminal = Depends(get_terminal)):
    return [serialize_transaction(o) for o in await t.orders.pending()]


@router.post("/orders/{order_id}/import")
async def import_order(order_id: str, t: Terminal = Depends(get_terminal)):
    shift = await t.ledger.current()
    await t.orders.load_into_cart(t.cart, order_id, shift)
    return serialize_cart(t.cart, t.coordinator.quote(t.cart))


@router.get("/transactions")
async def list_transactions(shift_id: Optional[str] = None, t: Terminal = Depends(get_terminal)):
    filters = {"shift_id": shift_id} if shift_id else {}
    return [serialize_transaction(x) for x in await t.store.list(TRANSACTIONS, **filters)]
