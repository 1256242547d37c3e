from fastapi import APIRouter, Depends

from ..core.schemas import CloseShiftIn, MovementIn, OpenShiftIn
from ..services.reports import shift_report
from ..terminal import Terminal, get_terminal
from ._serialize import (
    serialize_movement,
    serialize_reconciliation,
    serialize_shift,
    serialize_transaction,
)

router = APIRouter(prefix="/session", tags=["pos-session"])


# ---------- OPEN ----------
@router.post("/open")
async def open_session(payload: OpenShiftIn, t: Terminal = Depends(get_terminal)):
    shift, move = await t.ledger.open(payload.opening_float)
    return {"shift": serialize_shift(shift), "movement": serialize_movement(move)}


# ---------- CASH IN / OUT ----------
@router.post("/movement")
async def cash_movement(payload: MovementIn, t: Terminal = Depends(get_terminal)):
    move = await t.ledger.record_movement(payload.type, payload.amount, payload.reason)
    return {"movement": serialize_movement(move)}


# ---------- CURRENT ----------
@router.get("/current")
async def current_session(t: Terminal = Depends(get_terminal)):
    shift = await t.ledger.current()
    out = {"shift": serialize_shift(shift), "reconciliation": None}
    if shift is not None:
        out["reconciliation"] = serialize_reconciliation(await t.ledger.reconciliation(shift))
    return out


# ---------- CLOSE ----------
@router.post("/close")
async def close_session(payload: CloseShiftIn, t: Terminal = Depends(get_terminal)):
    """Cierra la caja abierta y devuelve el arqueo (la diferencia se reporta, no se corrige)."""
    shift, recon = await t.ledger.close(payload.counted_amount)
    return {"shift": serialize_shift(shift), "reconciliation": serialize_reconciliation(recon)}


# ---------- REPORT ----------
@router.get("/{shift_id}/report")
async def session_report(shift_id: str, t: Terminal = Depends(get_terminal)):
    r = await shift_report(t.ledger, shift_id)
    return {
        "shift": serialize_shift(r["shift"]),
        "movements": [serialize_movement(m) for m in r["movements"]],
        "transactions": [serialize_transaction(x) for x in r["transactions"]],
        "reconciliation": serialize_reconciliation(r["reconciliation"]),
        "by_method": {k: float(v) for k, v in r["by_method"].items()},
    }
