"""Turno de caja: apertura, movimientos y cierre con arqueo.

Estados por turno: OPEN → CLOSED (terminal). Los movimientos son de sólo
anexar. El efectivo esperado al cierre es::

    fondo inicial + ventas en efectivo + CASH_IN - CASH_OUT

El fondo inicial se lee del propio ``CashShift``, no del movimiento OPEN. Si
la apertura se corta entre el turno y su movimiento, el siguiente ``open()``
completa el movimiento faltante en vez de rechazar.
"""

from decimal import Decimal
from typing import Callable, List, Optional, Tuple

import structlog

from ..core.clock import new_id as default_new_id
from ..core.clock import utcnow
from ..core.errors import (
    ConflictError,
    NoActiveShiftError,
    NotFoundError,
    PersistenceFailure,
    PosError,
)
from ..core.money import ZERO, to_decimal
from ..core.schemas import (
    CashMovement,
    CashShift,
    MovementType,
    Reconciliation,
    ShiftStatus,
    Transaction,
    TransactionStatus,
)
from ..store import MOVEMENTS, SHIFTS, TRANSACTIONS, Store

logger = structlog.get_logger(__name__)

MANUAL_TYPES = (MovementType.CASH_IN, MovementType.CASH_OUT)


def reconcile(
    shift: CashShift,
    movements: List[CashMovement],
    transactions: List[Transaction],
    counted_amount: Optional[Decimal] = None,
) -> Reconciliation:
    cash_sales = sum(
        (t.cash_amount for t in transactions if t.status == TransactionStatus.SETTLED), ZERO
    )
    cash_in = sum((m.amount for m in movements if m.type == MovementType.CASH_IN), ZERO)
    cash_out = sum((m.amount for m in movements if m.type == MovementType.CASH_OUT), ZERO)
    expected = shift.opening_float + cash_sales + cash_in - cash_out
    variance = None if counted_amount is None else counted_amount - expected
    return Reconciliation(
        shift_id=shift.id,
        opening_float=shift.opening_float,
        cash_sales=cash_sales,
        cash_in=cash_in,
        cash_out=cash_out,
        expected_cash=expected,
        counted_amount=counted_amount,
        variance=variance,
    )


class CashShiftLedger:
    def __init__(
        self,
        store: Store,
        clock: Callable = utcnow,
        new_id: Callable[[], str] = default_new_id,
    ):
        self.store = store
        self.clock = clock
        self.new_id = new_id

    async def current(self) -> Optional[CashShift]:
        open_shifts = await self.store.list(SHIFTS, status=ShiftStatus.OPEN)
        return open_shifts[0] if open_shifts else None

    async def require_open(self) -> CashShift:
        shift = await self.current()
        if shift is None:
            raise NoActiveShiftError("open a cash shift first")
        return shift

    async def _append(self, shift_id: str, kind: MovementType, amount, reason: str) -> CashMovement:
        move = CashMovement(
            id=self.new_id(),
            shift_id=shift_id,
            type=kind,
            amount=to_decimal(amount),
            reason=reason,
            created_at=self.clock(),
        )
        return await self.store.insert(MOVEMENTS, move)

    async def open(self, opening_float=ZERO) -> Tuple[CashShift, CashMovement]:
        opening_float = to_decimal(opening_float)
        if opening_float < 0:
            raise ValueError("opening float must be >= 0")
        existing = await self.current()
        if existing is not None:
            return await self._complete_open(existing)

        shift = CashShift(
            id=self.new_id(),
            opened_at=self.clock(),
            opening_float=opening_float,
            status=ShiftStatus.OPEN,
        )
        # el store puede rechazar con ConflictError si otra terminal ganó la carrera
        shift = await self.store.insert(SHIFTS, shift)
        try:
            move = await self._append(shift.id, MovementType.OPEN, opening_float, "Apertura de caja")
        except Exception as e:
            logger.error("shift_open_incomplete", shift_id=shift.id, error=str(e))
            if isinstance(e, PosError):
                raise
            raise PersistenceFailure(f"opening movement for {shift.id} not recorded: {e}") from e
        logger.info("shift_opened", shift_id=shift.id, opening_float=str(opening_float))
        return shift, move

    async def _complete_open(self, shift: CashShift) -> Tuple[CashShift, CashMovement]:
        moves = await self.movements(shift.id)
        if any(m.type == MovementType.OPEN for m in moves):
            raise ConflictError(f"shift {shift.id} is already open")
        move = await self._append(
            shift.id, MovementType.OPEN, shift.opening_float, "Apertura de caja"
        )
        logger.warning(
            "shift_open_completed", shift_id=shift.id, opening_float=str(shift.opening_float)
        )
        return shift, move

    async def record_movement(self, kind: MovementType, amount, reason: str = "") -> CashMovement:
        kind = MovementType(kind)
        if kind not in MANUAL_TYPES:
            raise ValueError(f"manual movements must be CASH_IN or CASH_OUT, got {kind.value}")
        amount = to_decimal(amount)
        if amount <= 0:
            raise ValueError("movement amount must be > 0")
        shift = await self.require_open()
        move = await self._append(shift.id, kind, amount, reason)
        logger.info(
            "cash_movement_recorded", shift_id=shift.id, type=kind.value, amount=str(amount)
        )
        return move

    async def close(self, counted_amount) -> Tuple[CashShift, Reconciliation]:
        counted_amount = to_decimal(counted_amount)
        shift = await self.require_open()
        # el arqueo se calcula antes de anexar el CLOSE
        summary = await self.reconciliation(shift, counted_amount)

        closed = shift.model_copy(
            update={
                "closed_at": self.clock(),
                "counted_amount": counted_amount,
                "status": ShiftStatus.CLOSED,
            }
        )
        closed = await self.store.update(SHIFTS, closed)
        await self._append(shift.id, MovementType.CLOSE, counted_amount, "Cierre de caja")
        logger.info(
            "shift_closed",
            shift_id=shift.id,
            expected_cash=str(summary.expected_cash),
            counted=str(counted_amount),
            variance=str(summary.variance),
        )
        return closed, summary

    async def get(self, shift_id: str) -> CashShift:
        shift = await self.store.get(SHIFTS, shift_id)
        if shift is None:
            raise NotFoundError(f"shift {shift_id} not found")
        return shift

    async def movements(self, shift_id: str) -> List[CashMovement]:
        return await self.store.list(MOVEMENTS, shift_id=shift_id)

    async def reconciliation(
        self, shift: CashShift, counted_amount: Optional[Decimal] = None
    ) -> Reconciliation:
        movements = await self.movements(shift.id)
        transactions = await self.store.list(TRANSACTIONS, shift_id=shift.id)
        if counted_amount is None and not shift.is_open:
            counted_amount = shift.counted_amount
        return reconcile(shift, movements, transactions, counted_amount)
