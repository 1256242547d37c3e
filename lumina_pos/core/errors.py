"""Errores del motor de cobro y caja.

Los errores de la ruta "debe ser correcta" (totales, pago, persistencia de la
venta, estado de caja) se lanzan y abortan la operación. Los del inventario no
se lanzan: viajan como ``InventoryIssue`` dentro de un ``InventoryReport``.
"""

from dataclasses import dataclass
from typing import Optional


class PosError(Exception):
    code = "POS_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class NoActiveShiftError(PosError):
    code = "NO_ACTIVE_SHIFT"


class InsufficientPaymentError(PosError):
    code = "INSUFFICIENT_PAYMENT"

    def __init__(self, message: str = "", remaining=None):
        super().__init__(message)
        self.remaining = remaining


class ConflictError(PosError):
    code = "CONFLICT"


class NotFoundError(PosError):
    code = "NOT_FOUND"


class EmptyCartError(PosError):
    code = "EMPTY_CART"


class PersistenceFailure(PosError):
    code = "PERSISTENCE_FAILURE"


@dataclass(frozen=True)
class InventoryIssue:
    product_id: str
    kind: str  # WRITE_FAILED | NOT_FOUND | UNKNOWN_VARIANT | NEGATIVE_STOCK
    detail: str
    variant_id: Optional[str] = None

    @property
    def blocking(self) -> bool:
        # NEGATIVE_STOCK es sólo una marca; el resto implica stock no aplicado
        return self.kind != "NEGATIVE_STOCK"
