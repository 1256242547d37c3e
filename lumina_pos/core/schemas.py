from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .money import ZERO, to_decimal


class ShiftStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class MovementType(str, Enum):
    OPEN = "OPEN"
    CLOSE = "CLOSE"
    CASH_IN = "CASH_IN"
    CASH_OUT = "CASH_OUT"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    WALLET = "WALLET"  # billetera digital (Yape, Plin...)


MIXED = "MIXED"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SETTLED = "SETTLED"


class Origin(str, Enum):
    POS = "POS"
    ONLINE = "ONLINE"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------- Catálogo ----------
class Variant(_Frozen):
    id: str
    name: str
    price: Decimal
    stock: int = 0


class Product(_Frozen):
    id: str
    name: str
    price: Decimal
    stock: int = 0
    barcode: Optional[str] = None
    category: Optional[str] = None
    variants: Tuple[Variant, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _stock_from_variants(cls, data):
        # Con variantes, el stock del padre siempre es la suma (nunca se edita aparte)
        if isinstance(data, dict) and data.get("variants"):
            total = 0
            for v in data["variants"]:
                total += int(v["stock"] if isinstance(v, dict) else v.stock)
            data = {**data, "stock": total}
        return data

    @property
    def has_variants(self) -> bool:
        return bool(self.variants)

    def variant(self, variant_id: Optional[str]) -> Optional[Variant]:
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None


# ---------- Carrito ----------
class LineItem(_Frozen):
    product_id: str
    name: str = ""
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    discount: Decimal = Field(default=ZERO, ge=0)  # por unidad

    @property
    def key(self) -> Tuple[str, Optional[str]]:
        return (self.product_id, self.variant_id)


class Cart(BaseModel):
    id: str
    items: List[LineItem] = Field(default_factory=list)
    pending_order_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


# ---------- Totales y pagos ----------
class TaxConfig(_Frozen):
    rate: Decimal = Field(default=ZERO, ge=0)
    prices_include_tax: bool = False

    @field_validator("rate", mode="before")
    @classmethod
    def _to_decimal(cls, v):
        return to_decimal(v)


class Totals(_Frozen):
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


class Payment(_Frozen):
    method: PaymentMethod
    amount: Decimal


class PaymentSplit(_Frozen):
    required_total: Decimal
    total_paid: Decimal
    remaining: Decimal
    change: Decimal
    surplus: Decimal = ZERO  # exceso en tarjeta/billetera que no se guarda ni se devuelve
    payments: Tuple[Payment, ...] = ()
    method: str
    epsilon: Decimal = Decimal("0.01")

    @property
    def settleable(self) -> bool:
        return self.remaining <= self.epsilon

    def tendered(self) -> Dict[PaymentMethod, Decimal]:
        # lo entregado = lo guardado + el vuelto devuelto en efectivo
        out = {p.method: p.amount for p in self.payments}
        if self.change > 0:
            out[PaymentMethod.CASH] = out.get(PaymentMethod.CASH, ZERO) + self.change
        return out


# ---------- Venta ----------
class Transaction(_Frozen):
    id: str
    created_at: datetime
    items: Tuple[LineItem, ...]
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    payment_method: Optional[str] = None
    payments: Tuple[Payment, ...] = ()
    change: Decimal = ZERO
    shift_id: Optional[str] = None
    origin: Origin = Origin.POS
    status: TransactionStatus = TransactionStatus.SETTLED

    @property
    def cash_amount(self) -> Decimal:
        return sum((p.amount for p in self.payments if p.method == PaymentMethod.CASH), ZERO)


# ---------- Caja ----------
class CashShift(_Frozen):
    id: str
    opened_at: datetime
    closed_at: Optional[datetime] = None
    opening_float: Decimal = ZERO
    counted_amount: Optional[Decimal] = None
    status: ShiftStatus = ShiftStatus.OPEN

    @property
    def is_open(self) -> bool:
        return self.status == ShiftStatus.OPEN


class CashMovement(_Frozen):
    id: str
    shift_id: str
    type: MovementType
    amount: Decimal
    reason: str = ""
    created_at: datetime


class Reconciliation(_Frozen):
    shift_id: str
    opening_float: Decimal
    cash_sales: Decimal
    cash_in: Decimal
    cash_out: Decimal
    expected_cash: Decimal
    counted_amount: Optional[Decimal] = None
    variance: Optional[Decimal] = None


# ---------- Cuerpos HTTP ----------
class OpenShiftIn(BaseModel):
    opening_float: Decimal = Field(default=ZERO, ge=0)


class MovementIn(BaseModel):
    type: MovementType
    amount: Decimal = Field(..., gt=0)
    reason: str = ""


class CloseShiftIn(BaseModel):
    counted_amount: Decimal = Field(..., ge=0)


class AddItemIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(default=1, ge=1)


class QuantityIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    delta: int


class DiscountIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    discount: Decimal = Field(..., ge=0)


class RemoveItemIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None


class CheckoutIn(BaseModel):
    tenders: Dict[PaymentMethod, Decimal] = Field(default_factory=dict)

    @field_validator("tenders")
    @classmethod
    def _non_negative(cls, v):
        for method, amount in v.items():
            if amount < 0:
                raise ValueError(f"tender for {method.value} must be >= 0")
        return v


class ExternalItemIn(BaseModel):
    product_id: str
    variant_id: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    discount: Decimal = Field(default=ZERO, ge=0)


class ExternalOrderIn(BaseModel):
    items: List[ExternalItemIn] = Field(..., min_length=1)
