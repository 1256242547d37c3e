"""Reparto del pago entre efectivo, tarjeta y billetera digital."""

from decimal import Decimal
from typing import Mapping, Optional

from ..core.errors import InsufficientPaymentError
from ..core.money import ZERO, to_decimal
from ..core.schemas import MIXED, Payment, PaymentMethod, PaymentSplit

DEFAULT_EPSILON = Decimal("0.01")
CASH_METHOD = PaymentMethod.CASH


def split_payment(
    required_total,
    tenders: Optional[Mapping[PaymentMethod, object]] = None,
    epsilon=DEFAULT_EPSILON,
    cash_method: PaymentMethod = CASH_METHOD,
) -> PaymentSplit:
    """
    Valida lo entregado contra el total y arma los pagos a guardar.

    - Métodos ausentes cuentan como 0.
    - El vuelto se descuenta del efectivo: lo guardado suma exactamente el total.
    - Lo que sobra en tarjeta o billetera no es vuelto: se recorta del monto
      guardado y queda en ``surplus``.
    - Más de un método con monto > 0 ⇒ etiqueta MIXED.
    """
    required = to_decimal(required_total)
    eps = to_decimal(epsilon)
    amounts = {}
    for method, raw in (tenders or {}).items():
        method = PaymentMethod(method)
        amount = to_decimal(raw)
        if amount < 0:
            raise ValueError(f"tender for {method.value} must be >= 0")
        amounts[method] = amounts.get(method, ZERO) + amount

    total_paid = sum(amounts.values(), ZERO)
    remaining = max(ZERO, required - total_paid)
    excess = max(ZERO, total_paid - required)

    stored = dict(amounts)
    change = min(excess, stored.get(cash_method, ZERO))
    if change > 0:
        stored[cash_method] -= change

    # el resto del exceso se recorta de los métodos sin efectivo, del último al primero
    surplus = excess - change
    left = surplus
    for method in reversed(list(stored)):
        if left <= 0:
            break
        if method == cash_method:
            continue
        cut = min(stored[method], left)
        stored[method] -= cut
        left -= cut

    payments = tuple(
        Payment(method=m, amount=a) for m, a in stored.items() if a > 0
    )
    if len(payments) > 1:
        tag = MIXED
    elif payments:
        tag = payments[0].method.value
    else:
        # venta en cero: pasa por la caja como efectivo
        tag = cash_method.value

    return PaymentSplit(
        required_total=required,
        total_paid=total_paid,
        remaining=remaining,
        change=change,
        surplus=surplus,
        payments=payments,
        method=tag,
        epsilon=eps,
    )


def ensure_settleable(split: PaymentSplit) -> PaymentSplit:
    if not split.settleable:
        raise InsufficientPaymentError(
            f"payment incomplete: {split.remaining} remaining of {split.required_total}",
            remaining=split.remaining,
        )
    return split
