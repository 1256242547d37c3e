"""Cálculo de subtotal, descuento, impuesto y total de una lista de líneas.

Funciones puras: todo se acumula en Decimal sin redondear y el redondeo a
centavos sólo se aplica al presentar (``quantize_totals``).
"""

from decimal import Decimal
from typing import Iterable

from ..core.money import ZERO, money
from ..core.schemas import LineItem, TaxConfig, Totals


def compute_totals(items: Iterable[LineItem], tax: TaxConfig) -> Totals:
    items = list(items)
    subtotal = sum((i.unit_price * i.quantity for i in items), ZERO)
    requested_discount = sum((i.discount * i.quantity for i in items), ZERO)

    # Sobre-descuento: el total se queda en cero, nunca negativo
    gross = max(ZERO, subtotal - requested_discount)
    discount = subtotal - gross

    rate = tax.rate
    if tax.prices_include_tax:
        tax_amount = gross - gross / (Decimal(1) + rate)
        return Totals(
            subtotal=subtotal - tax_amount,
            discount=discount,
            tax=tax_amount,
            total=gross,
        )

    tax_amount = gross * rate
    return Totals(
        subtotal=subtotal,
        discount=discount,
        tax=tax_amount,
        total=gross + tax_amount,
    )


def quantize_totals(totals: Totals) -> Totals:
    """Redondea a centavos manteniendo ``total == subtotal + tax - discount``."""
    tax = money(totals.tax)
    discount = money(totals.discount)
    total = money(totals.total)
    # el subtotal absorbe el centavo de diferencia
    subtotal = total - tax + discount
    return Totals(subtotal=subtotal, discount=discount, tax=tax, total=total)


def settle_totals(items: Iterable[LineItem], tax: TaxConfig) -> Totals:
    return quantize_totals(compute_totals(items, tax))
