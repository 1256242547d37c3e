from decimal import Decimal

from lumina_pos.core.schemas import LineItem, TaxConfig
from lumina_pos.services.pricing import compute_totals, quantize_totals, settle_totals


def _item(price, qty, discount="0"):
    return LineItem(product_id="p", unit_price=Decimal(price), quantity=qty, discount=Decimal(discount))


def _balanced(t):
    return abs(t.total - (t.subtotal + t.tax - t.discount)) <= Decimal("0.01")


def test_tax_exclusive_two_items(tax_excl):
    t = settle_totals([_item("10.00", 1), _item("10.00", 1)], tax_excl)
    assert t.subtotal == Decimal("20.00")
    assert t.tax == Decimal("3.60")
    assert t.total == Decimal("23.60")
    assert _balanced(t)


def test_tax_inclusive_scenario(tax_incl):
    t = settle_totals([_item("15.00", 2)], tax_incl)
    assert t.subtotal == Decimal("25.42")
    assert t.tax == Decimal("4.58")
    assert t.total == Decimal("30.00")
    assert t.discount == Decimal("0.00")
    assert _balanced(t)


def test_discount_is_per_unit(tax_excl):
    t = settle_totals([_item("10.00", 3, discount="1.00")], tax_excl)
    assert t.subtotal == Decimal("30.00")
    assert t.discount == Decimal("3.00")
    assert t.tax == Decimal("4.86")
    assert t.total == Decimal("31.86")
    assert _balanced(t)


def test_inclusive_with_discount_stays_balanced(tax_incl):
    t = settle_totals([_item("11.80", 2, discount="1.80")], tax_incl)
    assert t.total == Decimal("20.00")
    assert t.tax == Decimal("3.05")
    assert _balanced(t)


def test_over_discount_floors_at_zero(tax_excl, tax_incl):
    for tax in (tax_excl, tax_incl):
        t = settle_totals([_item("5.00", 2, discount="9.00")], tax)
        assert t.total == Decimal("0.00")
        assert t.tax == Decimal("0.00")
        # el descuento aplicado se limita al subtotal
        assert t.discount == Decimal("10.00")
        assert _balanced(t)


def test_zero_rate_and_empty_list():
    t = settle_totals([], TaxConfig())
    assert (t.subtotal, t.tax, t.total) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))


def test_internal_accumulation_is_unrounded(tax_incl):
    exact = compute_totals([_item("15.00", 2)], tax_incl)
    assert exact.tax != exact.tax.quantize(Decimal("0.01"))
    assert quantize_totals(exact).tax == Decimal("4.58")


def test_many_small_prices_do_not_drift(tax_excl):
    t = settle_totals([_item("0.10", 1)] * 30, tax_excl)
    assert t.subtotal == Decimal("3.00")
    assert t.total == Decimal("3.54")
