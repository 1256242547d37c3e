from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(v) -> Decimal:
    if isinstance(v, Decimal):
        return v
    if v is None:
        return ZERO
    # str() evita arrastrar el error binario de los float
    return Decimal(str(v))


def money(v) -> Decimal:
    return to_decimal(v).quantize(CENT, rounding=ROUND_HALF_UP)
