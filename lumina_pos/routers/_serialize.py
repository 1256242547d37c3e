from ..core.money import money


def _f(v):
    return None if v is None else float(money(v))


def _ts(v):
    return v.isoformat() if v is not None else None


def serialize_item(i):
    return {
        "product_id": i.product_id, "name": i.name, "unit_price": _f(i.unit_price),
        "quantity": i.quantity, "variant_id": i.variant_id, "variant_name": i.variant_name,
        "discount": _f(i.discount),
    }


def serialize_totals(t):
    return {"subtotal": _f(t.subtotal), "discount": _f(t.discount), "tax": _f(t.tax), "total": _f(t.total)}


def serialize_cart(c, totals=None):
    out = {
        "cart_id": c.id, "pending_order_id": c.pending_order_id,
        "items": [serialize_item(i) for i in c.items],
    }
    if totals is not None:
        out["totals"] = serialize_totals(totals)
    return out


def serialize_transaction(t):
    return {
        "id": t.id, "created_at": _ts(t.created_at), "status": t.status.value,
        "origin": t.origin.value, "shift_id": t.shift_id,
        "subtotal": _f(t.subtotal), "discount": _f(t.discount), "tax": _f(t.tax), "total": _f(t.total),
        "payment_method": t.payment_method, "change": _f(t.change),
        "payments": [{"method": p.method.value, "amount": _f(p.amount)} for p in t.payments],
        "items": [serialize_item(i) for i in t.items],
    }


def serialize_shift(s):
    if s is None:
        return None
    return {
        "id": s.id, "status": s.status.value, "opened_at": _ts(s.opened_at),
        "closed_at": _ts(s.closed_at), "opening_float": _f(s.opening_float),
        "counted_amount": _f(s.counted_amount),
    }


def serialize_movement(m):
    return {
        "id": m.id, "shift_id": m.shift_id, "type": m.type.value, "amount": _f(m.amount),
        "reason": m.reason, "created_at": _ts(m.created_at),
    }


def serialize_reconciliation(r):
    return {
        "shift_id": r.shift_id, "opening_float": _f(r.opening_float), "cash_sales": _f(r.cash_sales),
        "cash_in": _f(r.cash_in), "cash_out": _f(r.cash_out), "expected_cash": _f(r.expected_cash),
        "counted_amount": _f(r.counted_amount), "variance": _f(r.variance),
    }


def serialize_product(p):
    return {
        "id": p.id, "name": p.name, "price": _f(p.price), "stock": p.stock,
        "barcode": p.barcode, "category": p.category,
        "variants": [
            {"id": v.id, "name": v.name, "price": _f(v.price), "stock": v.stock} for v in p.variants
        ],
    }
