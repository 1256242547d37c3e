"""Operaciones del carrito. Mutan el ``Cart`` recibido y lo devuelven."""

from typing import Callable, Optional

from ..core.clock import new_id as default_new_id
from ..core.errors import ConflictError, NotFoundError
from ..core.money import to_decimal
from ..core.schemas import Cart, LineItem, Product, Transaction, TransactionStatus


def new_cart(new_id: Callable[[], str] = default_new_id) -> Cart:
    return Cart(id=new_id())


def _index(cart: Cart, product_id: str, variant_id: Optional[str]) -> int:
    for i, item in enumerate(cart.items):
        if item.key == (product_id, variant_id):
            return i
    raise NotFoundError(f"item {product_id}/{variant_id} not in cart")


def add_item(cart: Cart, product: Product, variant_id: Optional[str] = None, qty: int = 1) -> Cart:
    if qty < 1:
        raise ValueError("quantity must be >= 1")
    for i, item in enumerate(cart.items):
        if item.key == (product.id, variant_id):
            cart.items[i] = item.model_copy(update={"quantity": item.quantity + qty})
            return cart

    price, variant_name = product.price, None
    if variant_id is not None:
        variant = product.variant(variant_id)
        if variant is None:
            raise NotFoundError(f"variant {variant_id} not found for {product.id}")
        price, variant_name = variant.price, variant.name

    # el precio queda congelado al momento de agregar
    cart.items.append(
        LineItem(
            product_id=product.id,
            name=product.name,
            unit_price=price,
            quantity=qty,
            variant_id=variant_id,
            variant_name=variant_name,
        )
    )
    return cart


def update_quantity(cart: Cart, product_id: str, delta: int, variant_id: Optional[str] = None) -> Cart:
    i = _index(cart, product_id, variant_id)
    item = cart.items[i]
    cart.items[i] = item.model_copy(update={"quantity": max(1, item.quantity + delta)})
    return cart


def remove_item(cart: Cart, product_id: str, variant_id: Optional[str] = None) -> Cart:
    cart.items.pop(_index(cart, product_id, variant_id))
    return cart


def set_discount(cart: Cart, product_id: str, discount, variant_id: Optional[str] = None) -> Cart:
    discount = to_decimal(discount)
    if discount < 0:
        raise ValueError("discount must be >= 0")
    i = _index(cart, product_id, variant_id)
    cart.items[i] = cart.items[i].model_copy(update={"discount": discount})
    return cart


def clear(cart: Cart, new_id: Callable[[], str] = default_new_id) -> Cart:
    cart.items = []
    cart.pending_order_id = None
    cart.id = new_id()
    return cart


def import_pending_order(cart: Cart, order: Transaction) -> Cart:
    """Carga un pedido externo pendiente en el carrito para cobrarlo."""
    if order.status != TransactionStatus.PENDING:
        raise ConflictError(f"order {order.id} is {order.status.value}, not PENDING")
    cart.items = list(order.items)
    cart.pending_order_id = order.id
    return cart
