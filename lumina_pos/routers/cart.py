from fastapi import APIRouter, Depends

from ..core.errors import NotFoundError
from ..core.schemas import AddItemIn, DiscountIn, QuantityIn, RemoveItemIn
from ..services import cart as cart_ops
from ..store import PRODUCTS
from ..terminal import Terminal, get_terminal
from ._serialize import serialize_cart, serialize_totals

router = APIRouter(prefix="/cart", tags=["cart"])


def _cart_view(t: Terminal):
    return serialize_cart(t.cart, t.coordinator.quote(t.cart))


@router.get("")
async def get_cart(t: Terminal = Depends(get_terminal)):
    return _cart_view(t)


@router.get("/totals")
async def cart_totals(t: Terminal = Depends(get_terminal)):
    return serialize_totals(t.coordinator.quote(t.cart))


@router.post("/items")
async def add_item(payload: AddItemIn, t: Terminal = Depends(get_terminal)):
    product = await t.store.get(PRODUCTS, payload.product_id)
    if product is None:
        raise NotFoundError(f"product {payload.product_id} not found")
    cart_ops.add_item(t.cart, product, payload.variant_id, payload.quantity)
    return _cart_view(t)


@router.post("/items/quantity")
async def update_quantity(payload: QuantityIn, t: Terminal = Depends(get_terminal)):
    cart_ops.update_quantity(t.cart, payload.product_id, payload.delta, payload.variant_id)
    return _cart_view(t)


@router.post("/items/discount")
async def set_discount(payload: DiscountIn, t: Terminal = Depends(get_terminal)):
    cart_ops.set_discount(t.cart, payload.product_id, payload.discount, payload.variant_id)
    return _cart_view(t)


@router.post("/items/remove")
async def remove_item(payload: RemoveItemIn, t: Terminal = Depends(get_terminal)):
    cart_ops.remove_item(t.cart, payload.product_id, payload.variant_id)
    return _cart_view(t)


@router.post("/clear")
async def clear_cart(t: Terminal = Depends(get_terminal)):
    cart_ops.clear(t.cart, t.new_id)
    return _cart_view(t)
