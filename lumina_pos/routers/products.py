from typing import Optional

from fastapi import APIRouter, Depends

from ..services.reports import low_stock
from ..store import PRODUCTS
from ..terminal import Terminal, get_terminal
from ._serialize import serialize_product

router = APIRouter(prefix="/products", tags=["products"])


@router.get("")
async def list_products(t: Terminal = Depends(get_terminal)):
    return [serialize_product(p) for p in await t.store.list(PRODUCTS)]


@router.get("/low-stock")
async def list_low_stock(threshold: Optional[int] = None, t: Terminal = Depends(get_terminal)):
    limit = t.low_stock_threshold if threshold is None else threshold
    return [serialize_product(p) for p in await low_stock(t.store, limit)]
