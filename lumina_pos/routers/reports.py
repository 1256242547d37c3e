from fastapi import APIRouter, Depends

from ..services.reports import sales_summary
from ..terminal import Terminal, get_terminal

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary")
async def summary(t: Terminal = Depends(get_terminal)):
    s = await sales_summary(t.store, t.low_stock_threshold)
    return {
        "total_sales": float(s["total_sales"]),
        "transaction_count": s["transaction_count"],
        "by_payment_tag": {k: float(v) for k, v in s["by_payment_tag"].items()},
        "by_method": {k: float(v) for k, v in s["by_method"].items()},
        "low_stock_count": s["low_stock_count"],
    }
