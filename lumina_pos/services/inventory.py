"""Descuento de stock por venta, a nivel producto o variante.

Nunca suma stock. El stock puede quedar negativo: se aplica igual y se marca
con un ``InventoryIssue`` NEGATIVE_STOCK para la conciliación periódica.
"""

import asyncio
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog

from ..core.clock import utcnow
from ..core.errors import InventoryIssue
from ..core.schemas import LineItem, Product
from ..store import PRODUCTS, Store
from ..utils.atomic_file import append_jsonl_atomic
from ..utils.locks import KeyedLocks

logger = structlog.get_logger(__name__)


@dataclass
class InventoryReport:
    adjusted: List[str] = field(default_factory=list)
    issues: List[InventoryIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not any(i.blocking for i in self.issues)

    def warnings(self) -> List[str]:
        return [f"{i.kind}: {i.product_id} {i.detail}".strip() for i in self.issues]


def sold_quantities(items: Iterable[LineItem]) -> Dict[str, Dict[Optional[str], int]]:
    """{product_id: {variant_id|None: qty}} respetando el orden de las líneas."""
    out: Dict[str, Dict[Optional[str], int]] = OrderedDict()
    for it in items:
        per = out.setdefault(it.product_id, {})
        per[it.variant_id] = per.get(it.variant_id, 0) + it.quantity
    return out


def apply_sale(
    product: Product, sold: Mapping[Optional[str], int]
) -> Tuple[Product, List[InventoryIssue]]:
    issues: List[InventoryIssue] = []

    if not product.has_variants:
        qty = sum(sold.values())
        stock = product.stock - qty
        if stock < 0:
            issues.append(InventoryIssue(product.id, "NEGATIVE_STOCK", f"stock={stock}"))
        return Product(**{**product.model_dump(), "stock": stock}), issues

    variants = []
    for v in product.variants:
        qty = sold.get(v.id, 0)
        if qty:
            v = v.model_copy(update={"stock": v.stock - qty})
            if v.stock < 0:
                issues.append(
                    InventoryIssue(product.id, "NEGATIVE_STOCK", f"stock={v.stock}", variant_id=v.id)
                )
        variants.append(v)

    known = {v.id for v in product.variants}
    for variant_id, qty in sold.items():
        if variant_id not in known:
            issues.append(
                InventoryIssue(
                    product.id, "UNKNOWN_VARIANT", f"qty={qty} not applied", variant_id=variant_id
                )
            )

    # el padre se recalcula como suma de variantes (validador de Product)
    data = product.model_dump()
    data["variants"] = [v.model_dump() for v in variants]
    return Product(**data), issues


class InventoryIssueLog:
    """Bitácora JSONL de incidencias de stock para conciliación."""

    def __init__(self, path):
        self.path = Path(path)

    def __call__(self, issue: InventoryIssue, **context) -> None:
        append_jsonl_atomic(self.path, {"ts": utcnow().isoformat(), **asdict(issue), **context})


class InventoryAdjuster:
    def __init__(self, store: Store, issue_sink: Optional[Callable[..., None]] = None):
        self.store = store
        self.issue_sink = issue_sink
        # get → apply → update por producto, uno a la vez
        self._locks = KeyedLocks()

    async def _adjust_one(
        self, product_id: str, sold: Mapping[Optional[str], int]
    ) -> List[InventoryIssue]:
        async with self._locks.hold(product_id):
            product = await self.store.get(PRODUCTS, product_id)
            if product is None:
                return [InventoryIssue(product_id, "NOT_FOUND", "product not in catalogue")]
            updated, issues = apply_sale(product, sold)
            await self.store.update(PRODUCTS, updated)
        return issues

    async def apply(self, items: Iterable[LineItem], reference: str = "") -> InventoryReport:
        """Aplica la venta; cada producto es una escritura independiente."""
        grouped = sold_quantities(items)
        ids = list(grouped)
        results = await asyncio.gather(
            *(self._adjust_one(pid, grouped[pid]) for pid in ids), return_exceptions=True
        )

        report = InventoryReport()
        for pid, res in zip(ids, results):
            if isinstance(res, BaseException):
                report.issues.append(InventoryIssue(pid, "WRITE_FAILED", str(res)))
                continue
            report.issues.extend(res)
            if not any(i.blocking for i in res):
                report.adjusted.append(pid)

        for issue in report.issues:
            logger.warning(
                "inventory_issue",
                reference=reference,
                product_id=issue.product_id,
                variant_id=issue.variant_id,
                kind=issue.kind,
                detail=issue.detail,
            )
            if self.issue_sink is not None:
                try:
                    self.issue_sink(issue, reference=reference)
                except OSError as e:
                    logger.error("inventory_issue_log_failed", error=str(e))
        logger.info("inventory_adjusted", reference=reference, products=report.adjusted)
        return report
