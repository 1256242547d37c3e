import asyncio
from decimal import Decimal

import structlog

from .core.config import settings
from .core.errors import ConflictError
from .core.log import configure_logging
from .core.schemas import Product, Variant
from .store import PRODUCTS, Store
from .terminal import build_store

logger = structlog.get_logger(__name__)

DEMO_PRODUCTS = [
    Product(id="1", name="Inca Kola 600ml", price=Decimal("3.50"), stock=50, category="Bebidas", barcode="77501000"),
    Product(id="2", name="Papas Lays 45g", price=Decimal("2.50"), stock=32, category="Alimentos", barcode="75010001"),
    Product(id="3", name="Galleta Casino", price=Decimal("1.20"), stock=15, category="Alimentos", barcode="75010002"),
    Product(id="4", name="Agua San Mateo", price=Decimal("2.00"), stock=100, category="Bebidas", barcode="77502000"),
    Product(id="5", name="Detergente Bolivar", price=Decimal("4.50"), stock=10, category="Limpieza", barcode="77503000"),
    Product(
        id="6",
        name="Polo Básico",
        price=Decimal("25.00"),
        category="Otros",
        variants=(
            Variant(id="6-S", name="Talla S", price=Decimal("25.00"), stock=8),
            Variant(id="6-M", name="Talla M", price=Decimal("25.00"), stock=12),
            Variant(id="6-L", name="Talla L", price=Decimal("27.00"), stock=5),
        ),
    ),
]


async def get_or_create(store: Store, product: Product) -> bool:
    if await store.get(PRODUCTS, product.id) is not None:
        return False
    try:
        await store.insert(PRODUCTS, product)
    except ConflictError:
        return False
    return True


async def seed(store: Store) -> int:
    created = 0
    for p in DEMO_PRODUCTS:
        if await get_or_create(store, p):
            created += 1
    logger.info("demo_seeded", created=created, total=len(DEMO_PRODUCTS))
    return created


def main():
    configure_logging(settings.log_level, settings.log_json)
    asyncio.run(seed(build_store()))


if __name__ == "__main__":
    main()
