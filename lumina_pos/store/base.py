import abc
from typing import Dict, List, Optional, Type

from pydantic import BaseModel

from ..core.schemas import CashMovement, CashShift, Product, Transaction

PRODUCTS = "products"
TRANSACTIONS = "transactions"
SHIFTS = "shifts"
MOVEMENTS = "movements"

COLLECTIONS: Dict[str, Type[BaseModel]] = {
    PRODUCTS: Product,
    TRANSACTIONS: Transaction,
    SHIFTS: CashShift,
    MOVEMENTS: CashMovement,
}


def check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"unknown collection: {collection}")


def matches(record: BaseModel, filters: dict) -> bool:
    for field, expected in filters.items():
        if getattr(record, field) != expected:
            return False
    return True


class Store(abc.ABC):
    """Colaborador de persistencia: CRUD asíncrono por id."""

    @abc.abstractmethod
    async def insert(self, collection: str, record: BaseModel) -> BaseModel: ...

    @abc.abstractmethod
    async def update(self, collection: str, record: BaseModel) -> BaseModel: ...

    @abc.abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[BaseModel]: ...

    @abc.abstractmethod
    async def list(self, collection: str, **filters) -> List[BaseModel]: ...
