from typing import Dict, List, Optional

from pydantic import BaseModel

from ..core.errors import ConflictError, NotFoundError
from ..core.schemas import ShiftStatus
from .base import SHIFTS, Store, check_collection, matches


class MemoryStore(Store):
    """Store en memoria; guarda copias para que nadie mute lo persistido."""

    def __init__(self):
        self._data: Dict[str, Dict[str, BaseModel]] = {}

    def _table(self, collection: str) -> Dict[str, BaseModel]:
        check_collection(collection)
        return self._data.setdefault(collection, {})

    def _check_single_open_shift(self, record: BaseModel) -> None:
        if record.status != ShiftStatus.OPEN:
            return
        for other in self._table(SHIFTS).values():
            if other.id != record.id and other.status == ShiftStatus.OPEN:
                raise ConflictError(f"shift {other.id} is already open")

    async def insert(self, collection, record):
        table = self._table(collection)
        if record.id in table:
            raise ConflictError(f"{collection}:{record.id} already exists")
        if collection == SHIFTS:
            self._check_single_open_shift(record)
        table[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def update(self, collection, record):
        table = self._table(collection)
        if record.id not in table:
            raise NotFoundError(f"{collection}:{record.id} not found")
        if collection == SHIFTS:
            self._check_single_open_shift(record)
        table[record.id] = record.model_copy(deep=True)
        return record.model_copy(deep=True)

    async def get(self, collection, record_id) -> Optional[BaseModel]:
        rec = self._table(collection).get(record_id)
        return rec.model_copy(deep=True) if rec is not None else None

    async def list(self, collection, **filters) -> List[BaseModel]:
        return [
            r.model_copy(deep=True)
            for r in self._table(collection).values()
            if matches(r, filters)
        ]
