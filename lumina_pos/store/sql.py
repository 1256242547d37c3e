from enum import Enum
from typing import Callable, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core import schemas
from ..core.errors import ConflictError, NotFoundError, PersistenceFailure
from ..db import create_all, make_engine, make_sessionmaker
from ..models import pos as pos_models
from ..models import pos_session as session_models
from ..models import product as product_models
from .base import MOVEMENTS, PRODUCTS, SHIFTS, TRANSACTIONS, Store, check_collection


# ---------- product ----------
def _apply_product(row: product_models.Product, rec: schemas.Product) -> None:
    row.id = rec.id
    row.name = rec.name
    row.price = rec.price
    row.stock = rec.stock
    row.barcode = rec.barcode
    row.category = rec.category

    # actualiza variantes en sitio (mismo id ⇒ misma fila)
    existing = {v.id: v for v in row.variants}
    keep = []
    for pos, v in enumerate(rec.variants):
        vrow = existing.get(v.id) or product_models.ProductVariant(id=v.id)
        vrow.position = pos
        vrow.name = v.name
        vrow.price = v.price
        vrow.stock = v.stock
        keep.append(vrow)
    row.variants = keep


def _product_from_row(row: product_models.Product) -> schemas.Product:
    return schemas.Product(
        id=row.id,
        name=row.name,
        price=row.price,
        stock=row.stock or 0,
        barcode=row.barcode,
        category=row.category,
        variants=tuple(
            schemas.Variant(id=v.id, name=v.name, price=v.price, stock=v.stock or 0)
            for v in row.variants
        ),
    )


# ---------- transaction ----------
def _apply_transaction(row: pos_models.PosTransaction, rec: schemas.Transaction) -> None:
    row.id = rec.id
    row.created_at = rec.created_at
    row.shift_id = rec.shift_id
    row.origin = rec.origin.value
    row.status = rec.status.value
    row.subtotal = rec.subtotal
    row.discount = rec.discount
    row.tax = rec.tax
    row.total = rec.total
    row.payment_method = rec.payment_method
    row.change = rec.change
    row.items = [i.model_dump(mode="json") for i in rec.items]
    row.payments = [
        pos_models.PosPayment(method=p.method.value, amount=p.amount) for p in rec.payments
    ]


def _transaction_from_row(row: pos_models.PosTransaction) -> schemas.Transaction:
    return schemas.Transaction(
        id=row.id,
        created_at=row.created_at,
        items=tuple(schemas.LineItem.model_validate(i) for i in (row.items or [])),
        subtotal=row.subtotal,
        tax=row.tax,
        discount=row.discount,
        total=row.total,
        payment_method=row.payment_method,
        payments=tuple(
            schemas.Payment(method=p.method, amount=p.amount) for p in row.payments
        ),
        change=row.change or 0,
        shift_id=row.shift_id,
        origin=row.origin,
        status=row.status,
    )


# ---------- shift / movement ----------
def _apply_shift(row: session_models.CashShift, rec: schemas.CashShift) -> None:
    row.id = rec.id
    row.opened_at = rec.opened_at
    row.closed_at = rec.closed_at
    row.opening_float = rec.opening_float
    row.counted_amount = rec.counted_amount
    row.status = rec.status.value


def _shift_from_row(row: session_models.CashShift) -> schemas.CashShift:
    return schemas.CashShift(
        id=row.id,
        opened_at=row.opened_at,
        closed_at=row.closed_at,
        opening_float=row.opening_float or 0,
        counted_amount=row.counted_amount,
        status=row.status,
    )


def _apply_movement(row: session_models.CashMovement, rec: schemas.CashMovement) -> None:
    row.id = rec.id
    row.shift_id = rec.shift_id
    row.type = rec.type.value
    row.amount = rec.amount
    row.reason = rec.reason
    row.created_at = rec.created_at


def _movement_from_row(row: session_models.CashMovement) -> schemas.CashMovement:
    return schemas.CashMovement(
        id=row.id,
        shift_id=row.shift_id,
        type=row.type,
        amount=row.amount,
        reason=row.reason or "",
        created_at=row.created_at,
    )


class _Mapping:
    def __init__(self, model, apply: Callable, load: Callable, order_by):
        self.model = model
        self.apply = apply
        self.load = load
        self.order_by = order_by


_MAPPINGS: Dict[str, _Mapping] = {
    PRODUCTS: _Mapping(
        product_models.Product, _apply_product, _product_from_row, product_models.Product.name
    ),
    TRANSACTIONS: _Mapping(
        pos_models.PosTransaction,
        _apply_transaction,
        _transaction_from_row,
        pos_models.PosTransaction.created_at,
    ),
    SHIFTS: _Mapping(
        session_models.CashShift, _apply_shift, _shift_from_row, session_models.CashShift.opened_at
    ),
    MOVEMENTS: _Mapping(
        session_models.CashMovement,
        _apply_movement,
        _movement_from_row,
        session_models.CashMovement.created_at,
    ),
}


def _plain(v):
    return v.value if isinstance(v, Enum) else v


class SqlStore(Store):
    """Store sobre SQLAlchemy; las llamadas bloqueantes van al threadpool."""

    def __init__(self, url: Optional[str] = None, engine=None):
        if engine is None:
            engine = make_engine(url)
        self.engine = engine
        self.SessionLocal = make_sessionmaker(engine)
        create_all(engine)

    def _mapping(self, collection: str) -> _Mapping:
        check_collection(collection)
        return _MAPPINGS[collection]

    def _write(self, collection: str, record: BaseModel, is_insert: bool) -> BaseModel:
        m = self._mapping(collection)
        db = self.SessionLocal()
        try:
            row = db.get(m.model, record.id)
            if is_insert:
                if row is not None:
                    raise ConflictError(f"{collection}:{record.id} already exists")
                row = m.model()
                m.apply(row, record)
                db.add(row)
            else:
                if row is None:
                    raise NotFoundError(f"{collection}:{record.id} not found")
                m.apply(row, record)
            db.commit()
            db.refresh(row)
            return m.load(row)
        except IntegrityError as e:
            db.rollback()
            raise ConflictError(f"{collection}:{record.id} violates a constraint") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"{collection} write failed: {e}") from e
        finally:
            db.close()

    def _get(self, collection: str, record_id: str) -> Optional[BaseModel]:
        m = self._mapping(collection)
        db = self.SessionLocal()
        try:
            row = db.get(m.model, record_id)
            return m.load(row) if row is not None else None
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"{collection} read failed: {e}") from e
        finally:
            db.close()

    def _list(self, collection: str, filters: dict) -> List[BaseModel]:
        m = self._mapping(collection)
        db = self.SessionLocal()
        try:
            q = db.query(m.model).filter_by(**{k: _plain(v) for k, v in filters.items()})
            return [m.load(r) for r in q.order_by(m.order_by).all()]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"{collection} read failed: {e}") from e
        finally:
            db.close()

    async def insert(self, collection, record):
        return await run_in_threadpool(self._write, collection, record, True)

    async def update(self, collection, record):
        return await run_in_threadpool(self._write, collection, record, False)

    async def get(self, collection, record_id):
        return await run_in_threadpool(self._get, collection, record_id)

    async def list(self, collection, **filters):
        return await run_in_threadpool(self._list, collection, filters)
