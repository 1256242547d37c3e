from sqlalchemy import Column, DateTime, ForeignKey, Index, Numeric, String, Text, text

from ..db import Base


class CashShift(Base):
    __tablename__ = "cash_shift"
    id = Column(String(64), primary_key=True)
    opened_at = Column(DateTime, nullable=False)
    closed_at = Column(DateTime, nullable=True)
    opening_float = Column(Numeric(12, 2), default=0)
    counted_amount = Column(Numeric(12, 2), nullable=True)
    status = Column(String(10), nullable=False, default="OPEN")  # OPEN | CLOSED

    # Una sola caja abierta a la vez (índice parcial)
    __table_args__ = (
        Index(
            "uq_cash_shift_single_open",
            "status",
            unique=True,
            sqlite_where=text("status = 'OPEN'"),
            postgresql_where=text("status = 'OPEN'"),
        ),
    )


class CashMovement(Base):
    __tablename__ = "cash_movement"
    id = Column(String(64), primary_key=True)
    shift_id = Column(String(64), ForeignKey("cash_shift.id"), nullable=False, index=True)
    type = Column(String(10), nullable=False)  # OPEN | CLOSE | CASH_IN | CASH_OUT
    amount = Column(Numeric(12, 2), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
