from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class PosTransaction(Base):
    __tablename__ = "pos_transaction"
    id = Column(String(64), primary_key=True)
    created_at = Column(DateTime, nullable=False, index=True)
    shift_id = Column(String(64), ForeignKey("cash_shift.id"), nullable=True, index=True)
    origin = Column(String(10), nullable=False, default="POS")  # POS | ONLINE
    status = Column(String(10), nullable=False, default="SETTLED")  # PENDING | SETTLED
    subtotal = Column(Numeric(12, 2), default=0)
    discount = Column(Numeric(12, 2), default=0)
    tax = Column(Numeric(12, 2), default=0)
    total = Column(Numeric(12, 2), default=0)
    payment_method = Column(String(10), nullable=True)  # CASH | CARD | WALLET | MIXED
    change = Column(Numeric(12, 2), default=0)
    items = Column(JSON, nullable=False)  # snapshot congelado de las líneas

    payments = relationship(
        "PosPayment",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="PosPayment.id",
    )


class PosPayment(Base):
    __tablename__ = "pos_payment"
    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String(64), ForeignKey("pos_transaction.id"), nullable=False, index=True)
    method = Column(String(10), nullable=False)  # CASH | CARD | WALLET
    amount = Column(Numeric(12, 2), nullable=False)

    transaction = relationship("PosTransaction", back_populates="payments")
