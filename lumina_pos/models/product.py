from sqlalchemy import Column, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..db import Base


class Product(Base):
    __tablename__ = "product"
    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)  # con variantes = suma de variantes
    barcode = Column(String(50), index=True, nullable=True)
    category = Column(String(60), nullable=True)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
    )


class ProductVariant(Base):
    __tablename__ = "product_variant"
    id = Column(String(64), primary_key=True)
    product_id = Column(String(64), ForeignKey("product.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(120), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="variants")
