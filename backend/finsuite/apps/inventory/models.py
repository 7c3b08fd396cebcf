from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String

from finsuite.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    sku = Column(String(64), nullable=True, index=True)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class InventorySale(Base):
    """Item-level sales; one row per product, branch and day."""

    __tablename__ = "inventory_sales"
    __table_args__ = (
        Index("ix_inventory_sales_product_date_branch", "product_id", "sale_date", "branch_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)
    sale_date = Column(Date, nullable=False, index=True)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
