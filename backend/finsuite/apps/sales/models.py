from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class SaleType(str, enum.Enum):
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    MIXED = "mixed"


class Sale(Base):
    """Daily branch sales entry split by collection channel."""

    __tablename__ = "sales"
    __table_args__ = (Index("ix_sales_branch_date", "branch_id", "sale_date"),)

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    bank_id = Column(Integer, ForeignKey("banks.id", ondelete="SET NULL"), nullable=True)
    sale_date = Column(Date, nullable=False, index=True)
    type = Column(value_enum(SaleType, "sale_type_enum"), nullable=False, default=SaleType.CASH)
    cash_amount = Column(Numeric(12, 2), nullable=False, default=0)
    bank_amount = Column(Numeric(12, 2), nullable=False, default=0)
    credit_amount = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    returns_amount = Column(Numeric(12, 2), nullable=False, default=0)
    net_sales = Column(Numeric(12, 2), nullable=False, default=0)
    remarks = Column(Text, nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    bank_splits = relationship(
        "SaleBankSplit",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleBankSplit.id",
    )


class SaleBankSplit(Base):
    __tablename__ = "sale_bank_splits"

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    bank_id = Column(Integer, ForeignKey("banks.id", ondelete="RESTRICT"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    sale = relationship("Sale", back_populates="bank_splits")
