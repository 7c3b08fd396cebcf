from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class ReceivableStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    RECOVERED = "recovered"


OPEN_STATUSES = (ReceivableStatus.PENDING, ReceivableStatus.PARTIAL)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    contact = Column(String(128), nullable=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Receivable(Base):
    """
    Money owed by a customer.

    `amount` is the outstanding remainder; it shrinks with every recovery, so
    the original amount is `amount + sum(recoveries)`.
    """

    __tablename__ = "receivables"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="SET NULL"), nullable=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=True, index=True)
    status = Column(
        value_enum(ReceivableStatus, "receivable_status_enum"),
        nullable=False,
        default=ReceivableStatus.PENDING,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)

    recoveries = relationship(
        "ReceivableRecovery",
        back_populates="receivable",
        cascade="all, delete-orphan",
        order_by="ReceivableRecovery.recovered_at",
    )


class ReceivableRecovery(Base):
    __tablename__ = "receivable_recoveries"

    id = Column(Integer, primary_key=True, index=True)
    receivable_id = Column(Integer, ForeignKey("receivables.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    remarks = Column(Text, nullable=True)
    recovered_at = Column(DateTime, nullable=False, default=_utcnow, index=True)

    receivable = relationship("Receivable", back_populates="recoveries")
