from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, Text

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class RentBillStatus(str, enum.Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


class RentBill(Base):
    """Rent, utility bill or other recurring obligation settled through payments."""

    __tablename__ = "rent_bills"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    category = Column(String(64), nullable=False, default="bill", index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(
        value_enum(RentBillStatus, "rent_bill_status_enum"),
        nullable=False,
        default=RentBillStatus.PENDING,
        index=True,
    )
    due_date = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
