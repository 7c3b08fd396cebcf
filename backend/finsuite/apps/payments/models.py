from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class PaymentReferenceType(str, enum.Enum):
    SUPPLIER = "supplier"
    RENT_BILL = "rent_bill"
    SALARY = "salary"
    RECEIVABLE = "receivable"


class PaymentMode(str, enum.Enum):
    CASH = "cash"
    BANK = "bank"


class Payment(Base):
    """
    Money movement tied to a supplier, rent/bill, salary record or receivable.

    `type` names the flow (supplier, rent_bill, salary, receivable_recovery);
    `reference_type` + `reference_id` point at the row it settles. Supplier
    payments made against one invoice also carry `purchase_id`.
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_reference", "reference_type", "reference_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    reference_type = Column(value_enum(PaymentReferenceType, "payment_reference_type_enum"), nullable=False)
    reference_id = Column(Integer, nullable=False)
    purchase_id = Column(Integer, ForeignKey("purchases.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False, default=date.today, index=True)
    mode = Column(value_enum(PaymentMode, "payment_mode_enum"), nullable=False, default=PaymentMode.CASH)
    bank_id = Column(Integer, ForeignKey("banks.id", ondelete="SET NULL"), nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
