from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint

from finsuite.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class CashEntry(Base):
    """Daily cash book line for one branch."""

    __tablename__ = "cash_entries"
    __table_args__ = (
        UniqueConstraint("branch_id", "entry_date", name="uq_cash_entries_branch_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_date = Column(Date, nullable=False, index=True)
    opening_cash = Column(Numeric(12, 2), nullable=False, default=0)
    closing_cash = Column(Numeric(12, 2), nullable=False, default=0)
    sales_cash = Column(Numeric(12, 2), nullable=False, default=0)
    expense_cash = Column(Numeric(12, 2), nullable=False, default=0)
    bank_deposit = Column(Numeric(12, 2), nullable=False, default=0)
    bank_withdrawal = Column(Numeric(12, 2), nullable=False, default=0)
    difference = Column(Numeric(12, 2), nullable=False, default=0)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
