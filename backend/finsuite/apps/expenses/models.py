from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class ExpenseType(str, enum.Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ExpenseCategory(Base):
    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False, unique=True)
    type = Column(value_enum(ExpenseType, "expense_type_enum"), nullable=False, default=ExpenseType.VARIABLE)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("branches.id", ondelete="RESTRICT"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("expense_categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False, index=True)
    type = Column(value_enum(ExpenseType, "expense_entry_type_enum"), nullable=False, default=ExpenseType.VARIABLE)
    is_recurring = Column(Boolean, nullable=False, default=False)
    remarks = Column(Text, nullable=True)
    status = Column(String(32), nullable=False, default="approved")
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
