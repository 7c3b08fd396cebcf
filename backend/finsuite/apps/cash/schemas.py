from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.utils.money import Money


class CashEntryCreate(BaseModel):
    branch_id: int
    entry_date: date
    opening_cash: Decimal = Decimal("0")
    sales_cash: Decimal = Decimal("0")
    expense_cash: Decimal = Decimal("0")
    bank_deposit: Decimal = Decimal("0")
    bank_withdrawal: Decimal = Decimal("0")
    # Leave empty to close at the expected amount.
    closing_cash: Optional[Decimal] = None
    remarks: Optional[str] = None


class CashEntryUpdate(BaseModel):
    opening_cash: Optional[Decimal] = None
    sales_cash: Optional[Decimal] = None
    expense_cash: Optional[Decimal] = None
    bank_deposit: Optional[Decimal] = None
    bank_withdrawal: Optional[Decimal] = None
    closing_cash: Optional[Decimal] = None
    remarks: Optional[str] = None


class CashEntryRead(BaseModel):
    id: int
    branch_id: int
    branch_name: Optional[str] = None
    entry_date: date
    opening_cash: Money
    sales_cash: Money
    expense_cash: Money
    bank_deposit: Money
    bank_withdrawal: Money
    closing_cash: Money
    difference: Money
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CashEntryResult(CashEntryRead):
    expected_closing: Money = Field(..., serialization_alias="expectedClosing")


class CashBranchSummary(BaseModel):
    summary_date: date = Field(..., alias="date")
    rows: List[CashEntryRead]
    total_opening: Money = Field(..., serialization_alias="totalOpening")
    total_closing: Money = Field(..., serialization_alias="totalClosing")

    class Config:
        populate_by_name = True


class CashDifferenceAlerts(BaseModel):
    alert_date: date = Field(..., alias="date")
    rows: List[CashEntryRead]

    class Config:
        populate_by_name = True
