from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.attachments.schemas import AttachmentRead
from finsuite.utils.money import Money

from .models import ExpenseType


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: ExpenseType = ExpenseType.VARIABLE


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[ExpenseType] = None


class CategoryRead(BaseModel):
    id: int
    name: str
    type: ExpenseType

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    branch_id: int
    category_id: int
    amount: Decimal
    expense_date: date
    type: ExpenseType = ExpenseType.VARIABLE
    is_recurring: bool = False
    remarks: Optional[str] = None
    status: str = "approved"


class ExpenseUpdate(BaseModel):
    branch_id: Optional[int] = None
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None
    expense_date: Optional[date] = None
    type: Optional[ExpenseType] = None
    is_recurring: Optional[bool] = None
    remarks: Optional[str] = None
    status: Optional[str] = None


class ExpenseRead(BaseModel):
    id: int
    branch_id: int
    branch_name: Optional[str] = None
    category_id: int
    category_name: Optional[str] = None
    category_type: Optional[ExpenseType] = None
    amount: Money
    expense_date: date
    type: ExpenseType
    is_recurring: bool
    remarks: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseDetail(ExpenseRead):
    attachments: List[AttachmentRead] = []


class ExpenseReport(BaseModel):
    report_date: date = Field(..., alias="date")
    branch_id: Optional[int] = None
    rows: List[ExpenseRead]
    total: Money

    class Config:
        populate_by_name = True


class MonthlyExpenseRow(BaseModel):
    expense_date: date
    branch_id: int
    branch_name: Optional[str] = None
    daily_total: Money


class MonthlyExpenseReport(BaseModel):
    month: int
    year: int
    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")
    rows: List[MonthlyExpenseRow]
    total: Money

    class Config:
        populate_by_name = True


class CategoryTotal(BaseModel):
    id: int
    name: str
    type: ExpenseType
    total: Money


class ExpenseVsSales(BaseModel):
    month: int
    year: int
    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")
    expense_total: Money = Field(..., serialization_alias="expenseTotal")
    sales_total: Money = Field(..., serialization_alias="salesTotal")
    expense_ratio: Money = Field(..., serialization_alias="expenseRatio")

    class Config:
        populate_by_name = True
