from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.attachments.schemas import AttachmentRead
from finsuite.utils.money import Money

from .models import SaleType


class BankSplitIn(BaseModel):
    bank_id: Optional[int] = None
    amount: Decimal = Decimal("0")


class BankSplitRead(BaseModel):
    id: int
    bank_id: int
    bank_name: Optional[str] = None
    amount: Money

    class Config:
        from_attributes = True


class SaleCreate(BaseModel):
    branch_id: int
    customer_id: Optional[int] = None
    bank_id: Optional[int] = None
    sale_date: date
    type: SaleType = SaleType.CASH
    cash_amount: Decimal = Decimal("0")
    bank_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    returns_amount: Decimal = Decimal("0")
    remarks: Optional[str] = None
    due_date: Optional[date] = None
    bank_splits: List[BankSplitIn] = []


class SaleUpdate(BaseModel):
    sale_date: Optional[date] = None
    type: Optional[SaleType] = None
    customer_id: Optional[int] = None
    bank_id: Optional[int] = None
    cash_amount: Optional[Decimal] = None
    bank_amount: Optional[Decimal] = None
    credit_amount: Optional[Decimal] = None
    discount: Optional[Decimal] = None
    returns_amount: Optional[Decimal] = None
    remarks: Optional[str] = None
    bank_splits: Optional[List[BankSplitIn]] = None


class SaleLock(BaseModel):
    lock: bool


class SaleRead(BaseModel):
    id: int
    branch_id: int
    branch_name: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    bank_id: Optional[int] = None
    sale_date: date
    type: SaleType
    cash_amount: Money
    bank_amount: Money
    credit_amount: Money
    discount: Money
    returns_amount: Money
    net_sales: Money
    remarks: Optional[str] = None
    is_locked: bool
    bank_split_label: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SaleDetail(SaleRead):
    bank_splits: List[BankSplitRead] = []
    attachments: List[AttachmentRead] = []


class SaleReport(BaseModel):
    rows: List[SaleRead]
    total: Money
    report_date: Optional[date] = Field(default=None, alias="date")
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")
    branch_id: Optional[int] = None

    class Config:
        populate_by_name = True


class MonthlySalesRow(BaseModel):
    sale_date: date
    branch_id: int
    branch_name: Optional[str] = None
    daily_total: Money


class MonthlySalesReport(BaseModel):
    month: int
    year: int
    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")
    rows: List[MonthlySalesRow]
    total: Money

    class Config:
        populate_by_name = True
