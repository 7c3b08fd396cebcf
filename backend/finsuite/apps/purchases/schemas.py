from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.payments.models import PaymentMode
from finsuite.apps.payments.schemas import PaymentRead
from finsuite.utils.ledger import LedgerLine
from finsuite.utils.money import Money


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact: Optional[str] = None
    address: Optional[str] = None


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    address: Optional[str] = None


class SupplierRead(BaseModel):
    id: int
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class PurchaseCreate(BaseModel):
    supplier_id: int
    branch_id: Optional[int] = None
    invoice_no: Optional[str] = None
    purchase_date: date
    due_date: Optional[date] = None
    total_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    remarks: Optional[str] = None


class PurchaseUpdate(BaseModel):
    supplier_id: Optional[int] = None
    branch_id: Optional[int] = None
    invoice_no: Optional[str] = None
    purchase_date: Optional[date] = None
    due_date: Optional[date] = None
    total_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    remarks: Optional[str] = None


class PurchaseRead(BaseModel):
    id: int
    supplier_id: int
    supplier_name: Optional[str] = None
    supplier_contact: Optional[str] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    invoice_no: Optional[str] = None
    purchase_date: date
    due_date: Optional[date] = None
    total_amount: Money
    paid_amount: Money
    balance: Money
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PurchasePay(BaseModel):
    amount: Decimal
    payment_date: Optional[date] = None
    mode: PaymentMode = PaymentMode.CASH
    bank_id: Optional[int] = None
    remarks: Optional[str] = None


class PurchasePayResult(BaseModel):
    ok: bool = True
    paid_amount: Money
    balance: Money
    voucher: str


class DueReminder(PurchaseRead):
    status: str


class DueReminders(BaseModel):
    days: int
    rows: List[DueReminder]


class SupplierLedger(BaseModel):
    supplier: SupplierRead
    purchases: List[PurchaseRead]
    payments: List[PaymentRead]
    entries: List[LedgerLine]
    total_purchases: Money = Field(..., serialization_alias="totalPurchases")
    total_paid: Money = Field(..., serialization_alias="totalPaid")
    balance: Money


class PurchaseReport(BaseModel):
    rows: List[PurchaseRead]
    total: Money
    report_date: Optional[date] = Field(default=None, alias="date")
    branch_id: Optional[int] = None

    class Config:
        populate_by_name = True


class MonthlyPurchaseRow(BaseModel):
    purchase_date: date
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    daily_total: Money


class MonthlyPurchaseReport(BaseModel):
    month: int
    year: int
    date_from: date = Field(..., alias="from")
    date_to: date = Field(..., alias="to")
    rows: List[MonthlyPurchaseRow]
    total: Money

    class Config:
        populate_by_name = True


class SupplierWiseRow(BaseModel):
    id: int
    name: str
    total_purchases: Money
    total_paid: Money
    balance: Money
