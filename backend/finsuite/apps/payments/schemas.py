from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel

from finsuite.utils.money import Money

from .models import PaymentMode, PaymentReferenceType


class PaymentRead(BaseModel):
    id: int
    type: str
    reference_type: PaymentReferenceType
    reference_id: int
    purchase_id: Optional[int] = None
    amount: Money
    payment_date: date
    mode: PaymentMode
    bank_id: Optional[int] = None
    bank_name: Optional[str] = None
    reference_label: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentCreate(BaseModel):
    category: str
    reference_id: Optional[int] = None
    amount: Decimal
    payment_date: Optional[date] = None
    # "cash" or the id of the bank the money left from.
    payment_method: Union[int, str, None] = "cash"
    remarks: Optional[str] = None


class PaymentResult(BaseModel):
    ok: bool = True
    id: int
    amount: Money
    category: str
    voucher: str


class RentBillOption(BaseModel):
    id: int
    title: str
    category: str
    amount: Money
    paid_amount: Money
    balance: Money
    status: str
    due_date: Optional[date] = None


class SalaryOption(BaseModel):
    id: int
    staff_id: int
    staff_name: str
    branch_name: Optional[str] = None
    month_year: str
    base_salary: Money
    commission: Money
    advances: Money
    deductions: Money
    net_salary: Money
    paid_amount: Money
    remaining_amount: Money


class BankOption(BaseModel):
    id: int
    name: str
    account_number: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentOptions(BaseModel):
    rent_bills: List[RentBillOption]
    salaries: List[SalaryOption]
    banks: List[BankOption]
