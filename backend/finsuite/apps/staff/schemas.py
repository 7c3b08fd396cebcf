from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.payments.models import PaymentMode
from finsuite.utils.money import Money

from .models import SalaryStatus

MONTH_YEAR_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class StaffCreate(BaseModel):
    name: str = Field(..., min_length=1)
    branch_id: Optional[int] = None
    fixed_salary: Decimal = Decimal("0")
    commission_rate: Decimal = Decimal("0")
    contact: Optional[str] = None
    joined_date: Optional[date] = None


class StaffUpdate(BaseModel):
    name: Optional[str] = None
    branch_id: Optional[int] = None
    fixed_salary: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = None
    contact: Optional[str] = None
    joined_date: Optional[date] = None


class StaffRead(BaseModel):
    id: int
    name: str
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    fixed_salary: Money
    commission_rate: Money
    contact: Optional[str] = None
    joined_date: Optional[date] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SalaryProcess(BaseModel):
    month_year: str = Field(..., pattern=MONTH_YEAR_PATTERN)
    # Defaults to the staff member's fixed salary.
    base_salary: Optional[Decimal] = None
    commission: Decimal = Decimal("0")
    advances: Decimal = Decimal("0")
    deductions: Decimal = Decimal("0")


class SalaryRecordRead(BaseModel):
    id: int
    staff_id: int
    month_year: str
    base_salary: Money
    commission: Money
    advances: Money
    deductions: Money
    net_salary: Money
    status: SalaryStatus
    created_at: datetime

    class Config:
        from_attributes = True


class StaffDetail(StaffRead):
    salary_records: List[SalaryRecordRead] = []


class SalaryPaymentRead(BaseModel):
    id: int
    reference_id: int
    month_year: str
    amount: Money
    payment_date: date
    mode: PaymentMode
    remarks: Optional[str] = None


class StaffLedger(BaseModel):
    staff: StaffRead
    salaries: List[SalaryRecordRead]
    payments: List[SalaryPaymentRead]
    total_salary: Money = Field(..., serialization_alias="totalSalary")
    total_paid: Money = Field(..., serialization_alias="totalPaid")
    pending: Money


class SalaryExpenseRow(SalaryRecordRead):
    staff_name: str
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None


class SalaryExpense(BaseModel):
    month_year: str
    rows: List[SalaryExpenseRow]
    total: Money
