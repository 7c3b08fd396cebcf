from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.payments.models import PaymentMode
from finsuite.utils.ledger import LedgerLine
from finsuite.utils.money import Money

from .models import ReceivableStatus


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact: Optional[str] = None
    address: Optional[str] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = None
    contact: Optional[str] = None
    address: Optional[str] = None


class CustomerRead(BaseModel):
    id: int
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerBalance(CustomerRead):
    total_due: Money


class ReceivableCreate(BaseModel):
    customer_id: Optional[int] = None
    sale_id: Optional[int] = None
    branch_id: Optional[int] = None
    amount: Decimal
    due_date: Optional[date] = None


class ReceivableUpdate(BaseModel):
    due_date: Optional[date] = None
    status: Optional[ReceivableStatus] = None


class ReceivableRead(BaseModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    sale_id: Optional[int] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    amount: Money
    due_date: Optional[date] = None
    status: ReceivableStatus
    created_at: datetime

    class Config:
        from_attributes = True


class RecoveryCreate(BaseModel):
    amount: Decimal
    remarks: Optional[str] = None
    mode: PaymentMode = PaymentMode.CASH
    bank_id: Optional[int] = None
    recovered_on: Optional[date] = None


class RecoveryRead(BaseModel):
    id: int
    receivable_id: int
    amount: Money
    remarks: Optional[str] = None
    recovered_at: datetime

    class Config:
        from_attributes = True


class RecoveryResult(BaseModel):
    ok: bool = True
    remaining: Money
    status: ReceivableStatus
    voucher: str


class CustomerLedger(BaseModel):
    customer: CustomerRead
    receivables: List[ReceivableRead]
    recoveries: List[RecoveryRead]
    entries: List[LedgerLine]
    total_due: Money = Field(..., serialization_alias="totalDue")
    recovered_total: Money = Field(..., serialization_alias="recoveredTotal")


class BranchLedger(BaseModel):
    branch_id: int
    branch_name: Optional[str] = None
    receivables: List[ReceivableRead]
    recoveries: List[RecoveryRead]
    entries: List[LedgerLine]
    total_due: Money = Field(..., serialization_alias="totalDue")
    recovered_total: Money = Field(..., serialization_alias="recoveredTotal")


class BranchReceivableSummary(BaseModel):
    branch_id: int
    branch_name: str
    credit_sales: Money
    receivable_amount: Money
    received_amount: Money
    pending_balance: Money
