from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.attachments.schemas import AttachmentRead
from finsuite.apps.payments.schemas import PaymentRead
from finsuite.utils.money import Money

from .models import RentBillStatus


class RentBillCreate(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    remarks: Optional[str] = None


class RentBillUpdate(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    remarks: Optional[str] = None


class RentBillRead(BaseModel):
    id: int
    title: str
    category: str
    amount: Money
    paid_amount: Money
    status: RentBillStatus
    due_date: Optional[date] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RentBillDetail(RentBillRead):
    attachments: List[AttachmentRead] = []


class RentBillLedgerItem(BaseModel):
    bill: RentBillRead
    payments: List[PaymentRead]
    total_amount: Money = Field(..., serialization_alias="totalAmount")
    total_paid: Money = Field(..., serialization_alias="totalPaid")
    balance: Money


class RentBillLedger(BaseModel):
    items: List[RentBillLedgerItem]
    total_amount: Money = Field(..., serialization_alias="totalAmount")
    total_paid: Money = Field(..., serialization_alias="totalPaid")
    total_balance: Money = Field(..., serialization_alias="totalBalance")
