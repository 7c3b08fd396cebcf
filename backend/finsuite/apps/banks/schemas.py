from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.utils.money import Money

from .models import BankTransactionType


class BankCreate(BaseModel):
    name: str = Field(..., min_length=1)
    account_number: Optional[str] = None
    opening_balance: Decimal = Decimal("0")


class BankUpdate(BaseModel):
    name: Optional[str] = None
    account_number: Optional[str] = None
    opening_balance: Optional[Decimal] = None


class BankRead(BaseModel):
    id: int
    name: str
    account_number: Optional[str] = None
    opening_balance: Money
    current_balance: Money = Decimal("0")
    created_at: datetime

    class Config:
        from_attributes = True


class BankTransactionCreate(BaseModel):
    # Validated in the service so the API keeps its 400 messages.
    type: str
    amount: Decimal
    transaction_date: Optional[date] = None
    reference: Optional[str] = None
    description: Optional[str] = None


class BankTransactionRead(BaseModel):
    id: int
    bank_id: int
    type: BankTransactionType
    amount: Money
    transaction_date: date
    reference: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BankTransactionResult(BankTransactionRead):
    balance: Money


class BankTransferCreate(BaseModel):
    from_bank_id: int
    to_bank_id: int
    amount: Decimal
    transaction_date: Optional[date] = None
    description: Optional[str] = None


class BankTransferResult(BaseModel):
    ok: bool = True
    amount: Money
    voucher: str
    from_balance: Money
    to_balance: Money


class BankLedger(BaseModel):
    bank: BankRead
    transactions: List[BankTransactionRead]


class StatementLine(BankTransactionRead):
    debit: Money
    credit: Money
    balance: Money


class ReconciliationBank(BankRead):
    calculated_balance: Money


class ReconciliationStatement(BaseModel):
    bank: ReconciliationBank
    statement: List[StatementLine]
