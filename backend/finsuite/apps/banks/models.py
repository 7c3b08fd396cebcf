from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class BankTransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PAYMENT = "payment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


INFLOW_TYPES = (BankTransactionType.DEPOSIT, BankTransactionType.TRANSFER_IN)
OUTFLOW_TYPES = (
    BankTransactionType.WITHDRAWAL,
    BankTransactionType.PAYMENT,
    BankTransactionType.TRANSFER_OUT,
)


class Bank(Base):
    __tablename__ = "banks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    account_number = Column(String(64), nullable=True)
    opening_balance = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    transactions = relationship(
        "BankTransaction",
        back_populates="bank",
        cascade="all, delete-orphan",
        order_by="BankTransaction.id",
    )


class BankTransaction(Base):
    __tablename__ = "bank_transactions"
    __table_args__ = (
        Index("ix_bank_transactions_bank_date", "bank_id", "transaction_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    bank_id = Column(Integer, ForeignKey("banks.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(value_enum(BankTransactionType, "bank_transaction_type_enum"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, default=date.today)
    reference = Column(String(255), nullable=True, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    bank = relationship("Bank", back_populates="transactions")
