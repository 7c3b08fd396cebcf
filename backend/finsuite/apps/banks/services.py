from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.settings import services as settings_services
from finsuite.utils.ledger import LedgerEntry, running_balance
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)


def _signed_amount():
    return case(
        (models.BankTransaction.type.in_(models.INFLOW_TYPES), models.BankTransaction.amount),
        else_=-models.BankTransaction.amount,
    )


def get_bank_or_404(db: Session, bank_id: int) -> models.Bank:
    bank = db.query(models.Bank).filter(models.Bank.id == bank_id).first()
    if not bank:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bank not found.")
    return bank


def bank_balance(db: Session, bank_id: int) -> Decimal:
    """Opening balance plus inflows (deposit, transfer_in) less every outflow."""
    opening = db.query(models.Bank.opening_balance).filter(models.Bank.id == bank_id).scalar()
    movement = (
        db.query(func.coalesce(func.sum(_signed_amount()), 0))
        .filter(models.BankTransaction.bank_id == bank_id)
        .scalar()
    )
    return money(money(opening) + money(movement))


def bank_balances(db: Session) -> Dict[int, Decimal]:
    movements = dict(
        db.query(models.BankTransaction.bank_id, func.coalesce(func.sum(_signed_amount()), 0))
        .group_by(models.BankTransaction.bank_id)
        .all()
    )
    return {
        bank_id: money(money(opening) + money(movements.get(bank_id)))
        for bank_id, opening in db.query(models.Bank.id, models.Bank.opening_balance).all()
    }


def _to_read(bank: models.Bank, balance: Decimal) -> schemas.BankRead:
    item = schemas.BankRead.model_validate(bank)
    item.current_balance = balance
    return item


def list_banks(db: Session) -> List[schemas.BankRead]:
    balances = bank_balances(db)
    banks = db.query(models.Bank).order_by(models.Bank.name).all()
    return [_to_read(bank, balances.get(bank.id, money(bank.opening_balance))) for bank in banks]


def get_bank(db: Session, bank_id: int) -> schemas.BankRead:
    bank = get_bank_or_404(db, bank_id)
    return _to_read(bank, bank_balance(db, bank.id))


def _transactions_query(db: Session, bank_id: int, date_from: Optional[date], date_to: Optional[date]):
    query = db.query(models.BankTransaction).filter(models.BankTransaction.bank_id == bank_id)
    if date_from:
        query = query.filter(models.BankTransaction.transaction_date >= date_from)
    if date_to:
        query = query.filter(models.BankTransaction.transaction_date <= date_to)
    return query


def bank_ledger(
    db: Session,
    *,
    bank_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> schemas.BankLedger:
    bank = get_bank(db, bank_id)
    rows = (
        _transactions_query(db, bank_id, date_from, date_to)
        .order_by(models.BankTransaction.transaction_date.desc(), models.BankTransaction.id.desc())
        .all()
    )
    return schemas.BankLedger(
        bank=bank,
        transactions=[schemas.BankTransactionRead.model_validate(row) for row in rows],
    )


def reconciliation(
    db: Session,
    *,
    bank_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> schemas.ReconciliationStatement:
    """
    Statement in posting order, running from the opening balance.

    Inflows appear in the credit column and raise the balance; outflows
    appear as debits.
    """
    bank = get_bank_or_404(db, bank_id)
    rows = (
        _transactions_query(db, bank_id, date_from, date_to)
        .order_by(models.BankTransaction.transaction_date, models.BankTransaction.id)
        .all()
    )
    entries = []
    for row in rows:
        inflow = row.type in models.INFLOW_TYPES
        entries.append(
            LedgerEntry(
                timestamp=row.transaction_date,
                description=row.description or "",
                credit=money(row.amount) if inflow else ZERO,
                debit=ZERO if inflow else money(row.amount),
                reference_id=row.id,
            )
        )
    folded = running_balance(entries, opening=money(bank.opening_balance), sort=False)
    statement = [
        schemas.StatementLine(
            **schemas.BankTransactionRead.model_validate(row).model_dump(),
            debit=entry.debit,
            credit=entry.credit,
            balance=entry.balance,
        )
        for row, entry in zip(rows, folded)
    ]
    calculated = folded[-1].balance if folded else money(bank.opening_balance)
    bank_read = schemas.ReconciliationBank(
        **_to_read(bank, bank_balance(db, bank.id)).model_dump(),
        calculated_balance=calculated,
    )
    return schemas.ReconciliationStatement(bank=bank_read, statement=statement)


def create_bank(db: Session, *, data: schemas.BankCreate, actor_user_id: Optional[str]) -> models.Bank:
    bank = models.Bank(
        name=data.name.strip(),
        account_number=data.account_number,
        opening_balance=money(data.opening_balance),
    )
    db.add(bank)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="banks",
        action="create",
        entity_id=bank.id,
        details=bank.name,
    )
    return bank


def update_bank(
    db: Session,
    *,
    bank_id: int,
    data: schemas.BankUpdate,
    actor_user_id: Optional[str],
) -> models.Bank:
    bank = get_bank_or_404(db, bank_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    if "opening_balance" in changes:
        changes["opening_balance"] = money(changes["opening_balance"])
    for field, value in changes.items():
        setattr(bank, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="banks",
        action="update",
        entity_id=bank.id,
        metadata={"fields": sorted(changes)},
    )
    return bank


def record_transaction(
    db: Session,
    *,
    bank_id: int,
    type: models.BankTransactionType,
    amount: Decimal,
    transaction_date: Optional[date] = None,
    reference: Optional[str] = None,
    description: Optional[str] = None,
) -> models.BankTransaction:
    """Post a movement on a bank account. Used by sales, payments and recoveries."""
    txn = models.BankTransaction(
        bank_id=bank_id,
        type=type,
        amount=money(amount),
        transaction_date=transaction_date or date.today(),
        reference=reference,
        description=description,
    )
    db.add(txn)
    db.flush()
    return txn


def _parse_type(raw: str) -> models.BankTransactionType:
    try:
        return models.BankTransactionType(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid type.")


def create_transaction(
    db: Session,
    *,
    bank_id: int,
    data: schemas.BankTransactionCreate,
    actor_user_id: Optional[str],
) -> schemas.BankTransactionResult:
    get_bank_or_404(db, bank_id)
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    txn_type = _parse_type(data.type)

    voucher = settings_services.next_voucher_number(db)
    txn = record_transaction(
        db,
        bank_id=bank_id,
        type=txn_type,
        amount=amount,
        transaction_date=data.transaction_date,
        reference=settings_services.append_voucher_note(data.reference, voucher),
        description=data.description,
    )
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="banks",
        action="bank_transaction",
        entity_id=bank_id,
        details=f"{txn_type.value} {amount} ({voucher})",
    )
    return schemas.BankTransactionResult(
        **schemas.BankTransactionRead.model_validate(txn).model_dump(),
        balance=bank_balance(db, bank_id),
    )


def transfer(
    db: Session,
    *,
    data: schemas.BankTransferCreate,
    actor_user_id: Optional[str],
) -> schemas.BankTransferResult:
    amount = money(data.amount)
    if amount <= 0 or data.from_bank_id == data.to_bank_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid transfer.")
    get_bank_or_404(db, data.from_bank_id)
    get_bank_or_404(db, data.to_bank_id)

    voucher = settings_services.next_voucher_number(db)
    when = data.transaction_date or date.today()
    description = data.description or "Bank transfer"
    record_transaction(
        db,
        bank_id=data.from_bank_id,
        type=models.BankTransactionType.TRANSFER_OUT,
        amount=amount,
        transaction_date=when,
        reference=settings_services.append_voucher_note(f"transfer-to-{data.to_bank_id}", voucher),
        description=description,
    )
    record_transaction(
        db,
        bank_id=data.to_bank_id,
        type=models.BankTransactionType.TRANSFER_IN,
        amount=amount,
        transaction_date=when,
        reference=settings_services.append_voucher_note(f"transfer-from-{data.from_bank_id}", voucher),
        description=description,
    )
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="banks",
        action="transfer",
        entity_id=f"{data.from_bank_id}->{data.to_bank_id}",
        details=f"{amount} ({voucher})",
    )
    logger.info(
        "Bank transfer posted",
        extra={"from_bank_id": data.from_bank_id, "to_bank_id": data.to_bank_id, "voucher": voucher},
    )
    return schemas.BankTransferResult(
        amount=amount,
        voucher=voucher,
        from_balance=bank_balance(db, data.from_bank_id),
        to_balance=bank_balance(db, data.to_bank_id),
    )


def delete_transactions_by_reference(db: Session, *, reference: str) -> int:
    return (
        db.query(models.BankTransaction)
        .filter(models.BankTransaction.reference == reference)
        .delete(synchronize_session=False)
    )
