from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models, schemas, services


def _create_bank(db, name="Equity", opening="1000"):
    bank = services.create_bank(
        db, data=schemas.BankCreate(name=name, opening_balance=Decimal(opening)), actor_user_id=None
    )
    db.commit()
    return bank


def test_balance_counts_inflows_and_outflows(db_session):
    bank = _create_bank(db_session)
    for kind, amount in (("deposit", "500"), ("withdrawal", "200"), ("payment", "50")):
        services.create_transaction(
            db_session,
            bank_id=bank.id,
            data=schemas.BankTransactionCreate(type=kind, amount=Decimal(amount)),
            actor_user_id=None,
        )
    db_session.commit()

    assert services.bank_balance(db_session, bank.id) == Decimal("1250.00")
    assert services.list_banks(db_session)[0].current_balance == Decimal("1250.00")


def test_transaction_validation(db_session):
    bank = _create_bank(db_session)

    with pytest.raises(HTTPException) as exc:
        services.create_transaction(
            db_session,
            bank_id=bank.id,
            data=schemas.BankTransactionCreate(type="deposit", amount=Decimal("0")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Invalid amount."

    with pytest.raises(HTTPException) as exc:
        services.create_transaction(
            db_session,
            bank_id=bank.id,
            data=schemas.BankTransactionCreate(type="refund", amount=Decimal("10")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Invalid type."


def test_transfer_moves_money_between_accounts(db_session):
    source = _create_bank(db_session, name="Source", opening="800")
    target = _create_bank(db_session, name="Target", opening="0")

    result = services.transfer(
        db_session,
        data=schemas.BankTransferCreate(from_bank_id=source.id, to_bank_id=target.id, amount=Decimal("300")),
        actor_user_id=None,
    )
    db_session.commit()

    assert result.from_balance == Decimal("500.00")
    assert result.to_balance == Decimal("300.00")
    kinds = {txn.type for txn in db_session.query(models.BankTransaction).all()}
    assert kinds == {models.BankTransactionType.TRANSFER_OUT, models.BankTransactionType.TRANSFER_IN}

    with pytest.raises(HTTPException) as exc:
        services.transfer(
            db_session,
            data=schemas.BankTransferCreate(from_bank_id=source.id, to_bank_id=source.id, amount=Decimal("1")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Invalid transfer."


def test_reconciliation_runs_from_opening_balance(db_session):
    bank = _create_bank(db_session, opening="100")
    services.record_transaction(
        db_session,
        bank_id=bank.id,
        type=models.BankTransactionType.DEPOSIT,
        amount=Decimal("40"),
        transaction_date=date(2024, 1, 2),
    )
    services.record_transaction(
        db_session,
        bank_id=bank.id,
        type=models.BankTransactionType.WITHDRAWAL,
        amount=Decimal("90"),
        transaction_date=date(2024, 1, 3),
    )
    db_session.commit()

    statement = services.reconciliation(db_session, bank_id=bank.id)

    assert [line.balance for line in statement.statement] == [Decimal("140.00"), Decimal("50.00")]
    assert [line.credit for line in statement.statement] == [Decimal("40.00"), Decimal("0.00")]
    assert statement.bank.calculated_balance == Decimal("50.00")


def test_reconciliation_lines_keep_their_transaction(db_session):
    bank = _create_bank(db_session, opening="100")
    txn = services.record_transaction(
        db_session,
        bank_id=bank.id,
        type=models.BankTransactionType.DEPOSIT,
        amount=Decimal("40"),
        transaction_date=date(2024, 6, 1),
        reference="sale-7",
    )
    db_session.commit()

    statement = services.reconciliation(db_session, bank_id=bank.id)

    [line] = statement.statement
    assert line.id == txn.id
    assert line.reference == "sale-7"
    assert line.balance == Decimal("140.00")
    assert statement.bank.calculated_balance == Decimal("140.00")


def test_reconciliation_without_transactions_uses_opening_balance(db_session):
    bank = _create_bank(db_session, opening="75")

    statement = services.reconciliation(db_session, bank_id=bank.id)

    assert statement.statement == []
    assert statement.bank.calculated_balance == Decimal("75.00")
