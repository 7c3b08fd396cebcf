from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models as bank_models
from finsuite.apps.branches import models as branch_models
from finsuite.apps.payments import models as payment_models
from finsuite.apps.receivables import models, schemas, services


def _create_branch(db):
    branch = branch_models.Branch(name="Harbour", code="HRB", opening_cash=Decimal("0"))
    db.add(branch)
    db.commit()
    return branch


def _create_receivable(db, *, amount="100", customer_name="Acme Traders", branch=None, due_date=None):
    customer = models.Customer(name=customer_name)
    db.add(customer)
    db.flush()
    receivable = services.create_receivable(
        db,
        data=schemas.ReceivableCreate(
            customer_id=customer.id,
            branch_id=branch.id if branch else None,
            amount=Decimal(amount),
            due_date=due_date,
        ),
        actor_user_id=None,
    )
    db.commit()
    return customer, receivable


def test_partial_then_full_recovery(db_session):
    _, receivable = _create_receivable(db_session, amount="100")

    first = services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("30")),
        actor_user_id=None,
    )
    assert first.remaining == Decimal("70.00")
    assert first.status == models.ReceivableStatus.PARTIAL
    assert first.voucher == "VCH-000001"

    second = services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("90"), remarks="cleared"),
        actor_user_id=None,
    )
    db_session.commit()
    assert second.remaining == Decimal("0.00")
    assert second.status == models.ReceivableStatus.RECOVERED
    assert second.voucher == "VCH-000002"

    payments = db_session.query(payment_models.Payment).order_by(payment_models.Payment.id).all()
    assert [p.reference_type for p in payments] == [payment_models.PaymentReferenceType.RECEIVABLE] * 2
    assert payments[1].remarks == "VCH-000002 - cleared"


def test_recover_rejects_bad_input(db_session):
    _, receivable = _create_receivable(db_session)

    with pytest.raises(HTTPException) as exc:
        services.recover(
            db_session,
            receivable_id=receivable.id,
            data=schemas.RecoveryCreate(amount=Decimal("0")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Invalid amount."

    with pytest.raises(HTTPException) as exc:
        services.recover(
            db_session,
            receivable_id=receivable.id,
            data=schemas.RecoveryCreate(amount=Decimal("10"), mode=payment_models.PaymentMode.BANK),
            actor_user_id=None,
        )
    assert exc.value.detail == "Bank not found."


def test_bank_recovery_posts_deposit(db_session):
    bank = bank_models.Bank(name="Union", opening_balance=Decimal("0"))
    db_session.add(bank)
    db_session.commit()
    _, receivable = _create_receivable(db_session, amount="50")

    services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("50"), mode=payment_models.PaymentMode.BANK, bank_id=bank.id),
        actor_user_id=None,
    )
    db_session.commit()

    txn = db_session.query(bank_models.BankTransaction).one()
    assert txn.reference == services.recovery_reference(receivable.id)
    assert txn.type == bank_models.BankTransactionType.DEPOSIT


def test_customer_ledger_running_balance(db_session):
    customer, receivable = _create_receivable(db_session, amount="200")
    services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("75")),
        actor_user_id=None,
    )
    db_session.commit()

    ledger = services.customer_ledger(db_session, customer_id=customer.id)

    assert [line.type for line in ledger.entries] == ["receivable", "recovery"]
    assert ledger.entries[0].credit == Decimal("200.00")
    assert [line.balance for line in ledger.entries] == [Decimal("200.00"), Decimal("125.00")]
    assert ledger.total_due == Decimal("125.00")
    assert ledger.recovered_total == Decimal("75.00")


def test_overdue_includes_partial_receivables(db_session):
    branch = _create_branch(db_session)
    past = date.today() - timedelta(days=3)
    _, late = _create_receivable(db_session, amount="40", branch=branch, due_date=past)
    _, future = _create_receivable(
        db_session, amount="40", customer_name="Later Ltd", due_date=date.today() + timedelta(days=10)
    )
    services.recover(
        db_session,
        receivable_id=late.id,
        data=schemas.RecoveryCreate(amount=Decimal("10")),
        actor_user_id=None,
    )
    db_session.commit()

    overdue = services.list_overdue(db_session)

    assert [row.id for row in overdue] == [late.id]
    assert overdue[0].status == models.ReceivableStatus.PARTIAL
    assert overdue[0].branch_name == "Harbour"


def test_customer_ledger_line_ids(db_session):
    customer, receivable = _create_receivable(db_session, amount="60")
    services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("20")),
        actor_user_id=None,
    )
    db_session.commit()
    recovery = db_session.query(models.ReceivableRecovery).one()

    ledger = services.customer_ledger(db_session, customer_id=customer.id)

    assert [line.id for line in ledger.entries] == [f"rec-{receivable.id}", f"recovery-{recovery.id}"]


def test_branch_ledger_running_balance(db_session):
    branch = _create_branch(db_session)
    _, first = _create_receivable(db_session, amount="120", branch=branch)
    _, second = _create_receivable(db_session, amount="30", customer_name="Beta Stores", branch=branch)
    _create_receivable(db_session, amount="500", customer_name="Elsewhere Co")
    services.recover(
        db_session,
        receivable_id=first.id,
        data=schemas.RecoveryCreate(amount=Decimal("50")),
        actor_user_id=None,
    )
    db_session.commit()
    recovery = db_session.query(models.ReceivableRecovery).one()

    ledger = services.branch_ledger(db_session, branch_id=branch.id)

    assert ledger.branch_name == "Harbour"
    assert [line.id for line in ledger.entries] == [
        f"branch-rec-{first.id}",
        f"branch-rec-{second.id}",
        f"branch-recovery-{recovery.id}",
    ]
    assert [line.balance for line in ledger.entries] == [
        Decimal("120.00"),
        Decimal("150.00"),
        Decimal("100.00"),
    ]
    assert ledger.entries[0].description == f"Credit sale #{first.id} (Harbour)"
    assert ledger.total_due == Decimal("100.00")
    assert ledger.recovered_total == Decimal("50.00")


def test_branch_ledger_unknown_branch(db_session):
    with pytest.raises(HTTPException) as exc:
        services.branch_ledger(db_session, branch_id=999)
    assert exc.value.status_code == 404


def test_overpaid_recovery_clamps_outstanding_to_zero(db_session):
    _, receivable = _create_receivable(db_session, amount="100")

    result = services.recover(
        db_session,
        receivable_id=receivable.id,
        data=schemas.RecoveryCreate(amount=Decimal("150")),
        actor_user_id=None,
    )
    db_session.commit()

    assert result.remaining == Decimal("0.00")
    assert result.status == models.ReceivableStatus.RECOVERED
    db_session.refresh(receivable)
    assert receivable.amount == Decimal("0.00")
    recovery = db_session.query(models.ReceivableRecovery).one()
    assert recovery.amount == Decimal("150.00")
