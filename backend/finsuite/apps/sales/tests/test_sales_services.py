from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.receivables import models as receivable_models
from finsuite.apps.receivables import schemas as receivable_schemas
from finsuite.apps.receivables import services as receivable_services
from finsuite.apps.payments import models as payment_models
from finsuite.apps.sales import schemas, services


def _create_branch(db, name="Main"):
    branch = branch_models.Branch(name=name, code=name.upper()[:8], opening_cash=Decimal("0"))
    db.add(branch)
    db.commit()
    return branch


def _create_bank(db, name="City Bank"):
    bank = bank_models.Bank(name=name, opening_balance=Decimal("0"))
    db.add(bank)
    db.commit()
    return bank


def _create_customer(db, name="Walk-in"):
    customer = receivable_models.Customer(name=name)
    db.add(customer)
    db.commit()
    return customer


def test_compute_net_sales_floors_at_zero():
    assert services.compute_net_sales(
        cash=Decimal("100"), bank=Decimal("50"), credit=Decimal("25"), discount=Decimal("10"), returns=Decimal("5")
    ) == Decimal("160.00")
    assert services.compute_net_sales(
        cash=Decimal("10"), bank=Decimal("0"), credit=Decimal("0"), discount=Decimal("30"), returns=Decimal("0")
    ) == Decimal("0.00")


def test_create_sale_with_credit_opens_pending_receivable(db_session):
    branch = _create_branch(db_session)
    customer = _create_customer(db_session)

    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(
            branch_id=branch.id,
            customer_id=customer.id,
            sale_date=date(2024, 3, 5),
            cash_amount=Decimal("500"),
            credit_amount=Decimal("200"),
            discount=Decimal("20"),
        ),
        actor_user_id=None,
    )
    db_session.commit()

    assert sale.net_sales == Decimal("680.00")
    receivable = db_session.query(receivable_models.Receivable).filter_by(sale_id=sale.id).one()
    assert receivable.amount == Decimal("200.00")
    assert receivable.status == receivable_models.ReceivableStatus.PENDING
    assert receivable.customer_id == customer.id


def test_bank_amount_requires_bank_account(db_session):
    branch = _create_branch(db_session)

    with pytest.raises(HTTPException) as exc:
        services.create_sale(
            db_session,
            data=schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 3, 5), bank_amount=Decimal("100")),
            actor_user_id=None,
        )
    assert exc.value.status_code == 400
    assert exc.value.detail == "Bank account is required when entering bank amount."


def test_bank_portion_is_deposited(db_session):
    branch = _create_branch(db_session)
    bank = _create_bank(db_session)

    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(
            branch_id=branch.id,
            bank_id=bank.id,
            sale_date=date(2024, 3, 5),
            bank_amount=Decimal("300"),
        ),
        actor_user_id=None,
    )
    db_session.commit()

    txn = db_session.query(bank_models.BankTransaction).filter_by(reference=services.sale_reference(sale.id)).one()
    assert txn.type == bank_models.BankTransactionType.DEPOSIT
    assert txn.amount == Decimal("300.00")
    assert bank_services.bank_balance(db_session, bank.id) == Decimal("300.00")


def test_split_deposits_survive_unrelated_update(db_session):
    branch = _create_branch(db_session)
    first = _create_bank(db_session, "First")
    second = _create_bank(db_session, "Second")

    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(
            branch_id=branch.id,
            sale_date=date(2024, 3, 5),
            bank_splits=[
                schemas.BankSplitIn(bank_id=first.id, amount=Decimal("100")),
                schemas.BankSplitIn(bank_id=second.id, amount=Decimal("50")),
            ],
        ),
        actor_user_id=None,
    )
    db_session.commit()
    assert sale.bank_amount == Decimal("150.00")
    assert sale.bank_id == first.id

    services.update_sale(
        db_session,
        sale_id=sale.id,
        data=schemas.SaleUpdate(remarks="counted twice"),
        actor_user_id=None,
    )
    db_session.commit()

    assert bank_services.bank_balance(db_session, first.id) == Decimal("100.00")
    assert bank_services.bank_balance(db_session, second.id) == Decimal("50.00")
    assert len(sale.bank_splits) == 2


def test_locked_sale_rejects_update_and_delete(db_session):
    branch = _create_branch(db_session)
    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 3, 5), cash_amount=Decimal("10")),
        actor_user_id=None,
    )
    services.set_lock(db_session, sale_id=sale.id, lock=True, actor_user_id=None)
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        services.update_sale(
            db_session, sale_id=sale.id, data=schemas.SaleUpdate(cash_amount=Decimal("20")), actor_user_id=None
        )
    assert exc.value.detail == "Sale is locked."

    with pytest.raises(HTTPException):
        services.delete_sale(db_session, sale_id=sale.id, actor_user_id=None)


def test_update_sale_resyncs_untouched_receivable(db_session):
    branch = _create_branch(db_session)
    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 3, 5), credit_amount=Decimal("80")),
        actor_user_id=None,
    )
    db_session.commit()

    services.update_sale(
        db_session, sale_id=sale.id, data=schemas.SaleUpdate(credit_amount=Decimal("120")), actor_user_id=None
    )
    db_session.commit()

    receivable = db_session.query(receivable_models.Receivable).filter_by(sale_id=sale.id).one()
    assert receivable.amount == Decimal("120.00")
    assert sale.net_sales == Decimal("120.00")


def test_delete_sale_removes_receivable_and_recovery_postings(db_session):
    branch = _create_branch(db_session)
    bank = _create_bank(db_session)
    sale = services.create_sale(
        db_session,
        data=schemas.SaleCreate(
            branch_id=branch.id,
            bank_id=bank.id,
            sale_date=date(2024, 3, 5),
            bank_amount=Decimal("40"),
            credit_amount=Decimal("60"),
        ),
        actor_user_id=None,
    )
    db_session.commit()
    receivable = db_session.query(receivable_models.Receivable).filter_by(sale_id=sale.id).one()
    receivable_services.recover(
        db_session,
        receivable_id=receivable.id,
        data=receivable_schemas.RecoveryCreate(
            amount=Decimal("20"), mode=payment_models.PaymentMode.BANK, bank_id=bank.id
        ),
        actor_user_id=None,
    )
    db_session.commit()
    assert bank_services.bank_balance(db_session, bank.id) == Decimal("60.00")

    services.delete_sale(db_session, sale_id=sale.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(receivable_models.Receivable).count() == 0
    assert db_session.query(payment_models.Payment).count() == 0
    assert db_session.query(bank_models.BankTransaction).count() == 0


def test_monthly_report_totals_by_day(db_session):
    branch = _create_branch(db_session)
    for day, amount in ((1, "100"), (1, "50"), (15, "25")):
        services.create_sale(
            db_session,
            data=schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 4, day), cash_amount=Decimal(amount)),
            actor_user_id=None,
        )
    services.create_sale(
        db_session,
        data=schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 5, 1), cash_amount=Decimal("999")),
        actor_user_id=None,
    )
    db_session.commit()

    report = services.monthly_report(db_session, month=4, year=2024)

    assert report.total == Decimal("175.00")
    assert [row.daily_total for row in report.rows] == [Decimal("150.00"), Decimal("25.00")]

    with pytest.raises(HTTPException):
        services.monthly_report(db_session, month=13, year=2024)
