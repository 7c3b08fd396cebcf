from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.payments import schemas as payment_schemas
from finsuite.apps.payments import services as payment_services
from finsuite.apps.rent_bills import models, schemas, services


def _create_bill(db, *, title="Electricity", amount="1200", category=None, due_date=None):
    bill = services.create_bill(
        db,
        data=schemas.RentBillCreate(title=title, amount=Decimal(amount), category=category, due_date=due_date),
        actor_user_id=None,
    )
    db.commit()
    return bill


def test_bill_status():
    assert services.bill_status(Decimal("100"), Decimal("0")) == models.RentBillStatus.PENDING
    assert services.bill_status(Decimal("100"), Decimal("40")) == models.RentBillStatus.PARTIAL
    assert services.bill_status(Decimal("100"), Decimal("100")) == models.RentBillStatus.PAID


def test_create_bill_requires_title_and_amount(db_session):
    with pytest.raises(HTTPException) as exc:
        services.create_bill(db_session, data=schemas.RentBillCreate(title="  "), actor_user_id=None)
    assert exc.value.detail == "Title and amount required."

    bill = _create_bill(db_session)
    assert bill.category == "bill"
    assert bill.status == models.RentBillStatus.PENDING


def test_lowering_amount_recomputes_status(db_session):
    bill = _create_bill(db_session, amount="1000")
    payment_services.create_payment(
        db_session,
        data=payment_schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("600")),
        actor_user_id=None,
    )
    db_session.commit()
    assert bill.status == models.RentBillStatus.PARTIAL

    services.update_bill(
        db_session, bill_id=bill.id, data=schemas.RentBillUpdate(amount=Decimal("600")), actor_user_id=None
    )
    db_session.commit()
    assert bill.status == models.RentBillStatus.PAID


def test_list_orders_by_due_date_with_undated_last(db_session):
    undated = _create_bill(db_session, title="Water")
    later = _create_bill(db_session, title="Rent", category="rent", due_date=date(2024, 9, 30))
    sooner = _create_bill(db_session, title="Internet", due_date=date(2024, 9, 5))

    assert [b.id for b in services.list_bills(db_session)] == [sooner.id, later.id, undated.id]
    assert [b.id for b in services.list_bills(db_session, category="rent")] == [later.id]


def test_ledger_totals(db_session):
    rent = _create_bill(db_session, title="Rent", amount="5000", due_date=date(2024, 9, 1))
    _create_bill(db_session, title="Water", amount="300", due_date=date(2024, 9, 10))
    payment_services.create_payment(
        db_session,
        data=payment_schemas.PaymentCreate(category="rent_bill", reference_id=rent.id, amount=Decimal("2000")),
        actor_user_id=None,
    )
    db_session.commit()

    ledger = services.bills_ledger(db_session)

    assert ledger.total_amount == Decimal("5300.00")
    assert ledger.total_paid == Decimal("2000.00")
    assert ledger.total_balance == Decimal("3300.00")
    assert len(ledger.items[0].payments) == 1
    assert ledger.items[0].balance == Decimal("3000.00")
