from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.payments import models as payment_models
from finsuite.apps.purchases import models, schemas, services


def _create_supplier(db, name="Northwind Supply"):
    supplier = services.create_supplier(db, data=schemas.SupplierCreate(name=name), actor_user_id=None)
    db.commit()
    return supplier


def _create_purchase(db, supplier, *, total="1000", paid="0", invoice_no=None, purchase_date=None, due_date=None):
    purchase = services.create_purchase(
        db,
        data=schemas.PurchaseCreate(
            supplier_id=supplier.id,
            invoice_no=invoice_no,
            purchase_date=purchase_date or date(2024, 2, 1),
            due_date=due_date,
            total_amount=Decimal(total),
            paid_amount=Decimal(paid),
        ),
        actor_user_id=None,
    )
    db.commit()
    return purchase


def test_create_purchase_assigns_invoice_number_and_balance(db_session):
    supplier = _create_supplier(db_session)

    purchase = _create_purchase(db_session, supplier, total="1000", paid="250")

    assert purchase.invoice_no == "INV-000001"
    assert purchase.balance == Decimal("750.00")


def test_pay_purchase_reduces_balance_and_posts_bank_payment(db_session):
    supplier = _create_supplier(db_session)
    bank = bank_models.Bank(name="Trade Bank", opening_balance=Decimal("5000"))
    db_session.add(bank)
    db_session.commit()
    purchase = _create_purchase(db_session, supplier, total="800", invoice_no="NW-17")

    result = services.pay_purchase(
        db_session,
        purchase_id=purchase.id,
        data=schemas.PurchasePay(amount=Decimal("300"), mode=payment_models.PaymentMode.BANK, bank_id=bank.id),
        actor_user_id=None,
    )
    db_session.commit()

    assert result.paid_amount == Decimal("300.00")
    assert result.balance == Decimal("500.00")
    payment = db_session.query(payment_models.Payment).one()
    assert payment.purchase_id == purchase.id
    assert payment.reference_id == supplier.id
    assert bank_services.bank_balance(db_session, bank.id) == Decimal("4700.00")


def test_pay_purchase_validation(db_session):
    supplier = _create_supplier(db_session)
    purchase = _create_purchase(db_session, supplier)

    with pytest.raises(HTTPException) as exc:
        services.pay_purchase(
            db_session, purchase_id=purchase.id, data=schemas.PurchasePay(amount=Decimal("-1")), actor_user_id=None
        )
    assert exc.value.detail == "Invalid amount."

    with pytest.raises(HTTPException) as exc:
        services.pay_purchase(
            db_session,
            purchase_id=purchase.id,
            data=schemas.PurchasePay(amount=Decimal("5"), mode=payment_models.PaymentMode.BANK),
            actor_user_id=None,
        )
    assert exc.value.detail == "Bank not found."


def test_supplier_ledger_counts_invoice_payments_once(db_session):
    supplier = _create_supplier(db_session)
    purchase = _create_purchase(db_session, supplier, total="1000", paid="200", invoice_no="A-1")
    services.pay_purchase(
        db_session, purchase_id=purchase.id, data=schemas.PurchasePay(amount=Decimal("300")), actor_user_id=None
    )
    db_session.commit()

    ledger = services.supplier_ledger(db_session, supplier_id=supplier.id)

    assert ledger.total_purchases == Decimal("1000.00")
    assert ledger.total_paid == Decimal("500.00")
    assert ledger.balance == Decimal("500.00")
    assert ledger.entries[-1].balance == Decimal("500.00")
    assert [line.type for line in ledger.entries] == ["purchase", "purchase-paid", "payment"]


def test_delete_purchase_removes_linked_payments(db_session):
    supplier = _create_supplier(db_session)
    purchase = _create_purchase(db_session, supplier, total="100")
    services.pay_purchase(
        db_session, purchase_id=purchase.id, data=schemas.PurchasePay(amount=Decimal("40")), actor_user_id=None
    )
    db_session.commit()

    services.delete_purchase(db_session, purchase_id=purchase.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(models.Purchase).count() == 0
    assert db_session.query(payment_models.Payment).count() == 0


def test_due_reminders_flag_overdue_and_upcoming(db_session):
    supplier = _create_supplier(db_session)
    overdue = _create_purchase(
        db_session, supplier, invoice_no="OLD", due_date=date.today() - timedelta(days=2)
    )
    upcoming = _create_purchase(
        db_session, supplier, invoice_no="SOON", due_date=date.today() + timedelta(days=3)
    )
    _create_purchase(db_session, supplier, invoice_no="PAID", paid="1000", due_date=date.today())
    _create_purchase(db_session, supplier, invoice_no="LATER", due_date=date.today() + timedelta(days=60))

    reminders = services.due_reminders(db_session)

    by_id = {row.id: row.status for row in reminders.rows}
    assert set(by_id) == {overdue.id, upcoming.id}
    assert by_id[overdue.id] == "overdue"
