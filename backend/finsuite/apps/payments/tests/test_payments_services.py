from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.payments import models, schemas, services
from finsuite.apps.rent_bills import models as rent_bill_models
from finsuite.apps.staff import models as staff_models


def _create_bill(db, amount="500"):
    bill = rent_bill_models.RentBill(
        title="Shop rent",
        category="rent",
        amount=Decimal(amount),
        paid_amount=Decimal("0"),
        status=rent_bill_models.RentBillStatus.PENDING,
    )
    db.add(bill)
    db.commit()
    return bill


def _create_salary(db, net="1000"):
    staff = staff_models.Staff(name="Ruth", fixed_salary=Decimal(net))
    db.add(staff)
    db.flush()
    record = staff_models.SalaryRecord(
        staff_id=staff.id,
        month_year="2024-06",
        base_salary=Decimal(net),
        net_salary=Decimal(net),
        status=staff_models.SalaryStatus.PROCESSED,
    )
    db.add(record)
    db.commit()
    return record


def test_rent_bill_payment_updates_status(db_session):
    bill = _create_bill(db_session, amount="500")

    result = services.create_payment(
        db_session,
        data=schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("200")),
        actor_user_id=None,
    )
    db_session.commit()

    assert result.voucher == "VCH-000001"
    assert bill.paid_amount == Decimal("200.00")
    assert bill.status == rent_bill_models.RentBillStatus.PARTIAL

    services.create_payment(
        db_session,
        data=schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("300")),
        actor_user_id=None,
    )
    db_session.commit()
    assert bill.status == rent_bill_models.RentBillStatus.PAID


def test_rent_bill_overpayment_is_rejected(db_session):
    bill = _create_bill(db_session, amount="350")

    with pytest.raises(HTTPException) as exc:
        services.create_payment(
            db_session,
            data=schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("400")),
            actor_user_id=None,
        )
    assert exc.value.status_code == 400
    assert exc.value.detail == "Amount exceeds balance (350)."


def test_salary_payment_through_bank(db_session):
    record = _create_salary(db_session, net="1000")
    bank = bank_models.Bank(name="Payroll", opening_balance=Decimal("2000"))
    db_session.add(bank)
    db_session.commit()

    services.create_payment(
        db_session,
        data=schemas.PaymentCreate(
            category="salary", reference_id=record.id, amount=Decimal("400"), payment_method=bank.id
        ),
        actor_user_id=None,
    )
    db_session.commit()

    assert record.status == staff_models.SalaryStatus.PARTIAL
    assert services.salary_paid_total(db_session, record.id) == Decimal("400.00")
    assert bank_services.bank_balance(db_session, bank.id) == Decimal("1600.00")

    with pytest.raises(HTTPException) as exc:
        services.create_payment(
            db_session,
            data=schemas.PaymentCreate(category="salary", reference_id=record.id, amount=Decimal("700")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Amount exceeds remaining salary (600)."

    services.create_payment(
        db_session,
        data=schemas.PaymentCreate(category="salary", reference_id=record.id, amount=Decimal("600")),
        actor_user_id=None,
    )
    db_session.commit()
    assert record.status == staff_models.SalaryStatus.PAID

    with pytest.raises(HTTPException) as exc:
        services.create_payment(
            db_session,
            data=schemas.PaymentCreate(category="salary", reference_id=record.id, amount=Decimal("1")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Salary already fully paid."


def test_payment_validation_messages(db_session):
    bill = _create_bill(db_session)

    cases = [
        (schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("0")), "Invalid amount."),
        (schemas.PaymentCreate(category="supplier", reference_id=bill.id, amount=Decimal("5")), "Invalid category."),
        (schemas.PaymentCreate(category="rent_bill", amount=Decimal("5")), "reference_id required."),
        (
            schemas.PaymentCreate(category="rent_bill", reference_id=bill.id, amount=Decimal("5"), payment_method=999),
            "Bank not found.",
        ),
    ]
    for payload, detail in cases:
        with pytest.raises(HTTPException) as exc:
            services.create_payment(db_session, data=payload, actor_user_id=None)
        assert exc.value.detail == detail


def test_list_payments_filters_by_type_and_range(db_session):
    bill = _create_bill(db_session, amount="900")
    for day in (1, 10, 20):
        services.create_payment(
            db_session,
            data=schemas.PaymentCreate(
                category="rent_bill",
                reference_id=bill.id,
                amount=Decimal("100"),
                payment_date=date(2024, 7, day),
            ),
            actor_user_id=None,
        )
    db_session.commit()

    rows = services.list_payments(
        db_session,
        reference_type=models.PaymentReferenceType.RENT_BILL,
        date_from=date(2024, 7, 5),
        date_to=date(2024, 7, 31),
    )

    assert [row.payment_date for row in rows] == [date(2024, 7, 20), date(2024, 7, 10)]
    assert rows[0].reference_label == "Shop rent"
    assert services.payments_total(db_session, date_from=date(2024, 7, 1), date_to=date(2024, 7, 31)) == Decimal(
        "300.00"
    )
