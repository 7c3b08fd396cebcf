from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.purchases import models as purchase_models
from finsuite.apps.receivables import models as receivable_models
from finsuite.apps.rent_bills import models as rent_bill_models
from finsuite.apps.settings import services as settings_services
from finsuite.apps.staff import models as staff_models
from finsuite.utils.dates import today
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500
PAYABLE_CATEGORIES = (models.PaymentReferenceType.RENT_BILL, models.PaymentReferenceType.SALARY)


def salary_paid_total(db: Session, salary_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(models.Payment.amount), 0))
        .filter(
            models.Payment.reference_type == models.PaymentReferenceType.SALARY,
            models.Payment.reference_id == salary_id,
        )
        .scalar()
    )
    return money(total)


def _salary_paid_subquery(db: Session):
    return (
        db.query(
            models.Payment.reference_id.label("salary_id"),
            func.sum(models.Payment.amount).label("paid_amount"),
        )
        .filter(models.Payment.reference_type == models.PaymentReferenceType.SALARY)
        .group_by(models.Payment.reference_id)
        .subquery()
    )


def payment_options(db: Session) -> schemas.PaymentOptions:
    bills = (
        db.query(rent_bill_models.RentBill)
        .filter(
            rent_bill_models.RentBill.status.in_(
                (rent_bill_models.RentBillStatus.PENDING, rent_bill_models.RentBillStatus.PARTIAL)
            )
        )
        .order_by(rent_bill_models.RentBill.due_date.asc(), rent_bill_models.RentBill.id.desc())
        .all()
    )
    rent_bills = [
        schemas.RentBillOption(
            id=bill.id,
            title=bill.title,
            category=bill.category,
            amount=money(bill.amount),
            paid_amount=money(bill.paid_amount),
            balance=money(bill.amount) - money(bill.paid_amount),
            status=bill.status.value,
            due_date=bill.due_date,
        )
        for bill in bills
    ]

    paid = _salary_paid_subquery(db)
    rows = (
        db.query(staff_models.SalaryRecord, staff_models.Staff.name, branch_models.Branch.name, paid.c.paid_amount)
        .join(staff_models.Staff, staff_models.Staff.id == staff_models.SalaryRecord.staff_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == staff_models.Staff.branch_id)
        .outerjoin(paid, paid.c.salary_id == staff_models.SalaryRecord.id)
        .order_by(staff_models.SalaryRecord.month_year.desc(), staff_models.Staff.name)
        .all()
    )
    salaries = []
    for record, staff_name, branch_name, paid_amount in rows:
        remaining = money(record.net_salary) - money(paid_amount)
        if remaining <= 0:
            continue
        salaries.append(
            schemas.SalaryOption(
                id=record.id,
                staff_id=record.staff_id,
                staff_name=staff_name,
                branch_name=branch_name,
                month_year=record.month_year,
                base_salary=money(record.base_salary),
                commission=money(record.commission),
                advances=money(record.advances),
                deductions=money(record.deductions),
                net_salary=money(record.net_salary),
                paid_amount=money(paid_amount),
                remaining_amount=remaining,
            )
        )

    banks = db.query(bank_models.Bank).order_by(bank_models.Bank.name).all()
    return schemas.PaymentOptions(
        rent_bills=rent_bills,
        salaries=salaries,
        banks=[schemas.BankOption.model_validate(bank) for bank in banks],
    )


def _reference_labels(db: Session, payments: List[models.Payment]) -> dict:
    wanted = {}
    for payment in payments:
        wanted.setdefault(payment.reference_type, set()).add(payment.reference_id)
    labels = {}

    ids = wanted.get(models.PaymentReferenceType.SUPPLIER)
    if ids:
        for supplier_id, name in (
            db.query(purchase_models.Supplier.id, purchase_models.Supplier.name)
            .filter(purchase_models.Supplier.id.in_(ids))
            .all()
        ):
            labels[(models.PaymentReferenceType.SUPPLIER, supplier_id)] = name

    ids = wanted.get(models.PaymentReferenceType.RENT_BILL)
    if ids:
        for bill_id, title in (
            db.query(rent_bill_models.RentBill.id, rent_bill_models.RentBill.title)
            .filter(rent_bill_models.RentBill.id.in_(ids))
            .all()
        ):
            labels[(models.PaymentReferenceType.RENT_BILL, bill_id)] = title

    ids = wanted.get(models.PaymentReferenceType.SALARY)
    if ids:
        for salary_id, staff_name, month_year in (
            db.query(staff_models.SalaryRecord.id, staff_models.Staff.name, staff_models.SalaryRecord.month_year)
            .join(staff_models.Staff, staff_models.Staff.id == staff_models.SalaryRecord.staff_id)
            .filter(staff_models.SalaryRecord.id.in_(ids))
            .all()
        ):
            labels[(models.PaymentReferenceType.SALARY, salary_id)] = f"{staff_name} - {month_year}"

    ids = wanted.get(models.PaymentReferenceType.RECEIVABLE)
    if ids:
        for receivable_id, customer_name in (
            db.query(receivable_models.Receivable.id, receivable_models.Customer.name)
            .join(receivable_models.Customer, receivable_models.Customer.id == receivable_models.Receivable.customer_id)
            .filter(receivable_models.Receivable.id.in_(ids))
            .all()
        ):
            labels[(models.PaymentReferenceType.RECEIVABLE, receivable_id)] = customer_name
    return labels


def list_payments(
    db: Session,
    *,
    reference_type: Optional[models.PaymentReferenceType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[schemas.PaymentRead]:
    query = db.query(models.Payment, bank_models.Bank.name).outerjoin(
        bank_models.Bank, bank_models.Bank.id == models.Payment.bank_id
    )
    if reference_type:
        query = query.filter(models.Payment.reference_type == reference_type)
    if date_from:
        query = query.filter(models.Payment.payment_date >= date_from)
    if date_to:
        query = query.filter(models.Payment.payment_date <= date_to)
    limit = max(1, min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT))
    rows = query.order_by(models.Payment.payment_date.desc(), models.Payment.id.desc()).limit(limit).all()

    labels = _reference_labels(db, [payment for payment, _ in rows])
    items = []
    for payment, bank_name in rows:
        item = schemas.PaymentRead.model_validate(payment)
        item.bank_name = bank_name
        item.reference_label = labels.get((payment.reference_type, payment.reference_id))
        items.append(item)
    return items


def _parse_method(raw) -> Tuple[models.PaymentMode, Optional[int]]:
    """`cash` (or nothing) pays in cash; anything else is a bank id."""
    if raw is None or raw == "" or raw == models.PaymentMode.CASH.value:
        return models.PaymentMode.CASH, None
    try:
        return models.PaymentMode.BANK, int(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bank not found.")


def _parse_category(raw: str) -> models.PaymentReferenceType:
    try:
        category = models.PaymentReferenceType(raw)
    except ValueError:
        category = None
    if category not in PAYABLE_CATEGORIES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid category.")
    return category


def _format_amount(value: Decimal) -> str:
    return f"{value.normalize():f}"


def create_payment(
    db: Session,
    *,
    data: schemas.PaymentCreate,
    actor_user_id: Optional[str],
) -> schemas.PaymentResult:
    """
    Pay a rent/bill or a processed salary.

    A bill may not be overpaid and a salary may not be paid beyond its net
    amount. Bank payments also post a `payment` movement on the bank.
    """
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    category = _parse_category(data.category)
    if not data.reference_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="reference_id required.")
    mode, bank_id = _parse_method(data.payment_method)
    paid_on = data.payment_date or today()

    bill = None
    record = None
    if category == models.PaymentReferenceType.RENT_BILL:
        bill = db.query(rent_bill_models.RentBill).filter(rent_bill_models.RentBill.id == data.reference_id).first()
        if not bill:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rent/Bill not found.")
        balance = money(bill.amount) - money(bill.paid_amount)
        if amount > balance:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Amount exceeds balance ({_format_amount(balance)}).",
            )
    else:
        record = (
            db.query(staff_models.SalaryRecord)
            .filter(staff_models.SalaryRecord.id == data.reference_id)
            .first()
        )
        if not record:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Salary record not found.")
        remaining = money(record.net_salary) - salary_paid_total(db, record.id)
        if remaining <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Salary already fully paid.")
        if amount > remaining:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Amount exceeds remaining salary ({_format_amount(remaining)}).",
            )

    if bank_id is not None and not db.query(bank_models.Bank.id).filter(bank_models.Bank.id == bank_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bank not found.")

    voucher = settings_services.next_voucher_number(db)
    remarks = settings_services.append_voucher_note(data.remarks, voucher)
    if bank_id is not None:
        bank_services.record_transaction(
            db,
            bank_id=bank_id,
            type=bank_models.BankTransactionType.PAYMENT,
            amount=amount,
            transaction_date=paid_on,
            reference=remarks,
            description=f"Payment {category.value} #{data.reference_id}",
        )
    payment = models.Payment(
        type=category.value,
        reference_type=category,
        reference_id=data.reference_id,
        amount=amount,
        payment_date=paid_on,
        mode=mode,
        bank_id=bank_id,
        remarks=remarks,
    )
    db.add(payment)
    db.flush()

    if bill is not None:
        bill.paid_amount = money(bill.paid_amount) + amount
        bill.status = (
            rent_bill_models.RentBillStatus.PAID
            if bill.paid_amount >= money(bill.amount)
            else rent_bill_models.RentBillStatus.PARTIAL
        )
    else:
        remaining = money(record.net_salary) - salary_paid_total(db, record.id)
        record.status = staff_models.SalaryStatus.PAID if remaining <= 0 else staff_models.SalaryStatus.PARTIAL
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="payments",
        action="payment",
        entity_id=payment.id,
        details=f"{category.value} #{data.reference_id} {amount} ({voucher})",
    )
    return schemas.PaymentResult(id=payment.id, amount=amount, category=category.value, voucher=voucher)


def payments_total(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    mode: Optional[models.PaymentMode] = None,
    exclude_types: Tuple[str, ...] = (),
) -> Decimal:
    query = db.query(func.coalesce(func.sum(models.Payment.amount), 0))
    if date_from:
        query = query.filter(models.Payment.payment_date >= date_from)
    if date_to:
        query = query.filter(models.Payment.payment_date <= date_to)
    if mode:
        query = query.filter(models.Payment.mode == mode)
    if exclude_types:
        query = query.filter(models.Payment.type.notin_(exclude_types))
    return money(query.scalar() or ZERO)
