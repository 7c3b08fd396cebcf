from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.payments import models as payment_models
from finsuite.apps.payments import schemas as payment_schemas
from finsuite.apps.settings import services as settings_services
from finsuite.utils.dates import month_bounds, today
from finsuite.utils.ledger import LedgerEntry, LedgerLine, running_balance
from finsuite.utils.money import ZERO, money, non_negative

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_DAYS = 7
MAX_REMINDER_DAYS = 60
SUPPLIER_PAYMENT_TYPE = "supplier"


def purchase_reference(purchase_id: int) -> str:
    return f"purchase-{purchase_id}"


# ---------------------------------------------------------------------------
# Suppliers
# ---------------------------------------------------------------------------


def list_suppliers(db: Session) -> List[models.Supplier]:
    return db.query(models.Supplier).order_by(models.Supplier.name).all()


def get_supplier_or_404(db: Session, supplier_id: int) -> models.Supplier:
    supplier = db.query(models.Supplier).filter(models.Supplier.id == supplier_id).first()
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found.")
    return supplier


def create_supplier(db: Session, *, data: schemas.SupplierCreate, actor_user_id: Optional[str]) -> models.Supplier:
    supplier = models.Supplier(name=data.name.strip(), contact=data.contact, address=data.address)
    db.add(supplier)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="suppliers",
        action="create",
        entity_id=supplier.id,
        details=supplier.name,
    )
    return supplier


def update_supplier(
    db: Session,
    *,
    supplier_id: int,
    data: schemas.SupplierUpdate,
    actor_user_id: Optional[str],
) -> models.Supplier:
    supplier = get_supplier_or_404(db, supplier_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    for field, value in changes.items():
        setattr(supplier, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="suppliers",
        action="update",
        entity_id=supplier.id,
        metadata={"fields": sorted(changes)},
    )
    return supplier


def _supplier_payments(db: Session, supplier_id: int) -> List[payment_models.Payment]:
    return (
        db.query(payment_models.Payment)
        .filter(
            payment_models.Payment.reference_type == payment_models.PaymentReferenceType.SUPPLIER,
            payment_models.Payment.reference_id == supplier_id,
        )
        .order_by(payment_models.Payment.payment_date.desc(), payment_models.Payment.id.desc())
        .all()
    )


def supplier_ledger(db: Session, *, supplier_id: int) -> schemas.SupplierLedger:
    """
    What the business owes one supplier.

    Purchases are credits at their invoice total. Amounts paid up front on a
    purchase and every supplier payment are debits. Payments recorded through
    an invoice's pay action are already part of that invoice's paid amount,
    so they are only counted once.
    """
    supplier = get_supplier_or_404(db, supplier_id)
    purchases = _to_reads(
        _purchases_query(db)
        .filter(models.Purchase.supplier_id == supplier_id)
        .order_by(models.Purchase.purchase_date.desc(), models.Purchase.id.desc())
        .all()
    )
    payments = _supplier_payments(db, supplier_id)

    paid_via_invoice: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        if payment.purchase_id:
            paid_via_invoice[payment.purchase_id] += money(payment.amount)

    entries = []
    for purchase in purchases:
        label = f"Purchase {purchase.invoice_no}" if purchase.invoice_no else f"Purchase #{purchase.id}"
        entries.append(
            LedgerEntry(
                timestamp=purchase.purchase_date,
                description=label,
                credit=money(purchase.total_amount),
                kind="purchase",
                reference_id=purchase.id,
            )
        )
        upfront = money(purchase.paid_amount) - paid_via_invoice[purchase.id]
        if upfront > 0:
            entries.append(
                LedgerEntry(
                    timestamp=purchase.purchase_date,
                    description=f"Paid on {label.lower()}",
                    debit=upfront,
                    kind="purchase-paid",
                    reference_id=purchase.id,
                )
            )
    for payment in payments:
        entries.append(
            LedgerEntry(
                timestamp=payment.payment_date,
                description=payment.remarks or "Supplier payment",
                debit=money(payment.amount),
                kind="payment",
                reference_id=payment.id,
            )
        )

    total_purchases = money(sum((p.total_amount for p in purchases), ZERO))
    standalone_paid = sum((money(p.amount) for p in payments if not p.purchase_id), ZERO)
    total_paid = money(sum((p.paid_amount for p in purchases), ZERO) + standalone_paid)
    return schemas.SupplierLedger(
        supplier=schemas.SupplierRead.model_validate(supplier),
        purchases=purchases,
        payments=[payment_schemas.PaymentRead.model_validate(p) for p in payments],
        entries=[LedgerLine.from_entry(entry) for entry in running_balance(entries)],
        total_purchases=total_purchases,
        total_paid=total_paid,
        balance=money(total_purchases - total_paid),
    )


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------


def _purchases_query(db: Session):
    return (
        db.query(models.Purchase, models.Supplier.name, models.Supplier.contact, branch_models.Branch.name)
        .outerjoin(models.Supplier, models.Supplier.id == models.Purchase.supplier_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Purchase.branch_id)
    )


def _to_reads(rows) -> List[schemas.PurchaseRead]:
    items = []
    for purchase, supplier_name, supplier_contact, branch_name in rows:
        item = schemas.PurchaseRead.model_validate(purchase)
        item.supplier_name = supplier_name
        item.supplier_contact = supplier_contact
        item.branch_name = branch_name
        items.append(item)
    return items


def list_purchases(
    db: Session,
    *,
    supplier_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.PurchaseRead]:
    query = _purchases_query(db)
    if supplier_id:
        query = query.filter(models.Purchase.supplier_id == supplier_id)
    if branch_id:
        query = query.filter(models.Purchase.branch_id == branch_id)
    if date_from:
        query = query.filter(models.Purchase.purchase_date >= date_from)
    if date_to:
        query = query.filter(models.Purchase.purchase_date <= date_to)
    rows = query.order_by(models.Purchase.purchase_date.desc(), models.Purchase.id.desc()).all()
    return _to_reads(rows)


def get_purchase_or_404(db: Session, purchase_id: int) -> models.Purchase:
    purchase = db.query(models.Purchase).filter(models.Purchase.id == purchase_id).first()
    if not purchase:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found.")
    return purchase


def get_purchase(db: Session, purchase_id: int) -> schemas.PurchaseRead:
    row = _purchases_query(db).filter(models.Purchase.id == purchase_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase not found.")
    return _to_reads([row])[0]


def due_reminders(db: Session, *, days: Optional[int] = None, as_of: Optional[date] = None) -> schemas.DueReminders:
    """Open invoices due within `days` (overdue ones included)."""
    days = min(days or DEFAULT_REMINDER_DAYS, MAX_REMINDER_DAYS)
    current = as_of or today()
    rows = (
        _purchases_query(db)
        .filter(
            models.Purchase.balance > 0,
            models.Purchase.due_date.isnot(None),
            models.Purchase.due_date <= current + timedelta(days=days),
        )
        .order_by(models.Purchase.due_date.asc())
        .all()
    )
    reminders = [
        schemas.DueReminder(
            **read.model_dump(),
            status="overdue" if read.due_date < current else "due_soon",
        )
        for read in _to_reads(rows)
    ]
    return schemas.DueReminders(days=days, rows=reminders)


def create_purchase(
    db: Session,
    *,
    data: schemas.PurchaseCreate,
    actor_user_id: Optional[str],
) -> models.Purchase:
    get_supplier_or_404(db, data.supplier_id)
    invoice_no = (data.invoice_no or "").strip() or settings_services.next_invoice_number(db)
    total = money(data.total_amount)
    paid = money(data.paid_amount)
    purchase = models.Purchase(
        supplier_id=data.supplier_id,
        branch_id=data.branch_id,
        invoice_no=invoice_no,
        purchase_date=data.purchase_date,
        due_date=data.due_date,
        total_amount=total,
        paid_amount=paid,
        balance=non_negative(total - paid),
        remarks=data.remarks,
    )
    db.add(purchase)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="purchases",
        action="create",
        entity_id=purchase.id,
        details=invoice_no,
    )
    return purchase


def update_purchase(
    db: Session,
    *,
    purchase_id: int,
    data: schemas.PurchaseUpdate,
    actor_user_id: Optional[str],
) -> models.Purchase:
    purchase = get_purchase_or_404(db, purchase_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("supplier_id"):
        get_supplier_or_404(db, changes["supplier_id"])
        purchase.supplier_id = changes["supplier_id"]
    if changes.get("purchase_date"):
        purchase.purchase_date = changes["purchase_date"]
    for field in ("branch_id", "invoice_no", "due_date", "remarks"):
        if field in changes:
            setattr(purchase, field, changes[field])
    if changes.get("total_amount") is not None:
        purchase.total_amount = money(changes["total_amount"])
    if changes.get("paid_amount") is not None:
        purchase.paid_amount = money(changes["paid_amount"])
    purchase.balance = non_negative(money(purchase.total_amount) - money(purchase.paid_amount))
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="purchases",
        action="update",
        entity_id=purchase.id,
        metadata={"fields": sorted(changes)},
    )
    return purchase


def pay_purchase(
    db: Session,
    *,
    purchase_id: int,
    data: schemas.PurchasePay,
    actor_user_id: Optional[str],
) -> schemas.PurchasePayResult:
    purchase = get_purchase_or_404(db, purchase_id)
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    bank_id = data.bank_id if data.mode == payment_models.PaymentMode.BANK else None
    if data.mode == payment_models.PaymentMode.BANK:
        if not bank_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bank not found.")
        bank_services.get_bank_or_404(db, bank_id)

    purchase.paid_amount = money(purchase.paid_amount) + amount
    purchase.balance = non_negative(money(purchase.total_amount) - purchase.paid_amount)
    voucher = settings_services.next_voucher_number(db)
    remarks = settings_services.append_voucher_note(data.remarks, voucher)
    paid_on = data.payment_date or today()

    db.add(
        payment_models.Payment(
            type=SUPPLIER_PAYMENT_TYPE,
            reference_type=payment_models.PaymentReferenceType.SUPPLIER,
            reference_id=purchase.supplier_id,
            purchase_id=purchase.id,
            amount=amount,
            payment_date=paid_on,
            mode=data.mode,
            bank_id=bank_id,
            remarks=remarks,
        )
    )
    if bank_id:
        bank_services.record_transaction(
            db,
            bank_id=bank_id,
            type=bank_models.BankTransactionType.PAYMENT,
            amount=amount,
            transaction_date=paid_on,
            reference=purchase_reference(purchase.id),
            description=f"Supplier payment {purchase.invoice_no or purchase.id} ({voucher})",
        )
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="purchases",
        action="payment",
        entity_id=purchase.id,
        details=f"{amount} ({voucher})",
    )
    return schemas.PurchasePayResult(paid_amount=purchase.paid_amount, balance=purchase.balance, voucher=voucher)


def delete_purchase(db: Session, *, purchase_id: int, actor_user_id: Optional[str]) -> None:
    purchase = get_purchase_or_404(db, purchase_id)
    removed = (
        db.query(payment_models.Payment)
        .filter(payment_models.Payment.purchase_id == purchase.id)
        .delete(synchronize_session=False)
    )
    bank_services.delete_transactions_by_reference(db, reference=purchase_reference(purchase.id))
    db.delete(purchase)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="purchases",
        action="delete",
        entity_id=purchase_id,
        metadata={"payments_removed": removed},
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def daily_report(db: Session, *, report_date: date, branch_id: Optional[int] = None) -> schemas.PurchaseReport:
    query = _purchases_query(db).filter(models.Purchase.purchase_date == report_date)
    if branch_id:
        query = query.filter(models.Purchase.branch_id == branch_id)
    rows = _to_reads(query.order_by(models.Purchase.branch_id, models.Purchase.id).all())
    return schemas.PurchaseReport(
        rows=rows,
        total=money(sum((row.total_amount for row in rows), ZERO)),
        report_date=report_date,
        branch_id=branch_id,
    )


def monthly_report(
    db: Session,
    *,
    month: int,
    year: int,
    branch_id: Optional[int] = None,
) -> schemas.MonthlyPurchaseReport:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month must be 1-12")
    start, end = month_bounds(year, month)
    query = (
        db.query(
            models.Purchase.purchase_date,
            models.Purchase.branch_id,
            branch_models.Branch.name,
            func.coalesce(func.sum(models.Purchase.total_amount), 0),
        )
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Purchase.branch_id)
        .filter(models.Purchase.purchase_date >= start, models.Purchase.purchase_date <= end)
    )
    if branch_id:
        query = query.filter(models.Purchase.branch_id == branch_id)
    grouped = (
        query.group_by(models.Purchase.purchase_date, models.Purchase.branch_id, branch_models.Branch.name)
        .order_by(models.Purchase.purchase_date, models.Purchase.branch_id)
        .all()
    )
    rows = [
        schemas.MonthlyPurchaseRow(
            purchase_date=purchase_date,
            branch_id=row_branch_id,
            branch_name=branch_name,
            daily_total=money(total),
        )
        for purchase_date, row_branch_id, branch_name, total in grouped
    ]
    return schemas.MonthlyPurchaseReport(
        month=month,
        year=year,
        date_from=start,
        date_to=end,
        rows=rows,
        total=money(sum((row.daily_total for row in rows), ZERO)),
    )


def supplier_wise_report(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.SupplierWiseRow]:
    join_on = models.Purchase.supplier_id == models.Supplier.id
    if date_from and date_to:
        join_on = and_(
            join_on,
            models.Purchase.purchase_date >= date_from,
            models.Purchase.purchase_date <= date_to,
        )
    total = func.coalesce(func.sum(models.Purchase.total_amount), 0)
    paid = func.coalesce(func.sum(models.Purchase.paid_amount), 0)
    rows = (
        db.query(models.Supplier.id, models.Supplier.name, total, paid)
        .outerjoin(models.Purchase, join_on)
        .group_by(models.Supplier.id, models.Supplier.name)
        .order_by(total.desc())
        .all()
    )
    return [
        schemas.SupplierWiseRow(
            id=supplier_id,
            name=name,
            total_purchases=money(total_purchases),
            total_paid=money(total_paid),
            balance=money(money(total_purchases) - money(total_paid)),
        )
        for supplier_id, name, total_purchases, total_paid in rows
    ]
