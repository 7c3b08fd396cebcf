from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.exports import documents
from finsuite.apps.payments import models as payment_models
from finsuite.apps.settings import branding
from finsuite.apps.settings import services as settings_services
from finsuite.utils.dates import today
from finsuite.utils.ledger import LedgerEntry, LedgerLine, running_balance
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)

RECOVERY_PAYMENT_TYPE = "receivable_recovery"


def recovery_reference(receivable_id: int) -> str:
    return f"receivable-{receivable_id}"


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def list_customers(db: Session) -> List[models.Customer]:
    return db.query(models.Customer).order_by(models.Customer.name).all()


def get_customer_or_404(db: Session, customer_id: int) -> models.Customer:
    customer = db.query(models.Customer).filter(models.Customer.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found.")
    return customer


def customers_with_balance(db: Session) -> List[schemas.CustomerBalance]:
    due = func.coalesce(
        func.sum(case((models.Receivable.status.in_(models.OPEN_STATUSES), models.Receivable.amount), else_=0)),
        0,
    )
    rows = (
        db.query(models.Customer, due)
        .outerjoin(models.Receivable, models.Receivable.customer_id == models.Customer.id)
        .group_by(models.Customer.id)
        .order_by(models.Customer.name)
        .all()
    )
    return [
        schemas.CustomerBalance(
            **schemas.CustomerRead.model_validate(customer).model_dump(),
            total_due=money(total_due),
        )
        for customer, total_due in rows
    ]


def create_customer(db: Session, *, data: schemas.CustomerCreate, actor_user_id: Optional[str]) -> models.Customer:
    customer = models.Customer(name=data.name.strip(), contact=data.contact, address=data.address)
    db.add(customer)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="customers",
        action="create",
        entity_id=customer.id,
        details=customer.name,
    )
    return customer


def update_customer(
    db: Session,
    *,
    customer_id: int,
    data: schemas.CustomerUpdate,
    actor_user_id: Optional[str],
) -> models.Customer:
    customer = get_customer_or_404(db, customer_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    for field, value in changes.items():
        setattr(customer, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="customers",
        action="update",
        entity_id=customer.id,
        metadata={"fields": sorted(changes)},
    )
    return customer


# ---------------------------------------------------------------------------
# Receivables
# ---------------------------------------------------------------------------


def _receivables_query(db: Session):
    return (
        db.query(models.Receivable, models.Customer.name, branch_models.Branch.name)
        .outerjoin(models.Customer, models.Customer.id == models.Receivable.customer_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Receivable.branch_id)
    )


def _to_reads(rows) -> List[schemas.ReceivableRead]:
    items = []
    for receivable, customer_name, branch_name in rows:
        item = schemas.ReceivableRead.model_validate(receivable)
        item.customer_name = customer_name
        item.branch_name = branch_name
        items.append(item)
    return items


def list_receivables(
    db: Session,
    *,
    customer_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    status_filter: Optional[models.ReceivableStatus] = None,
) -> List[schemas.ReceivableRead]:
    query = _receivables_query(db)
    if customer_id:
        query = query.filter(models.Receivable.customer_id == customer_id)
    if branch_id:
        query = query.filter(models.Receivable.branch_id == branch_id)
    if status_filter:
        query = query.filter(models.Receivable.status == status_filter)
    rows = query.order_by(models.Receivable.due_date.asc(), models.Receivable.id.desc()).all()
    return _to_reads(rows)


def list_overdue(db: Session, *, as_of: Optional[date] = None) -> List[schemas.ReceivableRead]:
    rows = (
        _receivables_query(db)
        .filter(
            models.Receivable.status.in_(models.OPEN_STATUSES),
            models.Receivable.due_date.isnot(None),
            models.Receivable.due_date < (as_of or today()),
        )
        .order_by(models.Receivable.due_date)
        .all()
    )
    return _to_reads(rows)


def get_receivable_or_404(db: Session, receivable_id: int) -> models.Receivable:
    receivable = db.query(models.Receivable).filter(models.Receivable.id == receivable_id).first()
    if not receivable:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receivable not found.")
    return receivable


def get_receivable(db: Session, receivable_id: int) -> schemas.ReceivableRead:
    row = _receivables_query(db).filter(models.Receivable.id == receivable_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receivable not found.")
    return _to_reads([row])[0]


def create_receivable(
    db: Session,
    *,
    data: schemas.ReceivableCreate,
    actor_user_id: Optional[str],
) -> models.Receivable:
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    receivable = models.Receivable(
        customer_id=data.customer_id,
        sale_id=data.sale_id,
        branch_id=data.branch_id,
        amount=amount,
        due_date=data.due_date,
        status=models.ReceivableStatus.PENDING,
    )
    db.add(receivable)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="receivables",
        action="create",
        entity_id=receivable.id,
        details=str(amount),
    )
    return receivable


def update_receivable(
    db: Session,
    *,
    receivable_id: int,
    data: schemas.ReceivableUpdate,
    actor_user_id: Optional[str],
) -> models.Receivable:
    receivable = get_receivable_or_404(db, receivable_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    if "due_date" in changes:
        receivable.due_date = changes["due_date"]
    if changes.get("status") is not None:
        receivable.status = changes["status"]
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="receivables",
        action="update",
        entity_id=receivable.id,
        metadata={"fields": sorted(changes)},
    )
    return receivable


def recover(
    db: Session,
    *,
    receivable_id: int,
    data: schemas.RecoveryCreate,
    actor_user_id: Optional[str],
) -> schemas.RecoveryResult:
    """
    Record money received against a receivable.

    The outstanding amount shrinks by the recovery (never below zero) and the
    receivable becomes `recovered` once nothing is left, `partial` otherwise.
    The receipt is also booked as a payment row, and as a bank deposit when
    it was paid into a bank.
    """
    receivable = get_receivable_or_404(db, receivable_id)
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    if data.mode == payment_models.PaymentMode.BANK:
        if not data.bank_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bank not found.")
        bank_services.get_bank_or_404(db, data.bank_id)

    remaining = money(receivable.amount) - amount
    voucher = settings_services.next_voucher_number(db)
    remarks = settings_services.append_voucher_note(data.remarks, voucher)
    received_on = data.recovered_on or today()

    receivable.recoveries.append(
        models.ReceivableRecovery(
            amount=amount,
            remarks=remarks,
            recovered_at=(
                datetime.combine(data.recovered_on, datetime.utcnow().time())
                if data.recovered_on
                else datetime.utcnow()
            ),
        )
    )
    receivable.amount = max(ZERO, remaining)
    receivable.status = (
        models.ReceivableStatus.RECOVERED if remaining <= 0 else models.ReceivableStatus.PARTIAL
    )
    bank_id = data.bank_id if data.mode == payment_models.PaymentMode.BANK else None
    db.add(
        payment_models.Payment(
            type=RECOVERY_PAYMENT_TYPE,
            reference_type=payment_models.PaymentReferenceType.RECEIVABLE,
            reference_id=receivable.id,
            amount=amount,
            payment_date=received_on,
            mode=data.mode,
            bank_id=bank_id,
            remarks=remarks,
        )
    )
    if bank_id:
        bank_services.record_transaction(
            db,
            bank_id=bank_id,
            type=bank_models.BankTransactionType.DEPOSIT,
            amount=amount,
            transaction_date=received_on,
            reference=recovery_reference(receivable.id),
            description=f"Receivable recovery ({voucher})",
        )
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="receivables",
        action="recovery",
        entity_id=receivable.id,
        details=f"{amount} ({voucher})",
    )
    return schemas.RecoveryResult(remaining=receivable.amount, status=receivable.status, voucher=voucher)


# ---------------------------------------------------------------------------
# Ledgers
# ---------------------------------------------------------------------------


def _recoveries_for(db: Session, receivable_ids: Sequence[int]) -> List[models.ReceivableRecovery]:
    if not receivable_ids:
        return []
    return (
        db.query(models.ReceivableRecovery)
        .filter(models.ReceivableRecovery.receivable_id.in_(receivable_ids))
        .order_by(models.ReceivableRecovery.recovered_at, models.ReceivableRecovery.id)
        .all()
    )


def _fold(
    receivables: Sequence[schemas.ReceivableRead],
    recoveries: Sequence[models.ReceivableRecovery],
    *,
    credit_label: str,
    id_scope: str = "",
) -> List[LedgerLine]:
    """
    Receivables enter at their original amount (outstanding plus what has
    been recovered so far); recoveries are debits.
    """
    recovered: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for recovery in recoveries:
        recovered[recovery.receivable_id] += money(recovery.amount)

    entries = []
    for receivable in receivables:
        description = f"{credit_label} #{receivable.id}"
        if receivable.branch_name:
            description += f" ({receivable.branch_name})"
        entries.append(
            LedgerEntry(
                timestamp=receivable.created_at,
                description=description,
                credit=money(receivable.amount) + recovered[receivable.id],
                kind="receivable",
                reference_id=receivable.id,
                id_prefix=f"{id_scope}rec",
            )
        )
    for recovery in recoveries:
        entries.append(
            LedgerEntry(
                timestamp=recovery.recovered_at,
                description=f"Recovery - {recovery.remarks}" if recovery.remarks else "Recovery",
                debit=money(recovery.amount),
                kind="recovery",
                reference_id=recovery.id,
                id_prefix=f"{id_scope}recovery",
            )
        )
    return [LedgerLine.from_entry(entry) for entry in running_balance(entries)]


def _totals(receivables: Sequence[schemas.ReceivableRead], recoveries: Sequence[models.ReceivableRecovery]):
    total_due = money(sum((r.amount for r in receivables if r.status in models.OPEN_STATUSES), ZERO))
    recovered_total = money(sum((money(r.amount) for r in recoveries), ZERO))
    return total_due, recovered_total


def customer_ledger(db: Session, *, customer_id: int) -> schemas.CustomerLedger:
    customer = get_customer_or_404(db, customer_id)
    receivables = _to_reads(
        _receivables_query(db)
        .filter(models.Receivable.customer_id == customer_id)
        .order_by(models.Receivable.created_at, models.Receivable.id)
        .all()
    )
    recoveries = _recoveries_for(db, [r.id for r in receivables])
    total_due, recovered_total = _totals(receivables, recoveries)
    return schemas.CustomerLedger(
        customer=schemas.CustomerRead.model_validate(customer),
        receivables=receivables,
        recoveries=[schemas.RecoveryRead.model_validate(r) for r in recoveries],
        entries=_fold(receivables, recoveries, credit_label="Receivable"),
        total_due=total_due,
        recovered_total=recovered_total,
    )


def branch_ledger(db: Session, *, branch_id: int) -> schemas.BranchLedger:
    branch = db.query(branch_models.Branch).filter(branch_models.Branch.id == branch_id).first()
    if not branch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Branch not found.")
    receivables = _to_reads(
        _receivables_query(db)
        .filter(models.Receivable.branch_id == branch_id)
        .order_by(models.Receivable.created_at, models.Receivable.id)
        .all()
    )
    recoveries = _recoveries_for(db, [r.id for r in receivables])
    total_due, recovered_total = _totals(receivables, recoveries)
    return schemas.BranchLedger(
        branch_id=branch.id,
        branch_name=branch.name,
        receivables=receivables,
        recoveries=[schemas.RecoveryRead.model_validate(r) for r in recoveries],
        entries=_fold(receivables, recoveries, credit_label="Credit sale", id_scope="branch-"),
        total_due=total_due,
        recovered_total=recovered_total,
    )


def branch_summary(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.BranchReceivableSummary]:
    """Per active branch: original credit, open outstanding and amount received."""
    recovered_sub = (
        db.query(
            models.ReceivableRecovery.receivable_id.label("receivable_id"),
            func.sum(models.ReceivableRecovery.amount).label("total_recovered"),
        )
        .group_by(models.ReceivableRecovery.receivable_id)
        .subquery()
    )
    query = (
        db.query(models.Receivable, recovered_sub.c.total_recovered)
        .outerjoin(recovered_sub, recovered_sub.c.receivable_id == models.Receivable.id)
        .filter(models.Receivable.branch_id.isnot(None))
    )
    if date_from:
        query = query.filter(models.Receivable.created_at >= datetime.combine(date_from, datetime.min.time()))
    if date_to:
        query = query.filter(models.Receivable.created_at <= datetime.combine(date_to, datetime.max.time()))

    credit: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    outstanding: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    received: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for receivable, total_recovered in query.all():
        recovered_amount = money(total_recovered)
        credit[receivable.branch_id] += money(receivable.amount) + recovered_amount
        received[receivable.branch_id] += recovered_amount
        if receivable.status in models.OPEN_STATUSES:
            outstanding[receivable.branch_id] += money(receivable.amount)

    branches = (
        db.query(branch_models.Branch)
        .filter(branch_models.Branch.is_active.is_(True))
        .order_by(branch_models.Branch.name)
        .all()
    )
    return [
        schemas.BranchReceivableSummary(
            branch_id=branch.id,
            branch_name=branch.name,
            credit_sales=credit[branch.id],
            receivable_amount=outstanding[branch.id],
            received_amount=received[branch.id],
            pending_balance=outstanding[branch.id],
        )
        for branch in branches
    ]


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


def export_customer_ledger(db: Session, *, customer_id: int, kind: str):
    ledger = customer_ledger(db, customer_id=customer_id)
    company = branding.get_company_profile(db)
    customer = ledger.customer
    filename = f"receivable-ledger-{documents.safe_filename(customer.name, 'customer')}"
    receivable_rows = [
        [r.created_at, r.branch_name, r.amount, r.status, r.due_date] for r in ledger.receivables
    ]
    recovery_rows = [[r.recovered_at, r.amount, r.remarks] for r in ledger.recoveries]

    if kind == "pdf":
        lines = []
        if customer.contact:
            lines.append(f"Contact: {customer.contact}")
        if customer.address:
            lines.append(f"Address: {customer.address}")
        lines.append(f"<b>Total Due: {ledger.total_due:,.2f}</b>")
        document = documents.PdfDocument(
            title="Receivables Ledger",
            subtitle=f"Customer: {customer.name}",
            lines=lines,
            sections=[
                documents.Section(
                    title="Credit entries (Receivables)",
                    headers=["Date", "Branch", "Amount", "Status", "Due Date"],
                    rows=receivable_rows,
                    empty_text="No entries.",
                ),
                documents.Section(
                    title="Recoveries",
                    headers=["Date", "Amount", "Remarks"],
                    rows=recovery_rows,
                    empty_text="No recoveries yet.",
                ),
            ],
        )
        return documents.pdf_response(company, document, filename=filename)

    sheets = [
        documents.Sheet(
            name="Receivables",
            title=f"Receivables Ledger - {customer.name}",
            headers=["Date", "Branch", "Amount", "Status", "Due Date"],
            rows=receivable_rows,
        ),
        documents.Sheet(
            name="Recoveries",
            title=f"Recoveries - {customer.name}",
            headers=["Date", "Amount", "Remarks"],
            rows=recovery_rows,
        ),
        documents.Sheet(
            name="Summary",
            title=f"Receivables Ledger - {customer.name}",
            headers=[],
            rows=[
                ["Customer", customer.name],
                ["Total due", ledger.total_due],
                ["Total recovered", ledger.recovered_total],
            ],
        ),
    ]
    return documents.xlsx_response(company, sheets, filename=filename)


def export_branch_summary(
    db: Session,
    *,
    kind: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
):
    rows = branch_summary(db, date_from=date_from, date_to=date_to)
    company = branding.get_company_profile(db)
    filename = f"branch_ledger_{date_from or 'all'}_{date_to or 'all'}"
    headers = ["Branch", "Credit sales", "Receivables", "Received", "Pending balance"]
    data = [
        [r.branch_name, r.credit_sales, r.receivable_amount, r.received_amount, r.pending_balance]
        for r in rows
    ]
    period = f"From: {date_from or '-'}   To: {date_to or '-'}" if date_from or date_to else None

    if kind == "pdf":
        document = documents.PdfDocument(
            title="Branch-wise Receivables Ledger",
            subtitle=period,
            sections=[documents.Section(headers=headers, rows=data)],
        )
        return documents.pdf_response(company, document, filename=filename)

    title = "Branch-wise Receivables"
    if period:
        title += f" ({date_from or '-'} to {date_to or '-'})"
    sheets = [documents.Sheet(name="Branch Ledger", title=title, headers=headers, rows=data)]
    return documents.xlsx_response(company, sheets, filename=filename)
