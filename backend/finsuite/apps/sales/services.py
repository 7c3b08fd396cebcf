from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from finsuite.apps.attachments import models as attachment_models
from finsuite.apps.attachments import services as attachment_services
from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.payments import models as payment_models
from finsuite.apps.receivables import models as receivable_models
from finsuite.utils.dates import month_bounds
from finsuite.utils.money import ZERO, money, non_negative

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 500
SALE_COLLECTION = "Sale collection"


def sale_reference(sale_id: int) -> str:
    return f"sale-{sale_id}"


def compute_net_sales(
    *,
    cash: Decimal,
    bank: Decimal,
    credit: Decimal,
    discount: Decimal,
    returns: Decimal,
) -> Decimal:
    """Net sales never go below zero."""
    return non_negative(money(cash) + money(bank) + money(credit) - money(discount) - money(returns))


@dataclass
class BankPortion:
    amount: Decimal
    primary_bank_id: Optional[int]
    splits: List[schemas.BankSplitIn]


def resolve_bank_portion(
    db: Session,
    *,
    bank_amount: Decimal,
    bank_id: Optional[int],
    splits: Optional[Sequence[schemas.BankSplitIn]],
) -> BankPortion:
    """
    Work out the bank part of a sale.

    Valid splits (a bank and a positive amount) win: the bank amount becomes
    their total and the first split's bank is the primary bank. Without
    splits a positive bank amount needs a bank account.
    """
    valid = [split for split in (splits or []) if split.bank_id and money(split.amount) > 0]
    if valid:
        for split in valid:
            _ensure_bank_exists(db, split.bank_id)
        total = money(sum((money(split.amount) for split in valid), ZERO))
        return BankPortion(amount=total, primary_bank_id=valid[0].bank_id, splits=valid)

    amount = money(bank_amount)
    if amount > 0:
        if not bank_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Bank account is required when entering bank amount.",
            )
        _ensure_bank_exists(db, bank_id)
    return BankPortion(amount=amount, primary_bank_id=bank_id, splits=[])


def _ensure_bank_exists(db: Session, bank_id: int) -> None:
    if not db.query(bank_models.Bank.id).filter(bank_models.Bank.id == bank_id).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Selected bank account not found.",
        )


def _post_bank_portion(db: Session, sale: models.Sale, portion: BankPortion) -> None:
    reference = sale_reference(sale.id)
    if portion.amount <= 0:
        return
    if portion.splits:
        for split in portion.splits:
            sale.bank_splits.append(models.SaleBankSplit(bank_id=split.bank_id, amount=money(split.amount)))
            bank_services.record_transaction(
                db,
                bank_id=split.bank_id,
                type=bank_models.BankTransactionType.DEPOSIT,
                amount=split.amount,
                transaction_date=sale.sale_date,
                reference=reference,
                description=SALE_COLLECTION,
            )
    elif portion.primary_bank_id:
        bank_services.record_transaction(
            db,
            bank_id=portion.primary_bank_id,
            type=bank_models.BankTransactionType.DEPOSIT,
            amount=portion.amount,
            transaction_date=sale.sale_date,
            reference=reference,
            description=SALE_COLLECTION,
        )


def _remove_bank_postings(db: Session, sale: models.Sale) -> None:
    sale.bank_splits.clear()
    (
        db.query(bank_models.BankTransaction)
        .filter(
            bank_models.BankTransaction.reference == sale_reference(sale.id),
            bank_models.BankTransaction.type == bank_models.BankTransactionType.DEPOSIT,
        )
        .delete(synchronize_session=False)
    )
    db.flush()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def _split_labels(db: Session, sale_ids: Sequence[int]) -> Dict[int, str]:
    if not sale_ids:
        return {}
    rows = (
        db.query(models.SaleBankSplit.sale_id, bank_models.Bank.name, models.SaleBankSplit.amount)
        .join(bank_models.Bank, bank_models.Bank.id == models.SaleBankSplit.bank_id)
        .filter(models.SaleBankSplit.sale_id.in_(sale_ids))
        .order_by(models.SaleBankSplit.id)
        .all()
    )
    labels: Dict[int, List[str]] = {}
    for sale_id, bank_name, amount in rows:
        labels.setdefault(sale_id, []).append(f"{bank_name}:{money(amount):.0f}")
    return {sale_id: ", ".join(parts) for sale_id, parts in labels.items()}


def _sales_query(db: Session):
    return (
        db.query(models.Sale, branch_models.Branch.name, receivable_models.Customer.name)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Sale.branch_id)
        .outerjoin(receivable_models.Customer, receivable_models.Customer.id == models.Sale.customer_id)
    )


def _to_reads(db: Session, rows) -> List[schemas.SaleRead]:
    labels = _split_labels(db, [sale.id for sale, _, _ in rows])
    items = []
    for sale, branch_name, customer_name in rows:
        item = schemas.SaleRead.model_validate(sale)
        item.branch_name = branch_name
        item.customer_name = customer_name
        item.bank_split_label = labels.get(sale.id)
        items.append(item)
    return items


def list_sales(
    db: Session,
    *,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    sale_type: Optional[models.SaleType] = None,
    limit: Optional[int] = None,
) -> List[schemas.SaleRead]:
    query = _sales_query(db)
    if branch_id:
        query = query.filter(models.Sale.branch_id == branch_id)
    if date_from:
        query = query.filter(models.Sale.sale_date >= date_from)
    if date_to:
        query = query.filter(models.Sale.sale_date <= date_to)
    if sale_type:
        query = query.filter(models.Sale.type == sale_type)
    limit = max(1, min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT))
    rows = query.order_by(models.Sale.sale_date.desc(), models.Sale.id.desc()).limit(limit).all()
    return _to_reads(db, rows)


def sales_between(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    branch_id: Optional[int] = None,
) -> List[schemas.SaleRead]:
    """Unpaged variant of `list_sales` for exports."""
    query = _sales_query(db)
    if branch_id:
        query = query.filter(models.Sale.branch_id == branch_id)
    if date_from:
        query = query.filter(models.Sale.sale_date >= date_from)
    if date_to:
        query = query.filter(models.Sale.sale_date <= date_to)
    return _to_reads(db, query.order_by(models.Sale.sale_date.desc(), models.Sale.id.desc()).all())


def get_sale_or_404(db: Session, sale_id: int) -> models.Sale:
    sale = db.query(models.Sale).filter(models.Sale.id == sale_id).first()
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found.")
    return sale


def get_sale(db: Session, sale_id: int) -> schemas.SaleDetail:
    row = _sales_query(db).filter(models.Sale.id == sale_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found.")
    base = _to_reads(db, [row])[0]
    sale = row[0]
    bank_names = dict(
        db.query(bank_models.Bank.id, bank_models.Bank.name)
        .filter(bank_models.Bank.id.in_([split.bank_id for split in sale.bank_splits] or [0]))
        .all()
    )
    splits = []
    for split in sale.bank_splits:
        split_read = schemas.BankSplitRead.model_validate(split)
        split_read.bank_name = bank_names.get(split.bank_id)
        splits.append(split_read)
    attachments = attachment_services.list_attachments(
        db, owner_type=attachment_models.AttachmentOwner.SALE, owner_id=sale.id
    )
    return schemas.SaleDetail(**base.model_dump(), bank_splits=splits, attachments=attachments)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def create_sale(
    db: Session,
    *,
    data: schemas.SaleCreate,
    actor_user_id: Optional[str],
) -> models.Sale:
    if not db.query(branch_models.Branch.id).filter(branch_models.Branch.id == data.branch_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch not found.")

    portion = resolve_bank_portion(
        db,
        bank_amount=data.bank_amount,
        bank_id=data.bank_id,
        splits=data.bank_splits,
    )
    cash = money(data.cash_amount)
    credit = money(data.credit_amount)
    sale = models.Sale(
        branch_id=data.branch_id,
        customer_id=data.customer_id,
        bank_id=portion.primary_bank_id,
        sale_date=data.sale_date,
        type=data.type,
        cash_amount=cash,
        bank_amount=portion.amount,
        credit_amount=credit,
        discount=money(data.discount),
        returns_amount=money(data.returns_amount),
        net_sales=compute_net_sales(
            cash=cash,
            bank=portion.amount,
            credit=credit,
            discount=data.discount,
            returns=data.returns_amount,
        ),
        remarks=data.remarks,
        created_by=actor_user_id,
    )
    db.add(sale)
    db.flush()

    if credit > 0:
        db.add(
            receivable_models.Receivable(
                customer_id=data.customer_id,
                sale_id=sale.id,
                branch_id=data.branch_id,
                amount=credit,
                due_date=data.due_date,
                status=receivable_models.ReceivableStatus.PENDING,
            )
        )
    _post_bank_portion(db, sale, portion)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="sales",
        action="create",
        entity_id=sale.id,
        details=sale.sale_date.isoformat(),
    )
    return sale


def _sync_credit_receivable(db: Session, sale: models.Sale) -> None:
    """
    Keep an untouched credit receivable in line with an edited sale.

    Receivables that already have recoveries are left as they are.
    """
    receivable = (
        db.query(receivable_models.Receivable)
        .filter(receivable_models.Receivable.sale_id == sale.id)
        .order_by(receivable_models.Receivable.id)
        .first()
    )
    credit = money(sale.credit_amount)
    if receivable is None:
        if credit > 0:
            db.add(
                receivable_models.Receivable(
                    customer_id=sale.customer_id,
                    sale_id=sale.id,
                    branch_id=sale.branch_id,
                    amount=credit,
                    status=receivable_models.ReceivableStatus.PENDING,
                )
            )
        return
    if receivable.recoveries:
        return
    if credit > 0:
        receivable.amount = credit
        receivable.customer_id = sale.customer_id
    else:
        db.delete(receivable)


def update_sale(
    db: Session,
    *,
    sale_id: int,
    data: schemas.SaleUpdate,
    actor_user_id: Optional[str],
) -> models.Sale:
    sale = get_sale_or_404(db, sale_id)
    if sale.is_locked:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale is locked.")

    changes = data.model_dump(exclude_unset=True)
    bank_id = changes["bank_id"] if "bank_id" in changes else sale.bank_id
    bank_amount = changes.get("bank_amount")
    splits = data.bank_splits
    if splits is None and "bank_amount" not in changes and "bank_id" not in changes and sale.bank_splits:
        # Untouched bank fields keep the existing split.
        splits = [schemas.BankSplitIn(bank_id=s.bank_id, amount=s.amount) for s in sale.bank_splits]
    portion = resolve_bank_portion(
        db,
        bank_amount=sale.bank_amount if bank_amount is None else bank_amount,
        bank_id=bank_id,
        splits=splits,
    )

    for field in ("sale_date", "type"):
        if changes.get(field) is not None:
            setattr(sale, field, changes[field])
    for field in ("customer_id", "remarks"):
        if field in changes:
            setattr(sale, field, changes[field])
    for field in ("cash_amount", "credit_amount", "discount", "returns_amount"):
        if changes.get(field) is not None:
            setattr(sale, field, money(changes[field]))
    sale.bank_amount = portion.amount
    sale.bank_id = portion.primary_bank_id
    sale.net_sales = compute_net_sales(
        cash=sale.cash_amount,
        bank=sale.bank_amount,
        credit=sale.credit_amount,
        discount=sale.discount,
        returns=sale.returns_amount,
    )

    _remove_bank_postings(db, sale)
    _post_bank_portion(db, sale, portion)
    _sync_credit_receivable(db, sale)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="sales",
        action="update",
        entity_id=sale.id,
        metadata={"fields": sorted(changes)},
    )
    return sale


def set_lock(
    db: Session,
    *,
    sale_id: int,
    lock: bool,
    actor_user_id: Optional[str],
) -> models.Sale:
    sale = get_sale_or_404(db, sale_id)
    sale.is_locked = bool(lock)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="sales",
        action="lock",
        entity_id=f"{sale.id}:{'lock' if lock else 'unlock'}",
    )
    return sale


def _remove_recovery_postings(db: Session, receivable_id: int) -> None:
    (
        db.query(payment_models.Payment)
        .filter(
            payment_models.Payment.reference_type == payment_models.PaymentReferenceType.RECEIVABLE,
            payment_models.Payment.reference_id == receivable_id,
        )
        .delete(synchronize_session=False)
    )
    bank_services.delete_transactions_by_reference(db, reference=f"receivable-{receivable_id}")


def delete_sale(db: Session, *, sale_id: int, actor_user_id: Optional[str]) -> None:
    sale = get_sale_or_404(db, sale_id)
    if sale.is_locked:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale is locked.")

    receivables = (
        db.query(receivable_models.Receivable)
        .filter(receivable_models.Receivable.sale_id == sale.id)
        .all()
    )
    for receivable in receivables:
        _remove_recovery_postings(db, receivable.id)
        db.delete(receivable)
    _remove_bank_postings(db, sale)
    attachment_services.delete_for_owner(db, owner_type=attachment_models.AttachmentOwner.SALE, owner_id=sale.id)
    db.delete(sale)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="sales",
        action="delete",
        entity_id=sale_id,
        metadata={"receivables_removed": len(receivables)},
    )
    logger.info("Sale deleted", extra={"sale_id": sale_id, "receivables_removed": len(receivables)})


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _total(rows: Sequence[schemas.SaleRead]) -> Decimal:
    return money(sum((row.net_sales for row in rows), ZERO))


def daily_report(db: Session, *, report_date: date, branch_id: Optional[int] = None) -> schemas.SaleReport:
    query = _sales_query(db).filter(models.Sale.sale_date == report_date)
    if branch_id:
        query = query.filter(models.Sale.branch_id == branch_id)
    rows = _to_reads(db, query.order_by(models.Sale.branch_id, models.Sale.id).all())
    return schemas.SaleReport(rows=rows, total=_total(rows), report_date=report_date, branch_id=branch_id)


def monthly_report(
    db: Session,
    *,
    month: int,
    year: int,
    branch_id: Optional[int] = None,
) -> schemas.MonthlySalesReport:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month must be 1-12")
    start, end = month_bounds(year, month)
    query = (
        db.query(
            models.Sale.sale_date,
            models.Sale.branch_id,
            branch_models.Branch.name,
            func.coalesce(func.sum(models.Sale.net_sales), 0),
        )
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Sale.branch_id)
        .filter(models.Sale.sale_date >= start, models.Sale.sale_date <= end)
    )
    if branch_id:
        query = query.filter(models.Sale.branch_id == branch_id)
    grouped = (
        query.group_by(models.Sale.sale_date, models.Sale.branch_id, branch_models.Branch.name)
        .order_by(models.Sale.sale_date, models.Sale.branch_id)
        .all()
    )
    rows = [
        schemas.MonthlySalesRow(
            sale_date=sale_date,
            branch_id=row_branch_id,
            branch_name=branch_name,
            daily_total=money(total),
        )
        for sale_date, row_branch_id, branch_name, total in grouped
    ]
    return schemas.MonthlySalesReport(
        month=month,
        year=year,
        date_from=start,
        date_to=end,
        rows=rows,
        total=money(sum((row.daily_total for row in rows), ZERO)),
    )


def date_range_report(
    db: Session,
    *,
    date_from: date,
    date_to: date,
    branch_id: Optional[int] = None,
) -> schemas.SaleReport:
    query = _sales_query(db).filter(models.Sale.sale_date >= date_from, models.Sale.sale_date <= date_to)
    if branch_id:
        query = query.filter(models.Sale.branch_id == branch_id)
    rows = _to_reads(db, query.order_by(models.Sale.sale_date.desc(), models.Sale.branch_id).all())
    return schemas.SaleReport(
        rows=rows,
        total=_total(rows),
        date_from=date_from,
        date_to=date_to,
        branch_id=branch_id,
    )
