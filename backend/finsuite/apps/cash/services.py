from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.settings import services as settings_services
from finsuite.utils.dates import today
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)

DUPLICATE_DETAIL = "Cash entry already exists for this branch and date."


def expected_closing(
    *,
    opening: Decimal,
    sales: Decimal,
    expenses: Decimal,
    deposits: Decimal,
    withdrawals: Decimal,
) -> Decimal:
    """Cash that should be in the drawer: money deposited leaves it, withdrawals come back."""
    return money(money(opening) + money(sales) - money(expenses) - money(deposits) + money(withdrawals))


def _apply_totals(entry: models.CashEntry, closing: Optional[Decimal]) -> Decimal:
    expected = expected_closing(
        opening=entry.opening_cash,
        sales=entry.sales_cash,
        expenses=entry.expense_cash,
        deposits=entry.bank_deposit,
        withdrawals=entry.bank_withdrawal,
    )
    if closing is None:
        entry.closing_cash = expected
        entry.difference = ZERO
    else:
        entry.closing_cash = money(closing)
        entry.difference = money(entry.closing_cash - expected)
    return expected


def _entries_query(db: Session):
    return db.query(models.CashEntry, branch_models.Branch.name).outerjoin(
        branch_models.Branch, branch_models.Branch.id == models.CashEntry.branch_id
    )


def _to_reads(rows) -> List[schemas.CashEntryRead]:
    items = []
    for entry, branch_name in rows:
        item = schemas.CashEntryRead.model_validate(entry)
        item.branch_name = branch_name
        items.append(item)
    return items


def list_entries(
    db: Session,
    *,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.CashEntryRead]:
    query = _entries_query(db)
    if branch_id:
        query = query.filter(models.CashEntry.branch_id == branch_id)
    if date_from:
        query = query.filter(models.CashEntry.entry_date >= date_from)
    if date_to:
        query = query.filter(models.CashEntry.entry_date <= date_to)
    rows = query.order_by(models.CashEntry.entry_date.desc(), models.CashEntry.branch_id).all()
    return _to_reads(rows)


def branch_summary(db: Session, *, summary_date: Optional[date] = None) -> schemas.CashBranchSummary:
    when = summary_date or today()
    rows = _to_reads(
        _entries_query(db)
        .filter(models.CashEntry.entry_date == when)
        .order_by(models.CashEntry.branch_id)
        .all()
    )
    return schemas.CashBranchSummary(
        summary_date=when,
        rows=rows,
        total_opening=money(sum((row.opening_cash for row in rows), ZERO)),
        total_closing=money(sum((row.closing_cash for row in rows), ZERO)),
    )


def difference_alerts(db: Session, *, alert_date: Optional[date] = None) -> schemas.CashDifferenceAlerts:
    when = alert_date or today()
    rows = (
        _entries_query(db)
        .filter(models.CashEntry.entry_date == when, models.CashEntry.difference != 0)
        .order_by(func.abs(models.CashEntry.difference).desc())
        .all()
    )
    return schemas.CashDifferenceAlerts(alert_date=when, rows=_to_reads(rows))


def _get_entry(db: Session, branch_id: int, entry_date: date) -> Optional[models.CashEntry]:
    return (
        db.query(models.CashEntry)
        .filter(models.CashEntry.branch_id == branch_id, models.CashEntry.entry_date == entry_date)
        .first()
    )


def get_entry_or_404(db: Session, *, branch_id: int, entry_date: date) -> models.CashEntry:
    entry = _get_entry(db, branch_id, entry_date)
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cash entry not found.")
    return entry


def get_entry(db: Session, *, branch_id: int, entry_date: date) -> schemas.CashEntryRead:
    entry = get_entry_or_404(db, branch_id=branch_id, entry_date=entry_date)
    branch_name = db.query(branch_models.Branch.name).filter(branch_models.Branch.id == entry.branch_id).scalar()
    return _to_reads([(entry, branch_name)])[0]


def _result(db: Session, entry: models.CashEntry, expected: Decimal) -> schemas.CashEntryResult:
    read = get_entry(db, branch_id=entry.branch_id, entry_date=entry.entry_date)
    return schemas.CashEntryResult(**read.model_dump(), expected_closing=expected)


def create_entry(
    db: Session,
    *,
    data: schemas.CashEntryCreate,
    actor_user_id: Optional[str],
) -> schemas.CashEntryResult:
    if not db.query(branch_models.Branch.id).filter(branch_models.Branch.id == data.branch_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch not found.")
    if _get_entry(db, data.branch_id, data.entry_date):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=DUPLICATE_DETAIL)

    voucher = settings_services.next_voucher_number(db)
    entry = models.CashEntry(
        branch_id=data.branch_id,
        entry_date=data.entry_date,
        opening_cash=money(data.opening_cash),
        sales_cash=money(data.sales_cash),
        expense_cash=money(data.expense_cash),
        bank_deposit=money(data.bank_deposit),
        bank_withdrawal=money(data.bank_withdrawal),
        remarks=settings_services.append_voucher_note(data.remarks, voucher),
    )
    expected = _apply_totals(entry, data.closing_cash)
    db.add(entry)
    db.flush()

    if entry.difference != 0:
        logger.info(
            "Cash difference recorded",
            extra={"branch_id": entry.branch_id, "entry_date": entry.entry_date.isoformat(), "difference": str(entry.difference)},
        )
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="cash",
        action="create",
        entity_id=entry.id,
        details=f"{entry.entry_date.isoformat()} ({voucher})",
    )
    return _result(db, entry, expected)


def update_entry(
    db: Session,
    *,
    branch_id: int,
    entry_date: date,
    data: schemas.CashEntryUpdate,
    actor_user_id: Optional[str],
) -> schemas.CashEntryResult:
    entry = get_entry_or_404(db, branch_id=branch_id, entry_date=entry_date)
    changes = data.model_dump(exclude_unset=True)
    for field in ("opening_cash", "sales_cash", "expense_cash", "bank_deposit", "bank_withdrawal"):
        if field in changes:
            setattr(entry, field, money(changes[field]))
    if "remarks" in changes:
        entry.remarks = changes["remarks"]
    closing = changes.get("closing_cash")
    expected = _apply_totals(entry, money(entry.closing_cash) if closing is None else closing)
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="cash",
        action="update",
        entity_id=f"{branch_id}/{entry_date.isoformat()}",
        metadata={"fields": sorted(changes)},
    )
    return _result(db, entry, expected)
