from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from finsuite.apps.attachments import models as attachment_models
from finsuite.apps.attachments import services as attachment_services
from finsuite.apps.audit import services as audit_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.sales import models as sale_models
from finsuite.apps.settings import services as settings_services
from finsuite.utils.dates import month_bounds
from finsuite.utils.money import ZERO, money, percentage

from . import models, schemas

logger = logging.getLogger(__name__)

# Seeded on first start; the fixed ones recur every month.
DEFAULT_CATEGORIES = (
    ("Rent", models.ExpenseType.FIXED),
    ("Utilities", models.ExpenseType.VARIABLE),
    ("Salaries", models.ExpenseType.FIXED),
    ("Office Supplies", models.ExpenseType.VARIABLE),
    ("Marketing", models.ExpenseType.VARIABLE),
    ("Miscellaneous", models.ExpenseType.VARIABLE),
)


def ensure_default_categories(db: Session) -> int:
    existing = {name for (name,) in db.query(models.ExpenseCategory.name).all()}
    created = 0
    for name, expense_type in DEFAULT_CATEGORIES:
        if name in existing:
            continue
        db.add(models.ExpenseCategory(name=name, type=expense_type))
        created += 1
    if created:
        db.flush()
    return created


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


def list_categories(db: Session) -> List[models.ExpenseCategory]:
    return db.query(models.ExpenseCategory).order_by(models.ExpenseCategory.name).all()


def get_category_or_404(db: Session, category_id: int) -> models.ExpenseCategory:
    category = db.query(models.ExpenseCategory).filter(models.ExpenseCategory.id == category_id).first()
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found.")
    return category


def _ensure_unique_name(db: Session, name: str, *, exclude_id: Optional[int] = None) -> None:
    query = db.query(models.ExpenseCategory.id).filter(func.lower(models.ExpenseCategory.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(models.ExpenseCategory.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists.")


def create_category(db: Session, *, data: schemas.CategoryCreate, actor_user_id: Optional[str]) -> models.ExpenseCategory:
    name = data.name.strip()
    _ensure_unique_name(db, name)
    category = models.ExpenseCategory(name=name, type=data.type)
    db.add(category)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expense_categories",
        action="create",
        entity_id=category.id,
        details=name,
    )
    return category


def update_category(
    db: Session,
    *,
    category_id: int,
    data: schemas.CategoryUpdate,
    actor_user_id: Optional[str],
) -> models.ExpenseCategory:
    category = get_category_or_404(db, category_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(db, changes["name"], exclude_id=category.id)
    for field, value in changes.items():
        if value is not None:
            setattr(category, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expense_categories",
        action="update",
        entity_id=category.id,
        metadata={"fields": sorted(changes)},
    )
    return category


def delete_category(db: Session, *, category_id: int, actor_user_id: Optional[str]) -> None:
    category = get_category_or_404(db, category_id)
    in_use = db.query(models.Expense.id).filter(models.Expense.category_id == category.id).first()
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Category has expenses. Move them to another category first.",
        )
    db.delete(category)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expense_categories",
        action="delete",
        entity_id=category_id,
    )


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------


def _expenses_query(db: Session):
    return (
        db.query(
            models.Expense,
            models.ExpenseCategory.name,
            models.ExpenseCategory.type,
            branch_models.Branch.name,
        )
        .outerjoin(models.ExpenseCategory, models.ExpenseCategory.id == models.Expense.category_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Expense.branch_id)
    )


def _to_reads(rows) -> List[schemas.ExpenseRead]:
    items = []
    for expense, category_name, category_type, branch_name in rows:
        item = schemas.ExpenseRead.model_validate(expense)
        item.category_name = category_name
        item.category_type = category_type
        item.branch_name = branch_name
        items.append(item)
    return items


def list_expenses(
    db: Session,
    *,
    branch_id: Optional[int] = None,
    category_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    expense_type: Optional[models.ExpenseType] = None,
) -> List[schemas.ExpenseRead]:
    query = _expenses_query(db)
    if branch_id:
        query = query.filter(models.Expense.branch_id == branch_id)
    if category_id:
        query = query.filter(models.Expense.category_id == category_id)
    if date_from:
        query = query.filter(models.Expense.expense_date >= date_from)
    if date_to:
        query = query.filter(models.Expense.expense_date <= date_to)
    if expense_type:
        query = query.filter(models.Expense.type == expense_type)
    return _to_reads(query.order_by(models.Expense.expense_date.desc(), models.Expense.id.desc()).all())


def get_expense_or_404(db: Session, expense_id: int) -> models.Expense:
    expense = db.query(models.Expense).filter(models.Expense.id == expense_id).first()
    if not expense:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
    return expense


def get_expense(db: Session, expense_id: int) -> schemas.ExpenseDetail:
    rows = _expenses_query(db).filter(models.Expense.id == expense_id).all()
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
    attachments = attachment_services.list_attachments(
        db, owner_type=attachment_models.AttachmentOwner.EXPENSE, owner_id=expense_id
    )
    return schemas.ExpenseDetail(**_to_reads(rows)[0].model_dump(), attachments=attachments)


def _ensure_branch(db: Session, branch_id: int) -> None:
    if not db.query(branch_models.Branch.id).filter(branch_models.Branch.id == branch_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch not found.")


def _ensure_category(db: Session, category_id: int) -> None:
    if not db.query(models.ExpenseCategory.id).filter(models.ExpenseCategory.id == category_id).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category not found.")


def create_expense(db: Session, *, data: schemas.ExpenseCreate, actor_user_id: Optional[str]) -> models.Expense:
    amount = money(data.amount)
    if amount <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    _ensure_branch(db, data.branch_id)
    _ensure_category(db, data.category_id)
    voucher = settings_services.next_voucher_number(db)
    expense = models.Expense(
        branch_id=data.branch_id,
        category_id=data.category_id,
        amount=amount,
        expense_date=data.expense_date,
        type=data.type,
        is_recurring=data.is_recurring,
        remarks=settings_services.append_voucher_note(data.remarks, voucher),
        status=data.status or "approved",
        created_by=actor_user_id,
    )
    db.add(expense)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expenses",
        action="create",
        entity_id=expense.id,
        details=str(amount),
        metadata={"voucher": voucher},
    )
    return expense


def update_expense(
    db: Session,
    *,
    expense_id: int,
    data: schemas.ExpenseUpdate,
    actor_user_id: Optional[str],
) -> models.Expense:
    expense = get_expense_or_404(db, expense_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    if "amount" in changes:
        changes["amount"] = money(changes["amount"])
        if changes["amount"] <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid amount.")
    if changes.get("branch_id"):
        _ensure_branch(db, changes["branch_id"])
    if changes.get("category_id"):
        _ensure_category(db, changes["category_id"])
    for field, value in changes.items():
        if value is None and field not in ("remarks",):
            continue
        setattr(expense, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expenses",
        action="update",
        entity_id=expense.id,
        metadata={"fields": sorted(changes)},
    )
    return expense


def delete_expense(db: Session, *, expense_id: int, actor_user_id: Optional[str]) -> None:
    expense = get_expense_or_404(db, expense_id)
    attachment_services.delete_for_owner(
        db, owner_type=attachment_models.AttachmentOwner.EXPENSE, owner_id=expense.id
    )
    db.delete(expense)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="expenses",
        action="delete",
        entity_id=expense_id,
        critical=True,
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def expenses_total(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    branch_id: Optional[int] = None,
) -> Decimal:
    query = db.query(func.coalesce(func.sum(models.Expense.amount), 0))
    if date_from:
        query = query.filter(models.Expense.expense_date >= date_from)
    if date_to:
        query = query.filter(models.Expense.expense_date <= date_to)
    if branch_id:
        query = query.filter(models.Expense.branch_id == branch_id)
    return money(query.scalar())


def daily_report(db: Session, *, report_date: date, branch_id: Optional[int] = None) -> schemas.ExpenseReport:
    query = _expenses_query(db).filter(models.Expense.expense_date == report_date)
    if branch_id:
        query = query.filter(models.Expense.branch_id == branch_id)
    rows = _to_reads(query.order_by(models.Expense.branch_id, models.Expense.category_id).all())
    return schemas.ExpenseReport(
        report_date=report_date,
        branch_id=branch_id,
        rows=rows,
        total=money(sum((row.amount for row in rows), ZERO)),
    )


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month must be 1-12")


def monthly_report(
    db: Session,
    *,
    month: int,
    year: int,
    branch_id: Optional[int] = None,
) -> schemas.MonthlyExpenseReport:
    _check_month(month)
    start, end = month_bounds(year, month)
    query = (
        db.query(
            models.Expense.expense_date,
            models.Expense.branch_id,
            branch_models.Branch.name,
            func.coalesce(func.sum(models.Expense.amount), 0),
        )
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Expense.branch_id)
        .filter(models.Expense.expense_date >= start, models.Expense.expense_date <= end)
    )
    if branch_id:
        query = query.filter(models.Expense.branch_id == branch_id)
    grouped = (
        query.group_by(models.Expense.expense_date, models.Expense.branch_id, branch_models.Branch.name)
        .order_by(models.Expense.expense_date, models.Expense.branch_id)
        .all()
    )
    rows = [
        schemas.MonthlyExpenseRow(
            expense_date=expense_date,
            branch_id=row_branch_id,
            branch_name=branch_name,
            daily_total=money(total),
        )
        for expense_date, row_branch_id, branch_name, total in grouped
    ]
    return schemas.MonthlyExpenseReport(
        month=month,
        year=year,
        date_from=start,
        date_to=end,
        rows=rows,
        total=money(sum((row.daily_total for row in rows), ZERO)),
    )


def category_wise_report(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    branch_id: Optional[int] = None,
) -> List[schemas.CategoryTotal]:
    """Every category with its spend in the window; unused categories report 0."""
    join_on = [models.Expense.category_id == models.ExpenseCategory.id]
    if date_from:
        join_on.append(models.Expense.expense_date >= date_from)
    if date_to:
        join_on.append(models.Expense.expense_date <= date_to)
    if branch_id:
        join_on.append(models.Expense.branch_id == branch_id)
    total = func.coalesce(func.sum(models.Expense.amount), 0)
    rows = (
        db.query(models.ExpenseCategory.id, models.ExpenseCategory.name, models.ExpenseCategory.type, total.label("total"))
        .outerjoin(models.Expense, and_(*join_on))
        .group_by(models.ExpenseCategory.id, models.ExpenseCategory.name, models.ExpenseCategory.type)
        .order_by(total.desc(), models.ExpenseCategory.name)
        .all()
    )
    return [
        schemas.CategoryTotal(id=row.id, name=row.name, type=row.type, total=money(row.total))
        for row in rows
    ]


def expense_vs_sales(
    db: Session,
    *,
    month: int,
    year: int,
    branch_id: Optional[int] = None,
) -> schemas.ExpenseVsSales:
    _check_month(month)
    start, end = month_bounds(year, month)
    expense_total = expenses_total(db, date_from=start, date_to=end, branch_id=branch_id)
    sales_query = db.query(func.coalesce(func.sum(sale_models.Sale.net_sales), 0)).filter(
        sale_models.Sale.sale_date >= start,
        sale_models.Sale.sale_date <= end,
    )
    if branch_id:
        sales_query = sales_query.filter(sale_models.Sale.branch_id == branch_id)
    sales_total = money(sales_query.scalar())
    return schemas.ExpenseVsSales(
        month=month,
        year=year,
        date_from=start,
        date_to=end,
        expense_total=expense_total,
        sales_total=sales_total,
        expense_ratio=percentage(expense_total, sales_total),
    )
