from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from finsuite.apps.accounts import models as account_models
from finsuite.apps.audit import services as audit_services
from finsuite.apps.expenses import models as expense_models
from finsuite.apps.sales import models as sales_models
from finsuite.utils.money import money

from . import models, schemas


def _to_read(branch: models.Branch, manager_name: Optional[str], manager_email: Optional[str]) -> schemas.BranchRead:
    item = schemas.BranchRead.model_validate(branch)
    item.manager_name = manager_name
    item.manager_email = manager_email
    return item


def _branch_query(db: Session):
    return (
        db.query(models.Branch, account_models.User.name, account_models.User.email)
        .outerjoin(account_models.User, account_models.User.id == models.Branch.manager_user_id)
    )


def list_branches(db: Session, *, active_only: bool = False) -> List[schemas.BranchRead]:
    query = _branch_query(db)
    if active_only:
        query = query.filter(models.Branch.is_active.is_(True))
    rows = query.order_by(func.coalesce(models.Branch.code, models.Branch.name)).all()
    return [_to_read(*row) for row in rows]


def get_branch_or_404(db: Session, branch_id: int) -> models.Branch:
    branch = db.query(models.Branch).filter(models.Branch.id == branch_id).first()
    if not branch:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Branch not found.")
    return branch


def get_branch(db: Session, branch_id: int) -> schemas.BranchRead:
    row = _branch_query(db).filter(models.Branch.id == branch_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Branch not found.")
    return _to_read(*row)


def branch_performance(
    db: Session,
    *,
    branch_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> schemas.BranchPerformance:
    sales_query = db.query(
        func.coalesce(func.sum(sales_models.Sale.net_sales), 0),
        func.count(sales_models.Sale.id),
    ).filter(sales_models.Sale.branch_id == branch_id)
    expense_query = db.query(func.coalesce(func.sum(expense_models.Expense.amount), 0)).filter(
        expense_models.Expense.branch_id == branch_id
    )
    if date_from:
        sales_query = sales_query.filter(sales_models.Sale.sale_date >= date_from)
        expense_query = expense_query.filter(expense_models.Expense.expense_date >= date_from)
    if date_to:
        sales_query = sales_query.filter(sales_models.Sale.sale_date <= date_to)
        expense_query = expense_query.filter(expense_models.Expense.expense_date <= date_to)

    total_sales, count = sales_query.one()
    return schemas.BranchPerformance(
        total_sales=money(total_sales),
        sales_count=int(count or 0),
        total_expenses=money(expense_query.scalar()),
    )


def _ensure_code_available(db: Session, code: Optional[str], *, exclude_id: Optional[int] = None) -> None:
    if not code:
        return
    query = db.query(models.Branch.id).filter(models.Branch.code == code)
    if exclude_id is not None:
        query = query.filter(models.Branch.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch code already exists.")


def create_branch(
    db: Session,
    *,
    data: schemas.BranchCreate,
    actor_user_id: Optional[str],
) -> models.Branch:
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required.")
    code = (data.code or "").strip() or None
    _ensure_code_available(db, code)

    branch = models.Branch(
        code=code,
        name=name,
        location=data.location,
        manager_user_id=data.manager_user_id,
        opening_date=data.opening_date,
        closing_date=data.closing_date,
        opening_cash=money(data.opening_cash),
        is_active=data.is_active,
    )
    db.add(branch)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="branches",
        action="create",
        entity_id=branch.id,
        details=branch.name,
    )
    return branch


def update_branch(
    db: Session,
    *,
    branch_id: int,
    data: schemas.BranchUpdate,
    actor_user_id: Optional[str],
) -> models.Branch:
    branch = get_branch_or_404(db, branch_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates provided.")
    if "code" in changes:
        changes["code"] = (changes["code"] or "").strip() or None
        _ensure_code_available(db, changes["code"], exclude_id=branch.id)
    if "name" in changes and not (changes["name"] or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required.")
    if "opening_cash" in changes:
        changes["opening_cash"] = money(changes["opening_cash"])
    for field, value in changes.items():
        setattr(branch, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="branches",
        action="update",
        entity_id=branch.id,
        metadata={"fields": sorted(changes)},
    )
    return branch


def delete_branch(db: Session, *, branch_id: int, actor_user_id: Optional[str]) -> None:
    branch = get_branch_or_404(db, branch_id)
    in_use = (
        db.query(sales_models.Sale.id).filter(sales_models.Sale.branch_id == branch.id).first()
        or db.query(expense_models.Expense.id).filter(expense_models.Expense.branch_id == branch.id).first()
    )
    if in_use:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Branch has sales or expenses; deactivate it instead.",
        )
    db.delete(branch)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="branches",
        action="delete",
        entity_id=branch_id,
    )
