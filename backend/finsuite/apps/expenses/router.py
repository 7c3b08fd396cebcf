from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models

from . import models, schemas, services

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

EXPENSE_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("/categories", response_model=List[schemas.CategoryRead])
def list_categories(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_categories(db)


@router.post("/categories", response_model=schemas.CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*EXPENSE_ADMIN_ROLES)),
):
    category = services.create_category(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(category)
    return category


@router.patch("/categories/{category_id}", response_model=schemas.CategoryRead)
def update_category(
    category_id: int,
    payload: schemas.CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*EXPENSE_ADMIN_ROLES)),
):
    category = services.update_category(db, category_id=category_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(category)
    return category


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*EXPENSE_ADMIN_ROLES)),
):
    services.delete_category(db, category_id=category_id, actor_user_id=current_user.id)
    db.commit()


@router.get("", response_model=List[schemas.ExpenseRead])
def list_expenses(
    branch_id: Optional[int] = None,
    category_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    type: Optional[models.ExpenseType] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_expenses(
        db,
        branch_id=branch_id,
        category_id=category_id,
        date_from=date_from,
        date_to=date_to,
        expense_type=type,
    )


@router.get("/reports/daily", response_model=schemas.ExpenseReport)
def daily_report(
    report_date: Optional[date] = Query(None, alias="date"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if report_date is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date required")
    return services.daily_report(db, report_date=report_date, branch_id=branch_id)


@router.get("/reports/monthly", response_model=schemas.MonthlyExpenseReport)
def monthly_report(
    month: Optional[int] = None,
    year: Optional[int] = None,
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if not month or not year:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month and year required")
    return services.monthly_report(db, month=month, year=year, branch_id=branch_id)


@router.get("/reports/category-wise", response_model=List[schemas.CategoryTotal])
def category_wise_report(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.category_wise_report(db, date_from=date_from, date_to=date_to, branch_id=branch_id)


@router.get("/reports/expense-vs-sales", response_model=schemas.ExpenseVsSales)
def expense_vs_sales(
    month: Optional[int] = None,
    year: Optional[int] = None,
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if not month or not year:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month and year required")
    return services.expense_vs_sales(db, month=month, year=year, branch_id=branch_id)


@router.get("/{expense_id}", response_model=schemas.ExpenseDetail)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_expense(db, expense_id)


@router.post("", response_model=schemas.ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: schemas.ExpenseCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    expense = services.create_expense(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_expense(db, expense.id)


@router.patch("/{expense_id}", response_model=schemas.ExpenseRead)
def update_expense(
    expense_id: int,
    payload: schemas.ExpenseUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    services.update_expense(db, expense_id=expense_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_expense(db, expense_id)


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*EXPENSE_ADMIN_ROLES)),
):
    services.delete_expense(db, expense_id=expense_id, actor_user_id=current_user.id)
    db.commit()
