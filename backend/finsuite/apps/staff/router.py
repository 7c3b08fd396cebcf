from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_roles
from finsuite.apps.accounts import models as account_models
from finsuite.apps.exports import documents

from . import schemas, services

router = APIRouter(prefix="/api/staff", tags=["staff"])

STAFF_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=List[schemas.StaffRead])
def list_staff(
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_staff(db, branch_id=branch_id)


@router.get("/salary/expense", response_model=schemas.SalaryExpense)
def salary_expense(
    month_year: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if not month_year:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month_year required (YYYY-MM)")
    return services.salary_expense(db, month_year=month_year)


@router.get("/salary/{salary_id}/slip")
def salary_slip(
    salary_id: int,
    slip_format: Optional[str] = Query(None, alias="format"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.salary_slip(db, salary_id=salary_id, slip_format=slip_format)


@router.get("/{staff_id}", response_model=schemas.StaffDetail)
def get_staff(
    staff_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_staff(db, staff_id)


@router.get("/{staff_id}/ledger", response_model=schemas.StaffLedger)
def staff_ledger(
    staff_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.staff_ledger(db, staff_id=staff_id)


@router.get("/{staff_id}/ledger/export")
def export_ledger(
    staff_id: int,
    type: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    kind = documents.export_type(type)
    return services.export_ledger(db, staff_id=staff_id, kind=kind)


@router.post("", response_model=schemas.StaffRead, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: schemas.StaffCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*STAFF_ADMIN_ROLES)),
):
    staff = services.create_staff(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_staff(db, staff.id)


@router.patch("/{staff_id}", response_model=schemas.StaffRead)
def update_staff(
    staff_id: int,
    payload: schemas.StaffUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*STAFF_ADMIN_ROLES)),
):
    services.update_staff(db, staff_id=staff_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_staff(db, staff_id)


@router.post("/{staff_id}/salary", response_model=schemas.SalaryRecordRead, status_code=status.HTTP_201_CREATED)
def process_salary(
    staff_id: int,
    payload: schemas.SalaryProcess,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*STAFF_ADMIN_ROLES)),
):
    record = services.process_salary(db, staff_id=staff_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(record)
    return record
