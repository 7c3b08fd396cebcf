from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

PURCHASE_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("/suppliers", response_model=List[schemas.SupplierRead])
def list_suppliers(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_suppliers(db)


@router.post("/suppliers", response_model=schemas.SupplierRead, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: schemas.SupplierCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    supplier = services.create_supplier(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.patch("/suppliers/{supplier_id}", response_model=schemas.SupplierRead)
def update_supplier(
    supplier_id: int,
    payload: schemas.SupplierUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    supplier = services.update_supplier(db, supplier_id=supplier_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.get("/suppliers/{supplier_id}/ledger", response_model=schemas.SupplierLedger)
def supplier_ledger(
    supplier_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.supplier_ledger(db, supplier_id=supplier_id)


@router.get("/due-reminders", response_model=schemas.DueReminders)
def due_reminders(
    days: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.due_reminders(db, days=days)


@router.get("", response_model=List[schemas.PurchaseRead])
def list_purchases(
    supplier_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_purchases(
        db,
        supplier_id=supplier_id,
        branch_id=branch_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/reports/daily", response_model=schemas.PurchaseReport)
def daily_report(
    report_date: Optional[date] = Query(None, alias="date"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if report_date is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date required")
    return services.daily_report(db, report_date=report_date, branch_id=branch_id)


@router.get("/reports/monthly", response_model=schemas.MonthlyPurchaseReport)
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


@router.get("/reports/supplier-wise", response_model=List[schemas.SupplierWiseRow])
def supplier_wise_report(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.supplier_wise_report(db, date_from=date_from, date_to=date_to)


@router.get("/{purchase_id}", response_model=schemas.PurchaseRead)
def get_purchase(
    purchase_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_purchase(db, purchase_id)


@router.post("", response_model=schemas.PurchaseRead, status_code=status.HTTP_201_CREATED)
def create_purchase(
    payload: schemas.PurchaseCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    purchase = services.create_purchase(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_purchase(db, purchase.id)


@router.patch("/{purchase_id}", response_model=schemas.PurchaseRead)
def update_purchase(
    purchase_id: int,
    payload: schemas.PurchaseUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    services.update_purchase(db, purchase_id=purchase_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_purchase(db, purchase_id)


@router.post("/{purchase_id}/pay", response_model=schemas.PurchasePayResult)
def pay_purchase(
    purchase_id: int,
    payload: schemas.PurchasePay,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.pay_purchase(db, purchase_id=purchase_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.delete("/{purchase_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_purchase(
    purchase_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*PURCHASE_ADMIN_ROLES)),
):
    services.delete_purchase(db, purchase_id=purchase_id, actor_user_id=current_user.id)
    db.commit()
