from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models

from . import models, schemas, services

router = APIRouter(prefix="/api/sales", tags=["sales"])

SALES_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=List[schemas.SaleRead])
def list_sales(
    branch_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    type: Optional[models.SaleType] = None,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_sales(
        db,
        branch_id=branch_id,
        date_from=date_from,
        date_to=date_to,
        sale_type=type,
        limit=limit,
    )


@router.get("/reports/daily", response_model=schemas.SaleReport)
def daily_report(
    report_date: Optional[date] = Query(None, alias="date"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if report_date is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date required")
    return services.daily_report(db, report_date=report_date, branch_id=branch_id)


@router.get("/reports/monthly", response_model=schemas.MonthlySalesReport)
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


@router.get("/reports/date-range", response_model=schemas.SaleReport)
def date_range_report(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if not date_from or not date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="from and to required")
    return services.date_range_report(db, date_from=date_from, date_to=date_to, branch_id=branch_id)


@router.get("/{sale_id}", response_model=schemas.SaleDetail)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_sale(db, sale_id)


@router.post("", response_model=schemas.SaleDetail, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: schemas.SaleCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    sale = services.create_sale(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_sale(db, sale.id)


@router.patch("/{sale_id}", response_model=schemas.SaleDetail)
def update_sale(
    sale_id: int,
    payload: schemas.SaleUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    services.update_sale(db, sale_id=sale_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_sale(db, sale_id)


@router.post("/{sale_id}/lock", response_model=schemas.SaleDetail)
def lock_sale(
    sale_id: int,
    payload: schemas.SaleLock,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*SALES_ADMIN_ROLES)),
):
    services.set_lock(db, sale_id=sale_id, lock=payload.lock, actor_user_id=current_user.id)
    db.commit()
    return services.get_sale(db, sale_id)


@router.delete("/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*SALES_ADMIN_ROLES)),
):
    services.delete_sale(db, sale_id=sale_id, actor_user_id=current_user.id)
    db.commit()
