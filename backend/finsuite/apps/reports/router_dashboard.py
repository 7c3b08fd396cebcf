from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_read_db
from finsuite.security import get_current_active_user
from finsuite.apps.accounts import models as account_models

from . import exports, schemas, services

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("", response_model=schemas.Dashboard)
def dashboard(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.dashboard(db)


@router.get("/reports/daily-combined", response_model=schemas.DailyCombined)
def daily_combined(
    report_date: Optional[date] = Query(None, alias="date"),
    branch_id: Optional[int] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if report_date is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date required")
    return services.daily_combined(db, report_date=report_date, branch_id=branch_id)


@router.get("/reports/branch-summary", response_model=schemas.BranchSummary)
def branch_summary(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.branch_summary(db, date_from=date_from, date_to=date_to)


@router.get("/export")
def export_report(
    type: Optional[str] = None,
    module: Optional[str] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    branch_id: Optional[int] = None,
    report_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return exports.export_report(
        db,
        kind=type,
        module=module,
        date_from=date_from,
        date_to=date_to,
        branch_id=branch_id,
        report_date=report_date,
    )
