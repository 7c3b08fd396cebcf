from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_read_db
from finsuite.security import get_current_active_user
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/pl", tags=["profit_and_loss"])

RANGE_REQUIRED_DETAIL = "from and to required"


@router.get("/branch/{branch_id}", response_model=schemas.ProfitAndLoss)
def branch_profit_and_loss(
    branch_id: int,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if date_from is None or date_to is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=RANGE_REQUIRED_DETAIL)
    return services.branch_profit_and_loss(db, branch_id=branch_id, date_from=date_from, date_to=date_to)


@router.get("/consolidated", response_model=schemas.ProfitAndLoss)
def consolidated_profit_and_loss(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    if date_from is None or date_to is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=RANGE_REQUIRED_DETAIL)
    return services.consolidated_profit_and_loss(db, date_from=date_from, date_to=date_to)


@router.get("/monthly-comparison", response_model=schemas.MonthlyComparison)
def monthly_comparison(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.monthly_comparison(db, year=year)


@router.get("/yearly-summary", response_model=schemas.YearlySummary)
def yearly_summary(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.yearly_summary(db, year=year)
