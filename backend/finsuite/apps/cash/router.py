from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/cash", tags=["cash"])


@router.get("", response_model=List[schemas.CashEntryRead])
def list_entries(
    branch_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_entries(db, branch_id=branch_id, date_from=date_from, date_to=date_to)


@router.get("/branch-summary", response_model=schemas.CashBranchSummary)
def branch_summary(
    summary_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.branch_summary(db, summary_date=summary_date)


@router.get("/difference-alerts", response_model=schemas.CashDifferenceAlerts)
def difference_alerts(
    alert_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.difference_alerts(db, alert_date=alert_date)


@router.get("/{branch_id}/{entry_date}", response_model=schemas.CashEntryRead)
def get_entry(
    branch_id: int,
    entry_date: date,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_entry(db, branch_id=branch_id, entry_date=entry_date)


@router.post("", response_model=schemas.CashEntryResult, status_code=status.HTTP_201_CREATED)
def create_entry(
    payload: schemas.CashEntryCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.create_entry(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.patch("/{branch_id}/{entry_date}", response_model=schemas.CashEntryResult)
def update_entry(
    branch_id: int,
    entry_date: date,
    payload: schemas.CashEntryUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.update_entry(
        db,
        branch_id=branch_id,
        entry_date=entry_date,
        data=payload,
        actor_user_id=current_user.id,
    )
    db.commit()
    return result
