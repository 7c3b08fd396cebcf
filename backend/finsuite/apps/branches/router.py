from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_roles
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/branches", tags=["branches"])

BRANCH_WRITE_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=List[schemas.BranchRead])
def list_branches(
    active: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_branches(db, active_only=active == "1")


@router.get("/{branch_id}", response_model=schemas.BranchRead)
def get_branch(
    branch_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_branch(db, branch_id)


@router.get("/{branch_id}/performance", response_model=schemas.BranchPerformance)
def branch_performance(
    branch_id: int,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.branch_performance(db, branch_id=branch_id, date_from=date_from, date_to=date_to)


@router.post("", response_model=schemas.BranchRead, status_code=status.HTTP_201_CREATED)
def create_branch(
    payload: schemas.BranchCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*BRANCH_WRITE_ROLES)),
):
    branch = services.create_branch(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_branch(db, branch.id)


@router.patch("/{branch_id}", response_model=schemas.BranchRead)
def update_branch(
    branch_id: int,
    payload: schemas.BranchUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*BRANCH_WRITE_ROLES)),
):
    services.update_branch(db, branch_id=branch_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_branch(db, branch_id)


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_branch(
    branch_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(account_models.AccountRole.SUPER_ADMIN)),
):
    services.delete_branch(db, branch_id=branch_id, actor_user_id=current_user.id)
    db.commit()
