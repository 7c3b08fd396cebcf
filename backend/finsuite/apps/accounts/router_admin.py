# backend/finsuite/apps/accounts/router_admin.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import require_roles
from finsuite.apps.audit import schemas as audit_schemas
from finsuite.apps.audit import services as audit_services

from . import models, schemas, services

router = APIRouter(prefix="/api/auth", tags=["accounts_admin"])

USER_ADMIN_ROLES = [models.AccountRole.FINANCE_MANAGER]
USER_READ_ROLES = [models.AccountRole.FINANCE_MANAGER, models.AccountRole.AUDITOR]


@router.get("/users", response_model=List[schemas.UserListItem])
def list_users(
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(require_roles(*USER_READ_ROLES)),
):
    return services.list_users(db)


@router.post(
    "/users",
    response_model=schemas.UserRead,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_roles(*USER_ADMIN_ROLES)),
):
    user = services.create_user(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(user)
    return user


@router.patch("/users/{user_id}", response_model=schemas.UserRead)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_roles(*USER_ADMIN_ROLES)),
):
    user = services.update_user(db, user_id=user_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(user)
    return user


@router.get("/login-history", response_model=List[schemas.LoginHistoryRead])
def login_history(
    limit: int = Query(100, ge=1),
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(require_roles(*USER_READ_ROLES)),
):
    return services.list_login_history(db, limit=limit)


@router.get("/activity-logs", response_model=List[audit_schemas.ActivityLogRead])
def activity_logs(
    limit: int = Query(100, ge=1),
    module: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: models.User = Depends(require_roles(*USER_READ_ROLES)),
):
    return audit_services.list_activity_logs(db, limit=limit, module=module)
