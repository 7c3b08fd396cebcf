from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_roles
from finsuite.apps.accounts import models as account_models

from . import backup, branding, schemas, services

router = APIRouter(prefix="/api/settings", tags=["settings"])

SETTINGS_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=Dict[str, Optional[str]])
def list_settings(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_settings(db)


@router.get("/company", response_model=schemas.CompanyProfileRead)
def company_profile(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return branding.get_company_profile(db).as_dict()


@router.get("/backup")
def download_backup(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(require_roles(*SETTINGS_ADMIN_ROLES)),
):
    return backup.backup_response(db)


@router.post("/restore", response_model=schemas.RestoreResult)
def restore_backup(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*SETTINGS_ADMIN_ROLES)),
):
    result = backup.restore_backup(db, payload=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.post("/bulk", response_model=Dict[str, Optional[str]])
def bulk_update(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*SETTINGS_ADMIN_ROLES)),
):
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Object of key-value pairs required",
        )
    settings = services.bulk_update(db, values=payload, actor_user_id=current_user.id)
    db.commit()
    return settings


@router.get("/{key}", response_model=schemas.SettingRead)
def get_setting(
    key: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_setting_or_404(db, key)


@router.patch("/{key}", response_model=schemas.SettingRead)
def update_setting(
    key: str,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*SETTINGS_ADMIN_ROLES)),
):
    if "value" not in payload:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="value required")
    row = services.set_setting(db, key=key, value=payload["value"], actor_user_id=current_user.id)
    db.commit()
    db.refresh(row)
    return row
