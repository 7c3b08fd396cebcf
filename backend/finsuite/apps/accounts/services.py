# backend/finsuite/apps/accounts/services.py

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from finsuite import security
from finsuite.apps.audit import services as audit_services
from finsuite.apps.branches import models as branch_models

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@finance.com")
DEFAULT_USER_PASSWORD = "user123"
MAX_HISTORY_LIMIT = 500


def _normalise_email(value: str) -> str:
    return value.strip().lower()


def _login_lookup(identifier: str) -> str:
    email = _normalise_email(identifier)
    if email == "admin":
        return _normalise_email(DEFAULT_ADMIN_EMAIL)
    return email


def get_user_by_email(db: Session, *, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .filter(models.User.email == _normalise_email(email))
        .first()
    )


def get_user_or_404(db: Session, user_id: str) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
    return user


def authenticate_user(
    db: Session,
    *,
    login_req: schemas.LoginRequest,
    ip: Optional[str],
    user_agent: Optional[str],
) -> Optional[models.User]:
    """
    Password login by email; the identifier "admin" maps to the default
    administrator account. Returns None for unknown, inactive or
    wrong-password accounts.
    """
    user = (
        db.query(models.User)
        .filter(
            models.User.email == _login_lookup(login_req.email),
            models.User.is_active.is_(True),
        )
        .first()
    )
    if not user or not security.verify_password(login_req.password, user.hashed_password):
        logger.info("Login failed", extra={"identifier": login_req.email, "ip": ip})
        return None

    user.last_login_at = datetime.utcnow()
    db.add(models.LoginHistory(user_id=user.id, ip=ip, user_agent=user_agent or ""))
    db.flush()
    return user


def issue_access_token_for_user(user: models.User) -> Tuple[str, int]:
    expires_delta = timedelta(minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = security.create_access_token(
        data={"sub": user.id, "role": user.role.value},
        expires_delta=expires_delta,
    )
    return token, int(expires_delta.total_seconds())


def list_roles() -> List[schemas.RoleRead]:
    return [
        schemas.RoleRead(
            code=role,
            name=name,
            permissions=permissions.split(","),
            read_only=role == models.AccountRole.AUDITOR,
        )
        for role, (name, permissions) in models.ROLE_CATALOGUE.items()
    ]


def list_users(db: Session) -> List[schemas.UserListItem]:
    rows = (
        db.query(models.User, branch_models.Branch.name)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.User.branch_id)
        .order_by(models.User.created_at, models.User.email)
        .all()
    )
    items = []
    for user, branch_name in rows:
        item = schemas.UserListItem.model_validate(user)
        item.branch_name = branch_name
        items.append(item)
    return items


def create_user(
    db: Session,
    *,
    data: schemas.UserCreate,
    actor_user_id: Optional[str],
) -> models.User:
    email = _normalise_email(str(data.email))
    if get_user_by_email(db, email=email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already exists.")

    user = models.User(
        email=email,
        name=data.name.strip(),
        hashed_password=security.get_password_hash(data.password or DEFAULT_USER_PASSWORD),
        role=data.role or models.AccountRole.DATA_ENTRY_OPERATOR,
        branch_id=data.branch_id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="users",
        action="create",
        entity_id=user.id,
        details=f"{user.email} ({user.role_name})",
        critical=True,
    )
    return user


def update_user(
    db: Session,
    *,
    user_id: str,
    data: schemas.UserUpdate,
    actor_user_id: Optional[str],
) -> models.User:
    user = get_user_or_404(db, user_id)
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates provided.")

    password = changes.pop("password", None)
    for field, value in changes.items():
        setattr(user, field, value)
    if password:
        user.hashed_password = security.get_password_hash(password)
    db.flush()

    changed_fields = sorted(changes) + (["password"] if password else [])
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="users",
        action="update",
        entity_id=user.id,
        metadata={"fields": changed_fields},
        critical=True,
    )
    return user


def list_login_history(db: Session, *, limit: int = 100) -> List[schemas.LoginHistoryRead]:
    limit = max(1, min(limit or 100, MAX_HISTORY_LIMIT))
    rows = (
        db.query(models.LoginHistory, models.User.name, models.User.email)
        .join(models.User, models.User.id == models.LoginHistory.user_id)
        .order_by(models.LoginHistory.login_at.desc(), models.LoginHistory.id.desc())
        .limit(limit)
        .all()
    )
    return [
        schemas.LoginHistoryRead(
            id=entry.id,
            user_id=entry.user_id,
            user_name=name,
            user_email=email,
            ip=entry.ip,
            user_agent=entry.user_agent,
            login_at=entry.login_at,
        )
        for entry, name, email in rows
    ]


def ensure_default_admin(
    db: Session,
    *,
    email: Optional[str] = None,
    password: Optional[str] = None,
    name: str = "Super Admin",
) -> Tuple[models.User, bool]:
    """Create the super admin account if it does not exist yet."""
    email = _normalise_email(email or DEFAULT_ADMIN_EMAIL)
    existing = get_user_by_email(db, email=email)
    if existing:
        return existing, False
    user = models.User(
        email=email,
        name=name,
        hashed_password=security.get_password_hash(
            password or os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
        ),
        role=models.AccountRole.SUPER_ADMIN,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user, True
