# backend/finsuite/apps/accounts/router_public.py

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from finsuite.database import get_db
from finsuite.security import get_current_active_user

from . import models, schemas, services

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent")


@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Email + password login. `admin` is accepted in place of the default
    administrator's email address.
    """
    user = services.authenticate_user(
        db,
        login_req=payload,
        ip=_client_ip(request),
        user_agent=_user_agent(request),
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    db.commit()
    db.refresh(user)

    token, expires_in = services.issue_access_token_for_user(user)
    return schemas.LoginResponse(
        token=token,
        expires_in=expires_in,
        user=schemas.UserRead.model_validate(user),
    )


@router.get("/me", response_model=schemas.UserRead)
def read_me(current_user: models.User = Depends(get_current_active_user)):
    return current_user


@router.get("/roles", response_model=List[schemas.RoleRead])
def list_roles(current_user: models.User = Depends(get_current_active_user)):
    return services.list_roles()
