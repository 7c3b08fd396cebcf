# backend/finsuite/apps/accounts/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import AccountRole


class LoginRequest(BaseModel):
    # Plain str: the literal "admin" is accepted as an alias.
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserRead(BaseModel):
    id: str
    email: str
    name: str
    role: AccountRole
    role_name: str
    permissions: str
    branch_id: Optional[int] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class UserListItem(UserRead):
    branch_name: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)
    password: Optional[str] = None
    role: Optional[AccountRole] = None
    branch_id: Optional[int] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[AccountRole] = None
    branch_id: Optional[int] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(default=None, min_length=4)


class RoleRead(BaseModel):
    code: AccountRole
    name: str
    permissions: List[str]
    read_only: bool


class LoginHistoryRead(BaseModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    login_at: datetime
