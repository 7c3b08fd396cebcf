# backend/finsuite/security.py

"""
Authentication and authorisation for the finance API.

Passwords are stored as Argon2id hashes. Accounts carried over from the
previous bookkeeping system still have bcrypt hashes; those verify as-is
and are upgraded the next time the user's password is set.

Access tokens are HS256 JWTs whose `sub` is the user id. Writes go through
`require_not_auditor` (auditors are read-only everywhere) and the admin-only
endpoints additionally through `require_roles(...)`.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta
from typing import Callable, FrozenSet, Iterable, Optional, Union

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .database import get_db
from finsuite.apps.accounts import models as account_models
from finsuite.apps.accounts.models import AccountRole

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


# Override in every real deployment.
SECRET_KEY = os.getenv("SECRET_KEY", "finsuite-dev-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = _int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 7 * 24 * 60)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

AUDITOR_READ_ONLY_DETAIL = "Read-only access. Auditors cannot create, edit, or delete."
FORBIDDEN_DETAIL = "Insufficient permissions."

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

_hasher = PasswordHasher(
    time_cost=_int_env("ARGON2_TIME_COST", 3),
    memory_cost=_int_env("ARGON2_MEMORY_COST", 64 * 1024),  # KiB
    parallelism=_int_env("ARGON2_PARALLELISM", 2),
    hash_len=_int_env("ARGON2_HASH_LEN", 32),
    salt_len=_int_env("ARGON2_SALT_LEN", 16),
)


# --- passwords -------------------------------------------------------------


def get_password_hash(password: str) -> str:
    return _hasher.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """True when `plain_password` matches an Argon2 or bcrypt hash."""
    if not plain_password or not hashed_password:
        return False
    if hashed_password.startswith("$argon2"):
        try:
            return _hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False
    if hashed_password.startswith(_BCRYPT_PREFIXES):
        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            return False
    return False


# --- tokens ----------------------------------------------------------------


def create_access_token(*, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign `data` (must carry `sub`) with an `exp` claim."""
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = dict(data, exp=datetime.utcnow() + lifetime)
    return jwt.encode(claims, SECRET_KEY, algorithm=JWT_ALGORITHM)


def _subject_from_token(token: str) -> Optional[str]:
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None
    subject = claims.get("sub")
    return str(subject).strip() if subject else None


def _unauthorised() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# --- dependencies ----------------------------------------------------------


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> account_models.User:
    user_id = _subject_from_token(token)
    if user_id is None:
        raise _unauthorised()
    user = db.get(account_models.User, user_id)
    if user is None:
        raise _unauthorised()
    return user


def get_current_active_user(
    current_user: account_models.User = Depends(get_current_user),
) -> account_models.User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive.",
        )
    return current_user


def require_not_auditor(
    current_user: account_models.User = Depends(get_current_active_user),
) -> account_models.User:
    """Guard for every create, edit and delete endpoint."""
    if current_user.role == AccountRole.AUDITOR:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=AUDITOR_READ_ONLY_DETAIL)
    return current_user


def _as_roles(roles: Iterable[Union[AccountRole, str]]) -> FrozenSet[AccountRole]:
    resolved = set()
    for role in roles:
        try:
            resolved.add(role if isinstance(role, AccountRole) else AccountRole(role))
        except ValueError:
            raise ValueError(f"Unknown role {role!r} passed to require_roles()") from None
    return frozenset(resolved)


def require_roles(
    *allowed_roles: Union[AccountRole, str],
) -> Callable[[account_models.User], account_models.User]:
    """
    Dependency factory restricting an endpoint to `allowed_roles`.

    Super admins always pass. Role names are checked when the router module
    is imported, so a typo fails at startup instead of at request time.
    """
    allowed = _as_roles(allowed_roles)

    def dependency(
        current_user: account_models.User = Depends(get_current_active_user),
    ) -> account_models.User:
        if current_user.is_superuser or current_user.role in allowed:
            return current_user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)

    return dependency
