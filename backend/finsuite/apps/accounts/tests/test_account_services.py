from __future__ import annotations

import pytest
from fastapi import HTTPException
from jose import jwt

from finsuite import security
from finsuite.apps.accounts import models, schemas, services


def _create_user(db, *, email="clerk@example.com", password="secret1", role=None):
    user = services.create_user(
        db,
        data=schemas.UserCreate(email=email, name="Clerk", password=password, role=role),
        actor_user_id=None,
    )
    db.commit()
    return user


def test_create_user_defaults_to_data_entry_role(db_session):
    user = _create_user(db_session, email="Clerk@Example.com")

    assert user.email == "clerk@example.com"
    assert user.role == models.AccountRole.DATA_ENTRY_OPERATOR
    assert security.verify_password("secret1", user.hashed_password)

    with pytest.raises(HTTPException) as exc:
        _create_user(db_session)
    assert exc.value.detail == "Email already exists."


def test_admin_alias_logs_in_default_admin(db_session):
    admin, created = services.ensure_default_admin(db_session, password="admin-pass")
    db_session.commit()
    assert created is True

    user = services.authenticate_user(
        db_session,
        login_req=schemas.LoginRequest(email="admin", password="admin-pass"),
        ip="127.0.0.1",
        user_agent="pytest",
    )
    db_session.commit()

    assert user is not None
    assert user.id == admin.id
    assert user.last_login_at is not None
    history = services.list_login_history(db_session)
    assert [entry.user_email for entry in history] == [admin.email]


def test_wrong_password_and_inactive_users_are_rejected(db_session):
    user = _create_user(db_session)

    assert services.authenticate_user(
        db_session,
        login_req=schemas.LoginRequest(email=user.email, password="nope"),
        ip=None,
        user_agent=None,
    ) is None

    services.update_user(db_session, user_id=user.id, data=schemas.UserUpdate(is_active=False), actor_user_id=None)
    db_session.commit()
    assert services.authenticate_user(
        db_session,
        login_req=schemas.LoginRequest(email=user.email, password="secret1"),
        ip=None,
        user_agent=None,
    ) is None


def test_access_token_carries_subject_and_role(db_session):
    user = _create_user(db_session, role=models.AccountRole.BRANCH_MANAGER)

    token, expires_in = services.issue_access_token_for_user(user)

    claims = jwt.decode(token, security.SECRET_KEY, algorithms=[security.JWT_ALGORITHM])
    assert claims["sub"] == user.id
    assert claims["role"] == "BRANCH_MANAGER"
    assert expires_in == security.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_role_guards(db_session):
    auditor = _create_user(db_session, email="audit@example.com", role=models.AccountRole.AUDITOR)
    manager = _create_user(db_session, email="fm@example.com", role=models.AccountRole.FINANCE_MANAGER)
    admin, _ = services.ensure_default_admin(db_session)

    with pytest.raises(HTTPException) as exc:
        security.require_not_auditor(current_user=auditor)
    assert exc.value.status_code == 403
    assert security.require_not_auditor(current_user=manager) is manager

    guard = security.require_roles(models.AccountRole.FINANCE_MANAGER)
    assert guard(current_user=manager) is manager
    assert guard(current_user=admin) is admin
    with pytest.raises(HTTPException):
        guard(current_user=auditor)


def test_role_catalogue_marks_auditor_read_only():
    roles = {role.code: role for role in services.list_roles()}

    assert roles[models.AccountRole.AUDITOR].read_only is True
    assert roles[models.AccountRole.SUPER_ADMIN].permissions == ["all"]
