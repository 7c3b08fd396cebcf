from __future__ import annotations

from finsuite.apps.accounts import models as account_models
from finsuite.apps.bootstrap import services
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.settings import services as settings_services


def test_ensure_defaults_is_idempotent(db_session):
    first = services.ensure_defaults(db_session, admin_email="Owner@Example.com", admin_password="owner-pass")
    db_session.commit()

    assert first["admin_created"] is True
    assert first["admin_email"] == "owner@example.com"
    assert first["settings_created"] == len(settings_services.DEFAULT_SETTINGS)
    assert first["categories_created"] == len(expense_services.DEFAULT_CATEGORIES)

    second = services.ensure_defaults(db_session, admin_email="owner@example.com", admin_password="other")
    db_session.commit()

    assert second == {
        "settings_created": 0,
        "categories_created": 0,
        "admin_email": "owner@example.com",
        "admin_created": False,
    }
    admin = db_session.query(account_models.User).one()
    assert admin.role == account_models.AccountRole.SUPER_ADMIN
