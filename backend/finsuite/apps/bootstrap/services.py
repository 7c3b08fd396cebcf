from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from finsuite.apps.accounts import services as account_services
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.settings import services as settings_services

logger = logging.getLogger(__name__)


def ensure_defaults(
    db: Session,
    *,
    admin_email: Optional[str] = None,
    admin_password: Optional[str] = None,
) -> dict:
    """
    Seed a fresh database: default settings, the standard expense
    categories and the super admin. Safe to run repeatedly.
    """
    settings_created = settings_services.ensure_default_settings(db)
    categories_created = expense_services.ensure_default_categories(db)
    admin, admin_created = account_services.ensure_default_admin(
        db,
        email=admin_email,
        password=admin_password,
    )
    summary = {
        "settings_created": settings_created,
        "categories_created": categories_created,
        "admin_email": admin.email,
        "admin_created": admin_created,
    }
    logger.info("Defaults ensured", extra=summary)
    return summary
