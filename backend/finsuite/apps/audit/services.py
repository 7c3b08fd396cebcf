from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from finsuite.apps.accounts import models as account_models

from . import models, schemas

logger = logging.getLogger(__name__)

MAX_ACTIVITY_LIMIT = 500


def create_activity_log(
    db: Session,
    *,
    data: schemas.ActivityLogCreate,
) -> models.ActivityLog:
    entry = models.ActivityLog(
        user_id=data.user_id,
        action=data.action,
        module=data.module,
        entity_id=data.entity_id,
        details=data.details,
        metadata_json=data.metadata,
    )
    db.add(entry)
    db.flush()
    return entry


def log_event(
    db: Session,
    *,
    actor_user_id: Optional[str],
    module: str,
    action: str,
    entity_id: Optional[object] = None,
    details: Optional[str] = None,
    metadata: Optional[dict] = None,
    critical: bool = False,
) -> Optional[models.ActivityLog]:
    """
    Best-effort activity logger.
    - For critical actions (restore, user changes), raise on failure.
    - Otherwise log a warning and let the business operation continue.
    """
    try:
        return create_activity_log(
            db,
            data=schemas.ActivityLogCreate(
                action=action,
                module=module,
                user_id=actor_user_id,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details,
                metadata=metadata,
            ),
        )
    except Exception:
        logger.warning(
            "Failed to log activity",
            extra={
                "module": module,
                "action": action,
                "entity_id": entity_id,
                "critical": critical,
            },
        )
        if critical:
            raise
        return None


def list_activity_logs(
    db: Session,
    *,
    limit: int = 100,
    module: Optional[str] = None,
) -> List[schemas.ActivityLogRead]:
    limit = max(1, min(limit or 100, MAX_ACTIVITY_LIMIT))
    query = (
        db.query(models.ActivityLog, account_models.User.name, account_models.User.email)
        .outerjoin(account_models.User, account_models.User.id == models.ActivityLog.user_id)
    )
    if module:
        query = query.filter(models.ActivityLog.module == module)
    rows = (
        query.order_by(models.ActivityLog.created_at.desc(), models.ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
    return [
        schemas.ActivityLogRead(
            id=entry.id,
            user_id=entry.user_id,
            user_name=name,
            user_email=email,
            action=entry.action,
            module=entry.module,
            entity_id=entry.entity_id,
            details=entry.details,
            created_at=entry.created_at,
        )
        for entry, name, email in rows
    ]
