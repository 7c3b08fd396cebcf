from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor
from finsuite.apps.accounts import models as account_models

from . import models, schemas, services

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get("/options", response_model=schemas.PaymentOptions)
def payment_options(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.payment_options(db)


@router.get("", response_model=List[schemas.PaymentRead])
def list_payments(
    type: Optional[models.PaymentReferenceType] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_payments(
        db,
        reference_type=type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )


@router.post("", response_model=schemas.PaymentResult, status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: schemas.PaymentCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.create_payment(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result
