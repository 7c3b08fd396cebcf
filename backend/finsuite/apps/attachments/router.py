from __future__ import annotations

from typing import Callable, List

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor
from finsuite.apps.accounts import models as account_models
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.rent_bills import services as rent_bill_services
from finsuite.apps.sales import services as sale_services

from . import models, schemas, services


def build_router(
    prefix: str,
    owner_type: models.AttachmentOwner,
    ensure_owner: Callable[[Session, int], object],
) -> APIRouter:
    """`/{record_id}/attachments` endpoints for one kind of owning record."""
    router = APIRouter(prefix=prefix, tags=[f"{owner_type.value}_attachments"])

    @router.get("/{record_id}/attachments", response_model=List[schemas.AttachmentRead])
    def list_attachments(
        record_id: int,
        db: Session = Depends(get_read_db),
        current_user: account_models.User = Depends(get_current_active_user),
    ):
        ensure_owner(db, record_id)
        return services.list_attachments(db, owner_type=owner_type, owner_id=record_id)

    @router.post(
        "/{record_id}/attachments",
        response_model=schemas.AttachmentUploadResult,
        status_code=status.HTTP_201_CREATED,
    )
    def upload_attachments(
        record_id: int,
        files: List[UploadFile] = File(...),
        db: Session = Depends(get_db),
        current_user: account_models.User = Depends(require_not_auditor),
    ):
        ensure_owner(db, record_id)
        result = services.add_attachments(
            db,
            owner_type=owner_type,
            owner_id=record_id,
            files=files,
            actor_user_id=current_user.id,
        )
        db.commit()
        return result

    @router.delete("/{record_id}/attachments/{attachment_id}", response_model=schemas.AttachmentDeleteResult)
    def delete_attachment(
        record_id: int,
        attachment_id: int,
        db: Session = Depends(get_db),
        current_user: account_models.User = Depends(require_not_auditor),
    ):
        services.delete_attachment(
            db,
            owner_type=owner_type,
            owner_id=record_id,
            attachment_id=attachment_id,
            actor_user_id=current_user.id,
        )
        db.commit()
        return schemas.AttachmentDeleteResult()

    return router


sales_router = build_router("/api/sales", models.AttachmentOwner.SALE, sale_services.get_sale_or_404)
expenses_router = build_router("/api/expenses", models.AttachmentOwner.EXPENSE, expense_services.get_expense_or_404)
rent_bills_router = build_router(
    "/api/rent-bills", models.AttachmentOwner.RENT_BILL, rent_bill_services.get_bill_or_404
)
