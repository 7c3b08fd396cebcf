"""
Attachment bookkeeping shared by sales, expenses and rent/bills.

Callers check that the owning record exists; these functions only deal with
attachment rows and their files.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from fastapi import HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services

from . import models, schemas, storage

logger = logging.getLogger(__name__)

MAX_FILES_PER_UPLOAD = 10


def _owner_query(db: Session, owner_type: models.AttachmentOwner, owner_id: int):
    return db.query(models.Attachment).filter(
        models.Attachment.owner_type == owner_type,
        models.Attachment.owner_id == owner_id,
    )


def list_attachments(
    db: Session,
    *,
    owner_type: models.AttachmentOwner,
    owner_id: int,
) -> List[schemas.AttachmentRead]:
    rows = _owner_query(db, owner_type, owner_id).order_by(models.Attachment.id.desc()).all()
    return [schemas.AttachmentRead.model_validate(row) for row in rows]


def add_attachments(
    db: Session,
    *,
    owner_type: models.AttachmentOwner,
    owner_id: int,
    files: Sequence[UploadFile],
    actor_user_id: Optional[str],
) -> schemas.AttachmentUploadResult:
    files = [f for f in files if f is not None and f.filename]
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded.")
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {MAX_FILES_PER_UPLOAD} files per upload.",
        )

    saved: List[models.Attachment] = []
    try:
        for upload in files:
            relative_path = storage.save_upload(upload, owner_type.value)
            attachment = models.Attachment(
                owner_type=owner_type,
                owner_id=owner_id,
                filename=upload.filename,
                path=relative_path,
            )
            db.add(attachment)
            saved.append(attachment)
    except HTTPException:
        for attachment in saved:
            storage.remove_file(attachment.path)
            db.expunge(attachment)
        raise
    db.flush()

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module=owner_type.value,
        action="attach",
        entity_id=owner_id,
        metadata={"files": [a.filename for a in saved]},
    )
    return schemas.AttachmentUploadResult(
        attachments=[schemas.AttachmentRead.model_validate(a) for a in saved]
    )


def delete_attachment(
    db: Session,
    *,
    owner_type: models.AttachmentOwner,
    owner_id: int,
    attachment_id: int,
    actor_user_id: Optional[str],
) -> None:
    attachment = _owner_query(db, owner_type, owner_id).filter(models.Attachment.id == attachment_id).first()
    if attachment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found.")
    storage.remove_file(attachment.path)
    db.delete(attachment)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module=owner_type.value,
        action="delete_attachment",
        entity_id=attachment_id,
    )


def delete_for_owner(db: Session, *, owner_type: models.AttachmentOwner, owner_id: int) -> int:
    """Drop every attachment of a record being deleted. Returns how many went."""
    rows = _owner_query(db, owner_type, owner_id).all()
    for attachment in rows:
        storage.remove_file(attachment.path)
        db.delete(attachment)
    if rows:
        logger.info(
            "Attachments removed with owner",
            extra={"owner_type": owner_type.value, "owner_id": owner_id, "count": len(rows)},
        )
    return len(rows)
