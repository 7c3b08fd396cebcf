from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Integer, String

from finsuite.database import Base
from finsuite.utils.enums import value_enum


def _utcnow() -> datetime:
    return datetime.utcnow()


class AttachmentOwner(str, enum.Enum):
    SALE = "sales"
    EXPENSE = "expenses"
    RENT_BILL = "rent_bills"


class Attachment(Base):
    """
    A stored upload. `owner_type` doubles as the upload sub-directory, and
    `path` is relative to the uploads root (e.g. `sales/1718000000_receipt.pdf`).
    """

    __tablename__ = "attachments"
    __table_args__ = (Index("ix_attachments_owner", "owner_type", "owner_id"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_type = Column(value_enum(AttachmentOwner, "attachment_owner_enum"), nullable=False)
    owner_id = Column(Integer, nullable=False)
    filename = Column(String(255), nullable=False)
    path = Column(String(512), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
