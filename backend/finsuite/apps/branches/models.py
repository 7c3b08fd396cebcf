from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from finsuite.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class Branch(Base):
    __tablename__ = "branches"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(32), nullable=True, unique=True, index=True)
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=True)
    manager_user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL", use_alter=True, name="fk_branches_manager_user"),
        nullable=True,
        index=True,
    )
    opening_date = Column(Date, nullable=True)
    closing_date = Column(Date, nullable=True)
    opening_cash = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
