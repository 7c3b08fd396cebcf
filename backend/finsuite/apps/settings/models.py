from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from finsuite.database import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class SystemSetting(Base):
    """Key/value store for company profile, financial year and numbering."""

    __tablename__ = "system_settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)
