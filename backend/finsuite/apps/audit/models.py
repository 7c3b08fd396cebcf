from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, JSON, String, Text, desc

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.utcnow()


class ActivityLog(Base):
    """
    Append-only activity trail: one row per successful create / update / delete.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_module_time", "module", "created_at"),
        Index("ix_activity_logs_time_desc", desc("created_at")),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(64), nullable=False, index=True)
    module = Column(String(64), nullable=False, index=True)
    entity_id = Column(String(64), nullable=True)
    details = Column(Text, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)

    def __repr__(self) -> str:
        return f"<ActivityLog id={self.id} module={self.module} action={self.action}>"
