from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ActivityLogCreate(BaseModel):
    action: str
    module: str
    user_id: Optional[str] = None
    entity_id: Optional[str] = None
    details: Optional[str] = None
    metadata: Optional[dict] = None


class ActivityLogRead(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    action: str
    module: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    created_at: datetime
