from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, computed_field

from . import storage


class AttachmentRead(BaseModel):
    id: int
    filename: str
    path: str
    created_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def url(self) -> str:
        return storage.url_for(self.path)


class AttachmentUploadResult(BaseModel):
    ok: bool = True
    attachments: List[AttachmentRead]


class AttachmentDeleteResult(BaseModel):
    ok: bool = True
