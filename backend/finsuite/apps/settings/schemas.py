from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel


class SettingRead(BaseModel):
    key: str
    value: Optional[str] = None

    class Config:
        from_attributes = True


class CompanyProfileRead(BaseModel):
    companyName: str
    phone: str
    address: str
    email: str
    website: str
    taxNumber: str
    hasLogo: bool


class RestoreResult(BaseModel):
    ok: bool
    message: str
    restored: Dict[str, int] = {}
