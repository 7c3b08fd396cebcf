"""
Company branding used on printed and exported documents.

Text fields come from system settings; image assets (logo, signature,
stamp) are plain files in the branding directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from . import services

BASE_DIR = Path(__file__).resolve().parents[3]
DATA_DIR = Path(os.getenv("FINSUITE_DATA_DIR", str(BASE_DIR / "data")))

LOGO_NAMES = ("logo.png", "logo.jpg", "logo.jpeg", "logo.webp")


def branding_dir() -> Path:
    return DATA_DIR / "branding"


@dataclass(frozen=True)
class CompanyProfile:
    company_name: str = ""
    phone: str = ""
    address: str = ""
    email: str = ""
    website: str = ""
    tax_number: str = ""
    logo_path: Optional[Path] = None

    def detail_parts(self) -> List[str]:
        parts = []
        if self.address:
            parts.append(self.address)
        if self.phone:
            parts.append(f"Tel: {self.phone}")
        if self.email:
            parts.append(self.email)
        if self.website:
            parts.append(self.website)
        if self.tax_number:
            parts.append(f"Tax #: {self.tax_number}")
        return parts

    def as_dict(self) -> dict:
        return {
            "companyName": self.company_name,
            "phone": self.phone,
            "address": self.address,
            "email": self.email,
            "website": self.website,
            "taxNumber": self.tax_number,
            "hasLogo": self.logo_path is not None,
        }


def find_logo() -> Optional[Path]:
    directory = branding_dir()
    if not directory.is_dir():
        return None
    for name in LOGO_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_asset(name: str) -> Optional[Path]:
    """Look up an optional image such as signature.png or stamp.png."""
    candidate = branding_dir() / name
    return candidate if candidate.is_file() else None


def get_company_profile(db: Session) -> CompanyProfile:
    values = services.get_settings(db)
    return CompanyProfile(
        company_name=values.get("company_name") or "",
        phone=values.get("company_phone") or "",
        address=values.get("company_address") or "",
        email=values.get("company_email") or "",
        website=values.get("company_website") or "",
        tax_number=values.get("company_tax_number") or "",
        logo_path=find_logo(),
    )
