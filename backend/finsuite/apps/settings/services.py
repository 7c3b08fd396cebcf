from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services

from . import models

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "financial_year_start": "2025-01-01",
    "financial_year_end": "2025-12-31",
    "currency": "PKR",
    "country": "PK",
    "tax_rate": "18",
    "invoice_prefix": "INV",
    "voucher_prefix": "VCH",
    "invoice_counter": "1",
    "voucher_counter": "1",
    "language": "en",
    "notification_alerts": "1",
    "company_name": "",
    "company_phone": "",
    "company_address": "",
    "company_email": "",
    "company_website": "",
    "company_tax_number": "",
}


def ensure_default_settings(db: Session) -> int:
    """Insert any missing default keys; existing values are left alone."""
    existing = {key for (key,) in db.query(models.SystemSetting.key).all()}
    created = 0
    for key, value in DEFAULT_SETTINGS.items():
        if key in existing:
            continue
        db.add(models.SystemSetting(key=key, value=value))
        created += 1
    if created:
        db.flush()
    return created


def get_settings(db: Session) -> Dict[str, Optional[str]]:
    return {row.key: row.value for row in db.query(models.SystemSetting).all()}


def get_setting(db: Session, key: str, default: Optional[str] = None) -> Optional[str]:
    row = db.query(models.SystemSetting).filter(models.SystemSetting.key == key).first()
    if row is None or row.value is None:
        return default
    return row.value


def get_setting_or_404(db: Session, key: str) -> models.SystemSetting:
    row = db.query(models.SystemSetting).filter(models.SystemSetting.key == key).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Setting not found.")
    return row


def _upsert(db: Session, key: str, value: str) -> models.SystemSetting:
    row = db.query(models.SystemSetting).filter(models.SystemSetting.key == key).first()
    if row is None:
        row = models.SystemSetting(key=key, value=value)
        db.add(row)
    else:
        row.value = value
    db.flush()
    return row


def _as_setting_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def set_setting(
    db: Session,
    *,
    key: str,
    value: Any,
    actor_user_id: Optional[str],
) -> models.SystemSetting:
    row = _upsert(db, key, _as_setting_value(value))
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="settings",
        action="update",
        entity_id=key,
    )
    return row


def _parse_fy_date(raw: Any) -> Optional[date]:
    text = str(raw or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date: {text}",
        )


def bulk_update(
    db: Session,
    *,
    values: Mapping[str, Any],
    actor_user_id: Optional[str],
) -> Dict[str, Optional[str]]:
    start = _parse_fy_date(values.get("financial_year_start"))
    end = _parse_fy_date(values.get("financial_year_end"))
    if start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Financial year start must be on or before end.",
        )
    for key, value in values.items():
        _upsert(db, key, _as_setting_value(value))
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="settings",
        action="bulk_update",
        entity_id="bulk",
        metadata={"keys": sorted(values.keys())},
    )
    return get_settings(db)


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------


def _next_number(db: Session, *, prefix_key: str, counter_key: str, default_prefix: str) -> str:
    prefix = get_setting(db, prefix_key) or default_prefix
    counter_row = (
        db.query(models.SystemSetting)
        .filter(models.SystemSetting.key == counter_key)
        .with_for_update()
        .first()
    )
    try:
        current = int((counter_row.value if counter_row else None) or "1")
    except ValueError:
        logger.warning("Non-numeric counter reset to 1", extra={"key": counter_key})
        current = 1
    number = f"{prefix}-{current:06d}"
    _upsert(db, counter_key, str(current + 1))
    return number


def next_voucher_number(db: Session) -> str:
    """Allocate the next voucher number, e.g. VCH-000042."""
    return _next_number(db, prefix_key="voucher_prefix", counter_key="voucher_counter", default_prefix="VCH")


def next_invoice_number(db: Session) -> str:
    return _next_number(db, prefix_key="invoice_prefix", counter_key="invoice_counter", default_prefix="INV")


def append_voucher_note(value: Optional[str], voucher: str) -> str:
    """Prefix a remark with its voucher number unless it is already there."""
    trimmed = str(value or "").strip()
    if not trimmed:
        return voucher
    if voucher in trimmed:
        return trimmed
    return f"{voucher} - {trimmed}"
