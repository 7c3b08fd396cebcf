from __future__ import annotations

import pytest
from fastapi import HTTPException

from finsuite.apps.settings import services


def test_voucher_numbers_are_sequential(db_session):
    services.ensure_default_settings(db_session)

    numbers = [services.next_voucher_number(db_session) for _ in range(3)]

    assert numbers == ["VCH-000001", "VCH-000002", "VCH-000003"]
    assert services.get_setting(db_session, "voucher_counter") == "4"


def test_numbering_honours_custom_prefix(db_session):
    services.bulk_update(db_session, values={"invoice_prefix": "PUR"}, actor_user_id=None)

    assert services.next_invoice_number(db_session) == "PUR-000001"


def test_append_voucher_note():
    assert services.append_voucher_note(None, "VCH-000007") == "VCH-000007"
    assert services.append_voucher_note("  fuel  ", "VCH-000007") == "VCH-000007 - fuel"
    assert services.append_voucher_note("VCH-000007 - fuel", "VCH-000007") == "VCH-000007 - fuel"


def test_default_settings_keep_existing_values(db_session):
    services.bulk_update(db_session, values={"currency": "KES"}, actor_user_id=None)

    created = services.ensure_default_settings(db_session)

    assert created == len(services.DEFAULT_SETTINGS) - 1
    assert services.get_settings(db_session)["currency"] == "KES"


def test_financial_year_must_be_ordered(db_session):
    with pytest.raises(HTTPException) as exc:
        services.bulk_update(
            db_session,
            values={"financial_year_start": "2025-12-31", "financial_year_end": "2025-01-01"},
            actor_user_id=None,
        )
    assert exc.value.detail == "Financial year start must be on or before end."
