from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.branches import models as branch_models
from finsuite.apps.cash import schemas, services


def _create_branch(db, name="Kisumu", code="KSM"):
    branch = branch_models.Branch(name=name, code=code, opening_cash=Decimal("0"))
    db.add(branch)
    db.commit()
    return branch


def _entry(branch, **overrides):
    values = dict(
        branch_id=branch.id,
        entry_date=date(2024, 8, 1),
        opening_cash=Decimal("1000"),
        sales_cash=Decimal("4000"),
        expense_cash=Decimal("600"),
        bank_deposit=Decimal("3000"),
        bank_withdrawal=Decimal("200"),
    )
    values.update(overrides)
    return schemas.CashEntryCreate(**values)


def test_expected_closing():
    assert services.expected_closing(
        opening=Decimal("1000"),
        sales=Decimal("4000"),
        expenses=Decimal("600"),
        deposits=Decimal("3000"),
        withdrawals=Decimal("200"),
    ) == Decimal("1600.00")


def test_entry_without_closing_balances_exactly(db_session):
    branch = _create_branch(db_session)

    result = services.create_entry(db_session, data=_entry(branch), actor_user_id=None)
    db_session.commit()

    assert result.closing_cash == Decimal("1600.00")
    assert result.difference == Decimal("0.00")
    assert result.expected_closing == Decimal("1600.00")
    assert result.remarks == "VCH-000001"


def test_counted_closing_records_difference_and_alert(db_session):
    branch = _create_branch(db_session)

    result = services.create_entry(
        db_session, data=_entry(branch, closing_cash=Decimal("1550")), actor_user_id=None
    )
    db_session.commit()

    assert result.difference == Decimal("-50.00")
    alerts = services.difference_alerts(db_session, alert_date=date(2024, 8, 1))
    assert [row.id for row in alerts.rows] == [result.id]


def test_duplicate_entry_for_branch_and_date(db_session):
    branch = _create_branch(db_session)
    services.create_entry(db_session, data=_entry(branch), actor_user_id=None)
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        services.create_entry(db_session, data=_entry(branch), actor_user_id=None)
    assert exc.value.detail == services.DUPLICATE_DETAIL


def test_update_keeps_counted_closing(db_session):
    branch = _create_branch(db_session)
    services.create_entry(db_session, data=_entry(branch), actor_user_id=None)
    db_session.commit()

    result = services.update_entry(
        db_session,
        branch_id=branch.id,
        entry_date=date(2024, 8, 1),
        data=schemas.CashEntryUpdate(sales_cash=Decimal("4100")),
        actor_user_id=None,
    )
    db_session.commit()

    assert result.expected_closing == Decimal("1700.00")
    assert result.closing_cash == Decimal("1600.00")
    assert result.difference == Decimal("-100.00")


def test_branch_summary_totals(db_session):
    first = _create_branch(db_session)
    second = _create_branch(db_session, name="Eldoret", code="ELD")
    services.create_entry(db_session, data=_entry(first), actor_user_id=None)
    services.create_entry(db_session, data=_entry(second, opening_cash=Decimal("500")), actor_user_id=None)
    db_session.commit()

    summary = services.branch_summary(db_session, summary_date=date(2024, 8, 1))

    assert len(summary.rows) == 2
    assert summary.total_opening == Decimal("1500.00")
    assert summary.total_closing == Decimal("2700.00")
