from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.branches import schemas, services
from finsuite.apps.sales import schemas as sale_schemas
from finsuite.apps.sales import services as sale_services


def _create_branch(db, name="Mombasa Road", code="MSA"):
    branch = services.create_branch(
        db, data=schemas.BranchCreate(name=name, code=code, opening_cash=Decimal("2500")), actor_user_id=None
    )
    db.commit()
    return branch


def test_branch_codes_are_unique(db_session):
    _create_branch(db_session)

    with pytest.raises(HTTPException) as exc:
        _create_branch(db_session, name="Other")
    assert exc.value.detail == "Branch code already exists."


def test_update_requires_changes(db_session):
    branch = _create_branch(db_session)

    with pytest.raises(HTTPException) as exc:
        services.update_branch(db_session, branch_id=branch.id, data=schemas.BranchUpdate(), actor_user_id=None)
    assert exc.value.detail == "No updates provided."

    services.update_branch(
        db_session, branch_id=branch.id, data=schemas.BranchUpdate(is_active=False), actor_user_id=None
    )
    db_session.commit()
    assert services.list_branches(db_session, active_only=True) == []


def test_branch_with_sales_cannot_be_deleted(db_session):
    branch = _create_branch(db_session)
    sale_services.create_sale(
        db_session,
        data=sale_schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 1, 5), cash_amount=Decimal("70")),
        actor_user_id=None,
    )
    db_session.commit()

    with pytest.raises(HTTPException) as exc:
        services.delete_branch(db_session, branch_id=branch.id, actor_user_id=None)
    assert exc.value.status_code == 409

    performance = services.branch_performance(db_session, branch_id=branch.id)
    assert performance.total_sales == Decimal("70.00")
    assert performance.sales_count == 1
