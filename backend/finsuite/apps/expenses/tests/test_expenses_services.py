from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.branches import models as branch_models
from finsuite.apps.expenses import models, schemas, services
from finsuite.apps.sales import schemas as sale_schemas
from finsuite.apps.sales import services as sale_services


def _setup(db):
    branch = branch_models.Branch(name="Nakuru", code="NKR", opening_cash=Decimal("0"))
    db.add(branch)
    services.ensure_default_categories(db)
    db.commit()
    categories = {category.name: category for category in services.list_categories(db)}
    return branch, categories


def _create_expense(db, branch, category, amount, expense_date):
    expense = services.create_expense(
        db,
        data=schemas.ExpenseCreate(
            branch_id=branch.id, category_id=category.id, amount=Decimal(amount), expense_date=expense_date
        ),
        actor_user_id=None,
    )
    db.commit()
    return expense


def test_default_categories_seed_once(db_session):
    assert services.ensure_default_categories(db_session) == len(services.DEFAULT_CATEGORIES)
    db_session.commit()
    assert services.ensure_default_categories(db_session) == 0


def test_create_expense_validation(db_session):
    branch, categories = _setup(db_session)

    with pytest.raises(HTTPException) as exc:
        _create_expense(db_session, branch, categories["Rent"], "0", date(2024, 3, 1))
    assert exc.value.detail == "Invalid amount."

    expense = _create_expense(db_session, branch, categories["Rent"], "15000", date(2024, 3, 1))
    assert expense.remarks == "VCH-000001"
    assert services.get_expense(db_session, expense.id).category_type == models.ExpenseType.FIXED


def test_duplicate_and_in_use_categories(db_session):
    branch, categories = _setup(db_session)

    with pytest.raises(HTTPException) as exc:
        services.create_category(db_session, data=schemas.CategoryCreate(name="Rent"), actor_user_id=None)
    assert exc.value.status_code == 409

    _create_expense(db_session, branch, categories["Marketing"], "100", date(2024, 3, 1))
    with pytest.raises(HTTPException) as exc:
        services.delete_category(db_session, category_id=categories["Marketing"].id, actor_user_id=None)
    assert exc.value.status_code == 409


def test_category_wise_report_includes_unused_categories(db_session):
    branch, categories = _setup(db_session)
    _create_expense(db_session, branch, categories["Utilities"], "400", date(2024, 3, 4))
    _create_expense(db_session, branch, categories["Utilities"], "100", date(2024, 3, 20))
    _create_expense(db_session, branch, categories["Utilities"], "999", date(2024, 4, 1))

    rows = services.category_wise_report(db_session, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))

    assert rows[0].name == "Utilities"
    assert rows[0].total == Decimal("500.00")
    assert len(rows) == len(services.DEFAULT_CATEGORIES)
    assert all(row.total == Decimal("0.00") for row in rows[1:])


def test_monthly_report_and_expense_ratio(db_session):
    branch, categories = _setup(db_session)
    _create_expense(db_session, branch, categories["Rent"], "2000", date(2024, 3, 1))
    _create_expense(db_session, branch, categories["Utilities"], "500", date(2024, 3, 1))
    _create_expense(db_session, branch, categories["Utilities"], "500", date(2024, 3, 9))
    sale_services.create_sale(
        db_session,
        data=sale_schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 3, 2), cash_amount=Decimal("12000")),
        actor_user_id=None,
    )
    db_session.commit()

    monthly = services.monthly_report(db_session, month=3, year=2024)
    assert [row.daily_total for row in monthly.rows] == [Decimal("2500.00"), Decimal("500.00")]
    assert monthly.total == Decimal("3000.00")

    ratio = services.expense_vs_sales(db_session, month=3, year=2024)
    assert ratio.expense_total == Decimal("3000.00")
    assert ratio.sales_total == Decimal("12000.00")
    assert ratio.expense_ratio == Decimal("25.00")

    with pytest.raises(HTTPException):
        services.expense_vs_sales(db_session, month=0, year=2024)
