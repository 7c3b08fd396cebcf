from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.branches import models as branch_models
from finsuite.apps.inventory import models, schemas, services


def _create_product(db, name="Cooking oil 1L", unit_price="250"):
    product = services.create_product(
        db, data=schemas.ProductCreate(name=name, sku=name[:4].upper(), unit_price=Decimal(unit_price)), actor_user_id=None
    )
    db.commit()
    return product


def test_same_day_entries_merge_at_first_price(db_session):
    product = _create_product(db_session)
    sale_date = date(2024, 10, 3)

    first = services.record_sale(
        db_session,
        data=schemas.InventorySaleCreate(product_id=product.id, sale_date=sale_date, quantity=Decimal("4")),
        actor_user_id=None,
    )
    second = services.record_sale(
        db_session,
        data=schemas.InventorySaleCreate(
            product_id=product.id, sale_date=sale_date, quantity=Decimal("2"), unit_price=Decimal("300")
        ),
        actor_user_id=None,
    )
    db_session.commit()

    assert first.merged is False
    assert second.merged is True
    assert second.id == first.id
    assert second.quantity == Decimal("6.00")
    assert second.unit_price == Decimal("250.00")
    assert second.total == Decimal("1500.00")
    assert db_session.query(models.InventorySale).count() == 1


def test_entries_for_different_branches_stay_separate(db_session):
    product = _create_product(db_session)
    branch = branch_models.Branch(name="Thika", code="THK", opening_cash=Decimal("0"))
    db_session.add(branch)
    db_session.commit()

    for branch_id in (None, branch.id):
        services.record_sale(
            db_session,
            data=schemas.InventorySaleCreate(
                product_id=product.id, branch_id=branch_id, sale_date=date(2024, 10, 3), quantity=Decimal("1")
            ),
            actor_user_id=None,
        )
    db_session.commit()

    assert db_session.query(models.InventorySale).count() == 2
    rows = services.list_sales(db_session, branch_id=branch.id)
    assert [row.branch_name for row in rows] == ["Thika"]


def test_record_sale_rejects_non_positive_quantity(db_session):
    product = _create_product(db_session)

    with pytest.raises(HTTPException) as exc:
        services.record_sale(
            db_session,
            data=schemas.InventorySaleCreate(product_id=product.id, quantity=Decimal("0")),
            actor_user_id=None,
        )
    assert exc.value.detail == "Invalid quantity."


def test_summary_orders_by_quantity_sold(db_session):
    oil = _create_product(db_session)
    sugar = _create_product(db_session, name="Sugar 2kg", unit_price="180")
    services.record_sale(
        db_session,
        data=schemas.InventorySaleCreate(product_id=oil.id, sale_date=date(2024, 10, 1), quantity=Decimal("3")),
        actor_user_id=None,
    )
    services.record_sale(
        db_session,
        data=schemas.InventorySaleCreate(product_id=sugar.id, sale_date=date(2024, 10, 1), quantity=Decimal("10")),
        actor_user_id=None,
    )
    db_session.commit()

    summary = services.sales_summary(db_session)

    assert [row.product_name for row in summary] == ["Sugar 2kg", "Cooking oil 1L"]
    assert summary[0].total_amount == Decimal("1800.00")


def test_delete_product_removes_its_sales(db_session):
    product = _create_product(db_session)
    services.record_sale(
        db_session,
        data=schemas.InventorySaleCreate(product_id=product.id, quantity=Decimal("1")),
        actor_user_id=None,
    )
    db_session.commit()

    services.delete_product(db_session, product_id=product.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(models.InventorySale).count() == 0
    with pytest.raises(HTTPException):
        services.get_product_or_404(db_session, product.id)
