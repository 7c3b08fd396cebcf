from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.branches import models as branch_models
from finsuite.utils.dates import today
from finsuite.utils.money import money

from . import models, schemas

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def list_products(db: Session) -> List[models.Product]:
    return db.query(models.Product).order_by(models.Product.name).all()


def get_product_or_404(db: Session, product_id: int) -> models.Product:
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found.")
    return product


def create_product(db: Session, *, data: schemas.ProductCreate, actor_user_id: Optional[str]) -> models.Product:
    product = models.Product(name=data.name.strip(), sku=data.sku or None, unit_price=money(data.unit_price))
    db.add(product)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory",
        action="create",
        entity_id=product.id,
        details=product.name,
    )
    return product


def update_product(
    db: Session,
    *,
    product_id: int,
    data: schemas.ProductUpdate,
    actor_user_id: Optional[str],
) -> models.Product:
    product = get_product_or_404(db, product_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    for field, value in changes.items():
        if field == "unit_price":
            value = money(value)
        setattr(product, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory",
        action="update",
        entity_id=product.id,
        metadata={"fields": sorted(changes)},
    )
    return product


def delete_product(db: Session, *, product_id: int, actor_user_id: Optional[str]) -> None:
    product = get_product_or_404(db, product_id)
    db.query(models.InventorySale).filter(models.InventorySale.product_id == product.id).delete(
        synchronize_session=False
    )
    db.delete(product)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory",
        action="delete",
        entity_id=product_id,
        critical=True,
    )


# ---------------------------------------------------------------------------
# Item sales
# ---------------------------------------------------------------------------


def _apply_filters(query, *, product_id, branch_id, date_from, date_to):
    if product_id:
        query = query.filter(models.InventorySale.product_id == product_id)
    if branch_id:
        query = query.filter(models.InventorySale.branch_id == branch_id)
    if date_from:
        query = query.filter(models.InventorySale.sale_date >= date_from)
    if date_to:
        query = query.filter(models.InventorySale.sale_date <= date_to)
    return query


def list_sales(
    db: Session,
    *,
    product_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.InventorySaleRead]:
    query = (
        db.query(models.InventorySale, models.Product.name, models.Product.sku, branch_models.Branch.name)
        .outerjoin(models.Product, models.Product.id == models.InventorySale.product_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.InventorySale.branch_id)
    )
    query = _apply_filters(query, product_id=product_id, branch_id=branch_id, date_from=date_from, date_to=date_to)
    rows = query.order_by(models.InventorySale.sale_date.desc(), models.InventorySale.id.desc()).all()
    items = []
    for sale, product_name, sku, branch_name in rows:
        item = schemas.InventorySaleRead.model_validate(sale)
        item.product_name = product_name
        item.sku = sku
        item.branch_name = branch_name
        items.append(item)
    return items


def sales_summary(
    db: Session,
    *,
    product_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[schemas.ProductSalesSummary]:
    quantity = func.coalesce(func.sum(models.InventorySale.quantity), 0)
    query = db.query(
        models.InventorySale.product_id,
        models.Product.name,
        models.Product.sku,
        quantity.label("total_quantity_sold"),
        func.coalesce(func.sum(models.InventorySale.total), 0).label("total_amount"),
    ).outerjoin(models.Product, models.Product.id == models.InventorySale.product_id)
    query = _apply_filters(query, product_id=product_id, branch_id=branch_id, date_from=date_from, date_to=date_to)
    rows = (
        query.group_by(models.InventorySale.product_id, models.Product.name, models.Product.sku)
        .order_by(quantity.desc())
        .all()
    )
    return [
        schemas.ProductSalesSummary(
            product_id=row.product_id,
            product_name=row.name,
            sku=row.sku,
            total_quantity_sold=money(row.total_quantity_sold),
            total_amount=money(row.total_amount),
        )
        for row in rows
    ]


def get_sale_or_404(db: Session, sale_id: int) -> models.InventorySale:
    sale = db.query(models.InventorySale).filter(models.InventorySale.id == sale_id).first()
    if not sale:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found.")
    return sale


def record_sale(
    db: Session,
    *,
    data: schemas.InventorySaleCreate,
    actor_user_id: Optional[str],
) -> schemas.InventorySaleResult:
    """
    Record item sales for a product. Repeated entries for the same product,
    day and branch fold into one row at the unit price first recorded.
    """
    quantity = money(data.quantity)
    if quantity <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid quantity.")
    product = get_product_or_404(db, data.product_id)
    unit_price = money(product.unit_price if data.unit_price is None else data.unit_price)
    sale_date = data.sale_date or today()

    existing_query = db.query(models.InventorySale).filter(
        models.InventorySale.product_id == product.id,
        models.InventorySale.sale_date == sale_date,
    )
    if data.branch_id is None:
        existing_query = existing_query.filter(models.InventorySale.branch_id.is_(None))
    else:
        existing_query = existing_query.filter(models.InventorySale.branch_id == data.branch_id)
    existing = existing_query.order_by(models.InventorySale.id).first()

    if existing:
        existing.quantity = money(money(existing.quantity) + quantity)
        existing.total = money(existing.quantity * money(existing.unit_price))
        db.flush()
        sale, merged = existing, True
    else:
        sale = models.InventorySale(
            product_id=product.id,
            branch_id=data.branch_id,
            sale_date=sale_date,
            quantity=quantity,
            unit_price=unit_price,
            total=money(quantity * unit_price),
        )
        db.add(sale)
        db.flush()
        merged = False

    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory_sales",
        action="create",
        entity_id=sale.id,
        details=f"{product.name} x {quantity}",
        metadata={"merged": merged},
    )
    return schemas.InventorySaleResult(
        id=sale.id,
        quantity=money(sale.quantity),
        unit_price=money(sale.unit_price),
        total=money(sale.total),
        merged=merged,
    )


def update_sale(
    db: Session,
    *,
    sale_id: int,
    data: schemas.InventorySaleUpdate,
    actor_user_id: Optional[str],
) -> models.InventorySale:
    sale = get_sale_or_404(db, sale_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("sale_date") is not None:
        sale.sale_date = changes["sale_date"]
    if changes.get("quantity") is not None:
        quantity = money(changes["quantity"])
        if quantity <= 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid quantity.")
        sale.quantity = quantity
    if changes.get("unit_price") is not None:
        sale.unit_price = money(changes["unit_price"])
    sale.total = money(money(sale.quantity) * money(sale.unit_price))
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory_sales",
        action="update",
        entity_id=sale.id,
        metadata={"fields": sorted(changes)},
    )
    return sale


def delete_sale(db: Session, *, sale_id: int, actor_user_id: Optional[str]) -> None:
    sale = get_sale_or_404(db, sale_id)
    db.delete(sale)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="inventory_sales",
        action="delete",
        entity_id=sale_id,
        critical=True,
    )
