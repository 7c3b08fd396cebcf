from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/inventory", tags=["inventory"])

INVENTORY_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("/products", response_model=List[schemas.ProductRead])
def list_products(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_products(db)


@router.get("/products/{product_id}", response_model=schemas.ProductRead)
def get_product(
    product_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_product_or_404(db, product_id)


@router.post("/products", response_model=schemas.ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    product = services.create_product(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(product)
    return product


@router.patch("/products/{product_id}", response_model=schemas.ProductRead)
def update_product(
    product_id: int,
    payload: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    product = services.update_product(db, product_id=product_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(product)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*INVENTORY_ADMIN_ROLES)),
):
    services.delete_product(db, product_id=product_id, actor_user_id=current_user.id)
    db.commit()


@router.get("/sales", response_model=List[schemas.InventorySaleRead])
def list_sales(
    product_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_sales(
        db,
        product_id=product_id,
        branch_id=branch_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/sales/summary", response_model=List[schemas.ProductSalesSummary])
def sales_summary(
    product_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.sales_summary(
        db,
        product_id=product_id,
        branch_id=branch_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/sales", response_model=schemas.InventorySaleResult, status_code=status.HTTP_201_CREATED)
def record_sale(
    payload: schemas.InventorySaleCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.record_sale(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.patch("/sales/{sale_id}", response_model=schemas.InventorySaleResult)
def update_sale(
    sale_id: int,
    payload: schemas.InventorySaleUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    sale = services.update_sale(db, sale_id=sale_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return schemas.InventorySaleResult(
        id=sale.id,
        quantity=sale.quantity,
        unit_price=sale.unit_price,
        total=sale.total,
    )


@router.delete("/sales/{sale_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*INVENTORY_ADMIN_ROLES)),
):
    services.delete_sale(db, sale_id=sale_id, actor_user_id=current_user.id)
    db.commit()
