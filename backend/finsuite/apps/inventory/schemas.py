from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finsuite.utils.money import Money


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    sku: Optional[str] = None
    unit_price: Decimal = Decimal("0")


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    unit_price: Optional[Decimal] = None


class ProductRead(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    unit_price: Money
    created_at: datetime

    class Config:
        from_attributes = True


class InventorySaleCreate(BaseModel):
    product_id: int
    branch_id: Optional[int] = None
    sale_date: Optional[date] = None
    quantity: Decimal
    # Defaults to the product's list price.
    unit_price: Optional[Decimal] = None


class InventorySaleUpdate(BaseModel):
    sale_date: Optional[date] = None
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None


class InventorySaleRead(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    branch_id: Optional[int] = None
    branch_name: Optional[str] = None
    sale_date: date
    quantity: Money
    unit_price: Money
    total: Money
    created_at: datetime

    class Config:
        from_attributes = True


class InventorySaleResult(BaseModel):
    id: int
    quantity: Money
    unit_price: Money
    total: Money
    merged: bool = False


class ProductSalesSummary(BaseModel):
    product_id: int
    product_name: Optional[str] = None
    sku: Optional[str] = None
    total_quantity_sold: Money
    total_amount: Money
