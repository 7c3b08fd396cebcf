from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from finsuite.utils.money import Money


class BranchBase(BaseModel):
    code: Optional[str] = None
    name: str = Field(..., min_length=1)
    location: Optional[str] = None
    manager_user_id: Optional[str] = None
    opening_date: Optional[date] = None
    closing_date: Optional[date] = None
    opening_cash: Decimal = Decimal("0")
    is_active: bool = True


class BranchCreate(BranchBase):
    pass


class BranchUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    manager_user_id: Optional[str] = None
    opening_date: Optional[date] = None
    closing_date: Optional[date] = None
    opening_cash: Optional[Decimal] = None
    is_active: Optional[bool] = None


class BranchRead(BranchBase):
    id: int
    opening_cash: Money
    manager_name: Optional[str] = None
    manager_email: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BranchPerformance(BaseModel):
    total_sales: Money
    sales_count: int
    total_expenses: Money
