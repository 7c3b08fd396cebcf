from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models
from finsuite.apps.exports import documents

from . import models, schemas, services

router = APIRouter(prefix="/api/rent-bills", tags=["rent_bills"])

RENT_BILL_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=List[schemas.RentBillRead])
def list_bills(
    category: Optional[str] = None,
    status_filter: Optional[models.RentBillStatus] = Query(None, alias="status"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_bills(db, category=category, status_filter=status_filter)


@router.get("/ledger", response_model=schemas.RentBillLedger)
def bills_ledger(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.bills_ledger(db)


@router.get("/ledger/export")
def export_ledger(
    type: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    kind = documents.export_type(type)
    return services.export_ledger(db, kind=kind)


@router.get("/{bill_id}", response_model=schemas.RentBillDetail)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_bill(db, bill_id)


@router.post("", response_model=schemas.RentBillRead, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: schemas.RentBillCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    bill = services.create_bill(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(bill)
    return bill


@router.patch("/{bill_id}", response_model=schemas.RentBillRead)
def update_bill(
    bill_id: int,
    payload: schemas.RentBillUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    bill = services.update_bill(db, bill_id=bill_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(bill)
    return bill


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*RENT_BILL_ADMIN_ROLES)),
):
    services.delete_bill(db, bill_id=bill_id, actor_user_id=current_user.id)
    db.commit()
