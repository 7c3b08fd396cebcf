from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor, require_roles
from finsuite.apps.accounts import models as account_models

from . import schemas, services

router = APIRouter(prefix="/api/banks", tags=["banks"])

BANK_ADMIN_ROLES = [account_models.AccountRole.FINANCE_MANAGER]


@router.get("", response_model=List[schemas.BankRead])
def list_banks(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_banks(db)


@router.post("/transfer", response_model=schemas.BankTransferResult, status_code=status.HTTP_201_CREATED)
def transfer(
    payload: schemas.BankTransferCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.transfer(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.get("/{bank_id}", response_model=schemas.BankRead)
def get_bank(
    bank_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_bank(db, bank_id)


@router.get("/{bank_id}/ledger", response_model=schemas.BankLedger)
def bank_ledger(
    bank_id: int,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.bank_ledger(db, bank_id=bank_id, date_from=date_from, date_to=date_to)


@router.get("/{bank_id}/reconciliation", response_model=schemas.ReconciliationStatement)
def reconciliation(
    bank_id: int,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.reconciliation(db, bank_id=bank_id, date_from=date_from, date_to=date_to)


@router.post("", response_model=schemas.BankRead, status_code=status.HTTP_201_CREATED)
def create_bank(
    payload: schemas.BankCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*BANK_ADMIN_ROLES)),
):
    bank = services.create_bank(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_bank(db, bank.id)


@router.patch("/{bank_id}", response_model=schemas.BankRead)
def update_bank(
    bank_id: int,
    payload: schemas.BankUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_roles(*BANK_ADMIN_ROLES)),
):
    services.update_bank(db, bank_id=bank_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_bank(db, bank_id)


@router.post(
    "/{bank_id}/transactions",
    response_model=schemas.BankTransactionResult,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    bank_id: int,
    payload: schemas.BankTransactionCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.create_transaction(db, bank_id=bank_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result
