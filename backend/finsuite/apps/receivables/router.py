from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from finsuite.database import get_db, get_read_db
from finsuite.security import get_current_active_user, require_not_auditor
from finsuite.apps.accounts import models as account_models
from finsuite.apps.exports import documents

from . import models, schemas, services

router = APIRouter(prefix="/api/receivables", tags=["receivables"])


@router.get("/customers", response_model=List[schemas.CustomerRead])
def list_customers(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_customers(db)


@router.get("/customers/with-balance", response_model=List[schemas.CustomerBalance])
def customers_with_balance(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.customers_with_balance(db)


@router.post("/customers", response_model=schemas.CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: schemas.CustomerCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    customer = services.create_customer(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(customer)
    return customer


@router.patch("/customers/{customer_id}", response_model=schemas.CustomerRead)
def update_customer(
    customer_id: int,
    payload: schemas.CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    customer = services.update_customer(db, customer_id=customer_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("", response_model=List[schemas.ReceivableRead])
def list_receivables(
    customer_id: Optional[int] = None,
    branch_id: Optional[int] = None,
    status_filter: Optional[models.ReceivableStatus] = Query(None, alias="status"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_receivables(
        db,
        customer_id=customer_id,
        branch_id=branch_id,
        status_filter=status_filter,
    )


@router.get("/overdue", response_model=List[schemas.ReceivableRead])
def list_overdue(
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_overdue(db)


@router.get("/branch-ledger", response_model=List[schemas.BranchReceivableSummary])
def branch_summary(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.branch_summary(db, date_from=date_from, date_to=date_to)


@router.get("/branch-ledger/export")
def export_branch_summary(
    type: Optional[str] = None,
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    kind = documents.export_type(type)
    return services.export_branch_summary(db, kind=kind, date_from=date_from, date_to=date_to)


@router.get("/branch-ledger/{branch_id}", response_model=schemas.BranchLedger)
def branch_ledger(
    branch_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.branch_ledger(db, branch_id=branch_id)


@router.get("/ledger/{customer_id}", response_model=schemas.CustomerLedger)
def customer_ledger(
    customer_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.customer_ledger(db, customer_id=customer_id)


@router.get("/ledger/{customer_id}/pdf")
def customer_ledger_pdf(
    customer_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.export_customer_ledger(db, customer_id=customer_id, kind="pdf")


@router.get("/ledger/{customer_id}/export")
def export_customer_ledger(
    customer_id: int,
    type: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    kind = documents.export_type(type)
    return services.export_customer_ledger(db, customer_id=customer_id, kind=kind)


@router.get("/{receivable_id}", response_model=schemas.ReceivableRead)
def get_receivable(
    receivable_id: int,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_receivable(db, receivable_id)


@router.post("", response_model=schemas.ReceivableRead, status_code=status.HTTP_201_CREATED)
def create_receivable(
    payload: schemas.ReceivableCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    receivable = services.create_receivable(db, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_receivable(db, receivable.id)


@router.post("/{receivable_id}/recover", response_model=schemas.RecoveryResult)
def recover(
    receivable_id: int,
    payload: schemas.RecoveryCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    result = services.recover(db, receivable_id=receivable_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return result


@router.patch("/{receivable_id}", response_model=schemas.ReceivableRead)
def update_receivable(
    receivable_id: int,
    payload: schemas.ReceivableUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_not_auditor),
):
    services.update_receivable(db, receivable_id=receivable_id, data=payload, actor_user_id=current_user.id)
    db.commit()
    return services.get_receivable(db, receivable_id)
