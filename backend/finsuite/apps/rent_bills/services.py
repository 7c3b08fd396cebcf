from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from finsuite.apps.attachments import models as attachment_models
from finsuite.apps.attachments import services as attachment_services
from finsuite.apps.audit import services as audit_services
from finsuite.apps.banks import models as bank_models
from finsuite.apps.exports import documents
from finsuite.apps.payments import models as payment_models
from finsuite.apps.payments import schemas as payment_schemas
from finsuite.apps.settings import branding
from finsuite.utils.dates import today
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "bill"


def bill_status(amount, paid_amount) -> models.RentBillStatus:
    amount, paid = money(amount), money(paid_amount)
    if paid <= 0:
        return models.RentBillStatus.PENDING
    if paid >= amount:
        return models.RentBillStatus.PAID
    return models.RentBillStatus.PARTIAL


def _ordered(query):
    return query.order_by(models.RentBill.due_date.is_(None), models.RentBill.due_date.asc(), models.RentBill.id.desc())


def list_bills(
    db: Session,
    *,
    category: Optional[str] = None,
    status_filter: Optional[models.RentBillStatus] = None,
) -> List[models.RentBill]:
    query = db.query(models.RentBill)
    if category:
        query = query.filter(models.RentBill.category == category)
    if status_filter:
        query = query.filter(models.RentBill.status == status_filter)
    return _ordered(query).all()


def get_bill_or_404(db: Session, bill_id: int) -> models.RentBill:
    bill = db.query(models.RentBill).filter(models.RentBill.id == bill_id).first()
    if not bill:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rent/Bill not found.")
    return bill


def get_bill(db: Session, bill_id: int) -> schemas.RentBillDetail:
    bill = get_bill_or_404(db, bill_id)
    attachments = attachment_services.list_attachments(
        db, owner_type=attachment_models.AttachmentOwner.RENT_BILL, owner_id=bill.id
    )
    return schemas.RentBillDetail(**schemas.RentBillRead.model_validate(bill).model_dump(), attachments=attachments)


def create_bill(db: Session, *, data: schemas.RentBillCreate, actor_user_id: Optional[str]) -> models.RentBill:
    title = (data.title or "").strip()
    if not title or data.amount is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and amount required.")
    bill = models.RentBill(
        title=title,
        category=data.category or DEFAULT_CATEGORY,
        amount=money(data.amount),
        paid_amount=ZERO,
        status=models.RentBillStatus.PENDING,
        due_date=data.due_date,
        remarks=data.remarks or None,
    )
    db.add(bill)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="rent_bills",
        action="create",
        entity_id=bill.id,
        details=title,
    )
    return bill


def update_bill(
    db: Session,
    *,
    bill_id: int,
    data: schemas.RentBillUpdate,
    actor_user_id: Optional[str],
) -> models.RentBill:
    bill = get_bill_or_404(db, bill_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        return bill
    if "title" in changes and not (changes["title"] or "").strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and amount required.")
    if "amount" in changes:
        if changes["amount"] is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Title and amount required.")
        changes["amount"] = money(changes["amount"])
    for field, value in changes.items():
        setattr(bill, field, value)
    bill.status = bill_status(bill.amount, bill.paid_amount)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="rent_bills",
        action="update",
        entity_id=bill.id,
        metadata={"fields": sorted(changes)},
    )
    return bill


def delete_bill(db: Session, *, bill_id: int, actor_user_id: Optional[str]) -> None:
    bill = get_bill_or_404(db, bill_id)
    attachment_services.delete_for_owner(db, owner_type=attachment_models.AttachmentOwner.RENT_BILL, owner_id=bill.id)
    db.delete(bill)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="rent_bills",
        action="delete",
        entity_id=bill_id,
        details=bill.title,
        critical=True,
    )


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


def _payments_by_bill(db: Session) -> Dict[int, List[payment_schemas.PaymentRead]]:
    rows = (
        db.query(payment_models.Payment, bank_models.Bank.name)
        .outerjoin(bank_models.Bank, bank_models.Bank.id == payment_models.Payment.bank_id)
        .filter(payment_models.Payment.reference_type == payment_models.PaymentReferenceType.RENT_BILL)
        .order_by(payment_models.Payment.payment_date.asc(), payment_models.Payment.id.asc())
        .all()
    )
    grouped: Dict[int, List[payment_schemas.PaymentRead]] = {}
    for payment, bank_name in rows:
        item = payment_schemas.PaymentRead.model_validate(payment)
        item.bank_name = bank_name
        grouped.setdefault(payment.reference_id, []).append(item)
    return grouped


def bills_ledger(db: Session) -> schemas.RentBillLedger:
    payments = _payments_by_bill(db)
    items = []
    for bill in _ordered(db.query(models.RentBill)).all():
        amount = money(bill.amount)
        paid = money(bill.paid_amount)
        items.append(
            schemas.RentBillLedgerItem(
                bill=schemas.RentBillRead.model_validate(bill),
                payments=payments.get(bill.id, []),
                total_amount=amount,
                total_paid=paid,
                balance=money(amount - paid),
            )
        )
    total_amount = money(sum((item.total_amount for item in items), ZERO))
    total_paid = money(sum((item.total_paid for item in items), ZERO))
    return schemas.RentBillLedger(
        items=items,
        total_amount=total_amount,
        total_paid=total_paid,
        total_balance=money(total_amount - total_paid),
    )


def export_ledger(db: Session, *, kind: str):
    ledger = bills_ledger(db)
    company = branding.get_company_profile(db)
    title = "Rent & Bills Ledger"
    filename = f"rent-bills-ledger-{today().isoformat()}"
    headers = ["Title", "Category", "Amount", "Paid", "Balance", "Due Date", "Status"]
    rows = [
        [
            item.bill.title,
            item.bill.category or DEFAULT_CATEGORY,
            item.total_amount,
            item.total_paid,
            item.balance,
            item.bill.due_date,
            item.bill.status,
        ]
        for item in ledger.items
    ]

    if kind == "pdf":
        document = documents.PdfDocument(
            title=title,
            lines=[
                f"Total amount: {ledger.total_amount:,.2f} | Total paid: {ledger.total_paid:,.2f}"
                f" | Balance: {ledger.total_balance:,.2f}"
            ],
            sections=[documents.Section(headers=headers, rows=rows)],
        )
        return documents.pdf_response(company, document, filename=filename)

    sheets = [
        documents.Sheet(name="Rent & Bills Ledger", title=title, headers=headers, rows=rows),
        documents.Sheet(
            name="Summary",
            title=title,
            headers=[],
            rows=[
                ["Total amount", ledger.total_amount],
                ["Total paid", ledger.total_paid],
                ["Total balance", ledger.total_balance],
            ],
        ),
    ]
    return documents.xlsx_response(company, sheets, filename=filename)
