from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from finsuite.apps.audit import services as audit_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.exports import documents
from finsuite.apps.payments import models as payment_models
from finsuite.apps.settings import branding
from finsuite.utils.money import ZERO, money

from . import models, schemas

logger = logging.getLogger(__name__)

SLIP_FORMATS = ("a4", "thermal")


def compute_net_salary(*, base: Decimal, commission: Decimal, advances: Decimal, deductions: Decimal) -> Decimal:
    return money(money(base) + money(commission) - money(advances) - money(deductions))


def _staff_query(db: Session):
    return db.query(models.Staff, branch_models.Branch.name).outerjoin(
        branch_models.Branch, branch_models.Branch.id == models.Staff.branch_id
    )


def _to_read(staff: models.Staff, branch_name: Optional[str]) -> schemas.StaffRead:
    item = schemas.StaffRead.model_validate(staff)
    item.branch_name = branch_name
    return item


def list_staff(db: Session, *, branch_id: Optional[int] = None) -> List[schemas.StaffRead]:
    query = _staff_query(db)
    if branch_id:
        query = query.filter(models.Staff.branch_id == branch_id)
    return [_to_read(staff, branch_name) for staff, branch_name in query.order_by(models.Staff.name).all()]


def get_staff_or_404(db: Session, staff_id: int) -> models.Staff:
    staff = db.query(models.Staff).filter(models.Staff.id == staff_id).first()
    if not staff:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff not found.")
    return staff


def _staff_read(db: Session, staff_id: int) -> schemas.StaffRead:
    row = _staff_query(db).filter(models.Staff.id == staff_id).first()
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Staff not found.")
    return _to_read(*row)


def get_staff(db: Session, staff_id: int) -> schemas.StaffDetail:
    read = _staff_read(db, staff_id)
    records = (
        db.query(models.SalaryRecord)
        .filter(models.SalaryRecord.staff_id == staff_id)
        .order_by(models.SalaryRecord.month_year.desc())
        .all()
    )
    return schemas.StaffDetail(
        **read.model_dump(),
        salary_records=[schemas.SalaryRecordRead.model_validate(record) for record in records],
    )


def create_staff(db: Session, *, data: schemas.StaffCreate, actor_user_id: Optional[str]) -> models.Staff:
    staff = models.Staff(
        name=data.name.strip(),
        branch_id=data.branch_id,
        fixed_salary=money(data.fixed_salary),
        commission_rate=money(data.commission_rate),
        contact=data.contact,
        joined_date=data.joined_date,
    )
    db.add(staff)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="staff",
        action="create",
        entity_id=staff.id,
        details=staff.name,
    )
    return staff


def update_staff(
    db: Session,
    *,
    staff_id: int,
    data: schemas.StaffUpdate,
    actor_user_id: Optional[str],
) -> models.Staff:
    staff = get_staff_or_404(db, staff_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No updates.")
    for field, value in changes.items():
        if field in ("fixed_salary", "commission_rate"):
            value = money(value)
        setattr(staff, field, value)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="staff",
        action="update",
        entity_id=staff.id,
        metadata={"fields": sorted(changes)},
    )
    return staff


def process_salary(
    db: Session,
    *,
    staff_id: int,
    data: schemas.SalaryProcess,
    actor_user_id: Optional[str],
) -> models.SalaryRecord:
    staff = get_staff_or_404(db, staff_id)
    exists = (
        db.query(models.SalaryRecord.id)
        .filter(models.SalaryRecord.staff_id == staff.id, models.SalaryRecord.month_year == data.month_year)
        .first()
    )
    if exists:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Salary already processed for this month.",
        )
    base = money(staff.fixed_salary if data.base_salary is None else data.base_salary)
    record = models.SalaryRecord(
        staff_id=staff.id,
        month_year=data.month_year,
        base_salary=base,
        commission=money(data.commission),
        advances=money(data.advances),
        deductions=money(data.deductions),
        net_salary=compute_net_salary(
            base=base,
            commission=data.commission,
            advances=data.advances,
            deductions=data.deductions,
        ),
        status=models.SalaryStatus.PROCESSED,
    )
    db.add(record)
    db.flush()
    audit_services.log_event(
        db,
        actor_user_id=actor_user_id,
        module="staff",
        action="salary",
        entity_id=staff.id,
        details=f"{record.month_year} net {record.net_salary}",
    )
    return record


def staff_ledger(db: Session, *, staff_id: int) -> schemas.StaffLedger:
    staff = _staff_read(db, staff_id)
    salaries = (
        db.query(models.SalaryRecord)
        .filter(models.SalaryRecord.staff_id == staff_id)
        .order_by(models.SalaryRecord.month_year.desc())
        .all()
    )
    payments = (
        db.query(payment_models.Payment, models.SalaryRecord.month_year)
        .join(
            models.SalaryRecord,
            (payment_models.Payment.reference_type == payment_models.PaymentReferenceType.SALARY)
            & (payment_models.Payment.reference_id == models.SalaryRecord.id),
        )
        .filter(models.SalaryRecord.staff_id == staff_id)
        .order_by(payment_models.Payment.payment_date.desc(), payment_models.Payment.id.desc())
        .all()
    )
    total_salary = money(sum((money(r.net_salary) for r in salaries), ZERO))
    total_paid = money(sum((money(p.amount) for p, _ in payments), ZERO))
    return schemas.StaffLedger(
        staff=staff,
        salaries=[schemas.SalaryRecordRead.model_validate(r) for r in salaries],
        payments=[
            schemas.SalaryPaymentRead(
                id=payment.id,
                reference_id=payment.reference_id,
                month_year=month_year,
                amount=money(payment.amount),
                payment_date=payment.payment_date,
                mode=payment.mode,
                remarks=payment.remarks,
            )
            for payment, month_year in payments
        ],
        total_salary=total_salary,
        total_paid=total_paid,
        pending=money(total_salary - total_paid),
    )


def salary_expense(db: Session, *, month_year: str) -> schemas.SalaryExpense:
    rows = (
        db.query(models.SalaryRecord, models.Staff.name, models.Staff.branch_id, branch_models.Branch.name)
        .join(models.Staff, models.Staff.id == models.SalaryRecord.staff_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Staff.branch_id)
        .filter(
            models.SalaryRecord.month_year == month_year,
            models.SalaryRecord.status == models.SalaryStatus.PROCESSED,
        )
        .order_by(models.Staff.name)
        .all()
    )
    items = [
        schemas.SalaryExpenseRow(
            **schemas.SalaryRecordRead.model_validate(record).model_dump(),
            staff_name=staff_name,
            branch_id=branch_id,
            branch_name=branch_name,
        )
        for record, staff_name, branch_id, branch_name in rows
    ]
    return schemas.SalaryExpense(
        month_year=month_year,
        rows=items,
        total=money(sum((item.net_salary for item in items), ZERO)),
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


def export_ledger(db: Session, *, staff_id: int, kind: str):
    ledger = staff_ledger(db, staff_id=staff_id)
    company = branding.get_company_profile(db)
    staff = ledger.staff
    filename = f"staff-ledger-{documents.safe_filename(staff.name, str(staff_id))}"
    salary_headers = ["Month", "Base Salary", "Commission", "Advances", "Deductions", "Net", "Status"]
    salary_rows = [
        [r.month_year, r.base_salary, r.commission, r.advances, r.deductions, r.net_salary, r.status]
        for r in ledger.salaries
    ]
    payment_headers = ["Payment Date", "Month", "Mode", "Amount", "Remarks"]
    payment_rows = [[p.payment_date, p.month_year, p.mode, p.amount, p.remarks] for p in ledger.payments]
    totals = [
        f"Total salary: {ledger.total_salary:,.2f}",
        f"Total paid: {ledger.total_paid:,.2f}",
        f"Pending: {ledger.pending:,.2f}",
    ]

    if kind == "pdf":
        lines = []
        if staff.branch_name:
            lines.append(f"Branch: {staff.branch_name}")
        if staff.contact:
            lines.append(f"Contact: {staff.contact}")
        document = documents.PdfDocument(
            title="Staff Ledger",
            subtitle=staff.name,
            lines=lines + totals,
            sections=[
                documents.Section(title="Salaries", headers=salary_headers, rows=salary_rows),
                documents.Section(title="Payments", headers=payment_headers, rows=payment_rows),
            ],
        )
        return documents.pdf_response(company, document, filename=filename)

    sheets = [
        documents.Sheet(name="Salaries", title=f"Staff Ledger - {staff.name}", headers=salary_headers, rows=salary_rows),
        documents.Sheet(name="Payments", title=f"Payments - {staff.name}", headers=payment_headers, rows=payment_rows),
        documents.Sheet(
            name="Summary",
            title=f"Staff Ledger - {staff.name}",
            headers=[],
            rows=[
                ["Staff", staff.name],
                ["Total salary", ledger.total_salary],
                ["Total paid", ledger.total_paid],
                ["Pending", ledger.pending],
            ],
        ),
    ]
    return documents.xlsx_response(company, sheets, filename=filename)


def salary_slip(db: Session, *, salary_id: int, slip_format: Optional[str] = None):
    """Printable slip; `thermal` renders on an 80 mm roll, anything else on A4."""
    row = (
        db.query(models.SalaryRecord, models.Staff.name, models.Staff.contact, branch_models.Branch.name)
        .join(models.Staff, models.Staff.id == models.SalaryRecord.staff_id)
        .outerjoin(branch_models.Branch, branch_models.Branch.id == models.Staff.branch_id)
        .filter(models.SalaryRecord.id == salary_id)
        .first()
    )
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Salary record not found.")
    record, staff_name, contact, branch_name = row
    fmt = (slip_format or "a4").lower()
    if fmt not in SLIP_FORMATS:
        fmt = "a4"

    lines = [f"Staff: {staff_name}"]
    if branch_name:
        lines.append(f"Branch: {branch_name}")
    if contact:
        lines.append(f"Contact: {contact}")
    images = [path for path in (branding.find_asset("signature.png"), branding.find_asset("stamp.png")) if path]
    document = documents.PdfDocument(
        title="Salary Slip",
        subtitle=f"Month: {record.month_year}",
        lines=lines,
        sections=[
            documents.Section(
                headers=["Item", "Amount"],
                rows=[
                    ["Base Salary", money(record.base_salary)],
                    ["Commission", money(record.commission)],
                    ["Advances", money(record.advances)],
                    ["Deductions", money(record.deductions)],
                    ["Net Salary", money(record.net_salary)],
                ],
            )
        ],
        footer_lines=[f"Status: {record.status.value}"],
        images=images,
        thermal=fmt == "thermal",
    )
    company = branding.get_company_profile(db)
    filename = f"salary-slip-{documents.safe_filename(staff_name, 'staff')}-{record.month_year}-{fmt}"
    return documents.pdf_response(company, document, filename=filename)
