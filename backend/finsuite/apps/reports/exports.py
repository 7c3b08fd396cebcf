from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from finsuite.apps.exports import documents
from finsuite.apps.inventory import services as inventory_services
from finsuite.apps.purchases import services as purchase_services
from finsuite.apps.sales import services as sale_services
from finsuite.apps.settings import branding
from finsuite.utils.dates import today

from . import services

MODULES = ("sales", "purchases", "inventory", "branch_summary", "daily_combined")
UNSUPPORTED_TYPE_DETAIL = "Unsupported export type. Use xlsx or pdf."

SALE_HEADERS = ["Date", "Branch", "Type", "Cash", "Bank", "Credit", "Discount", "Returns", "Net sales"]
PURCHASE_HEADERS = ["Date", "Branch", "Supplier", "Invoice", "Total", "Paid", "Balance"]
INVENTORY_HEADERS = ["Date", "Branch", "Product", "Quantity", "Unit price", "Total"]
BRANCH_SUMMARY_HEADERS = ["Branch", "Total sales", "Cash sales", "Bank sales", "Purchases"]


def _sale_rows(sales):
    return [
        [
            s.sale_date,
            s.branch_name,
            s.type,
            s.cash_amount,
            s.bank_amount,
            s.credit_amount,
            s.discount,
            s.returns_amount,
            s.net_sales,
        ]
        for s in sales
    ]


def _purchase_rows(purchases):
    return [
        [p.purchase_date, p.branch_name, p.supplier_name, p.invoice_no, p.total_amount, p.paid_amount, p.balance]
        for p in purchases
    ]


def _module_table(db: Session, module: str, *, date_from, date_to, branch_id):
    span = f"{date_from or 'all'}_{date_to or 'all'}"
    if module == "sales":
        sales = sale_services.sales_between(db, date_from=date_from, date_to=date_to, branch_id=branch_id)
        return f"sales_{span}", SALE_HEADERS, _sale_rows(sales)
    if module == "purchases":
        purchases = purchase_services.list_purchases(
            db, branch_id=branch_id, date_from=date_from, date_to=date_to
        )
        return f"purchases_{span}", PURCHASE_HEADERS, _purchase_rows(purchases)
    if module == "inventory":
        items = inventory_services.list_sales(db, branch_id=branch_id, date_from=date_from, date_to=date_to)
        rows = [[i.sale_date, i.branch_name, i.product_name, i.quantity, i.unit_price, i.total] for i in items]
        return f"inventory_{span}", INVENTORY_HEADERS, rows
    summary = services.branch_summary(db, date_from=date_from, date_to=date_to)
    rows = [
        [r.branch_name, r.total_sales, r.cash_sales, r.bank_sales, r.total_purchases] for r in summary.rows
    ]
    return f"branch_summary_{span}", BRANCH_SUMMARY_HEADERS, rows


def _daily_combined(db: Session, kind: str, *, report_date: Optional[date], branch_id: Optional[int]):
    report = services.daily_combined(db, report_date=report_date or today(), branch_id=branch_id)
    company = branding.get_company_profile(db)
    filename = f"daily_combined_{report.report_date.isoformat()}_{report.branch_id or 'all'}"
    title = f"Daily combined report - {report.report_date.isoformat()}"
    summary = [
        ["Date", report.report_date],
        ["Branch", report.branch_id or "All"],
        ["Total sales", report.sales_total],
        ["Total purchases", report.purchase_total],
    ]
    sale_rows = _sale_rows(report.sales_rows)
    purchase_rows = _purchase_rows(report.purchase_rows)

    if kind == "pdf":
        document = documents.PdfDocument(
            title=title,
            lines=[f"{label}: {documents.format_cell(value)}" for label, value in summary],
            sections=[
                documents.Section(title="Sales", headers=SALE_HEADERS, rows=sale_rows),
                documents.Section(title="Purchases", headers=PURCHASE_HEADERS, rows=purchase_rows),
            ],
        )
        return documents.pdf_response(company, document, filename=filename)

    sheets = [
        documents.Sheet(name="Sales", title=title, headers=SALE_HEADERS, rows=sale_rows),
        documents.Sheet(name="Purchases", title=title, headers=PURCHASE_HEADERS, rows=purchase_rows),
        documents.Sheet(name="Summary", title=title, headers=[], rows=summary),
    ]
    return documents.xlsx_response(company, sheets, filename=filename)


def export_report(
    db: Session,
    *,
    kind: Optional[str],
    module: Optional[str],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    branch_id: Optional[int] = None,
    report_date: Optional[date] = None,
):
    if not kind or not module:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="type and module required")
    kind = documents.export_type(kind, unsupported_detail=UNSUPPORTED_TYPE_DETAIL)
    if module not in MODULES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unsupported module.")

    if module == "daily_combined":
        return _daily_combined(db, kind, report_date=report_date, branch_id=branch_id)

    filename, headers, rows = _module_table(
        db, module, date_from=date_from, date_to=date_to, branch_id=branch_id
    )
    company = branding.get_company_profile(db)
    title = f"{module.replace('_', ' ').upper()} report"
    if kind == "pdf":
        document = documents.PdfDocument(
            title=title,
            sections=[documents.Section(headers=headers, rows=rows)],
        )
        return documents.pdf_response(company, document, filename=filename)
    sheet = documents.Sheet(name="Report", title=title, headers=headers, rows=rows)
    return documents.xlsx_response(company, [sheet], filename=filename)
