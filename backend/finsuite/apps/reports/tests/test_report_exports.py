from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.branches import models as branch_models
from finsuite.apps.reports import exports
from finsuite.apps.sales import schemas as sale_schemas
from finsuite.apps.sales import services as sale_services


@pytest.mark.parametrize(
    ("kind", "module", "detail"),
    [
        (None, "sales", "type and module required"),
        ("xlsx", None, "type and module required"),
        ("csv", "sales", "Unsupported export type. Use xlsx or pdf."),
        ("xlsx", "payroll", "Unsupported module."),
    ],
)
def test_export_report_rejects_bad_requests(db_session, kind, module, detail):
    with pytest.raises(HTTPException) as exc:
        exports.export_report(db_session, kind=kind, module=module)
    assert exc.value.status_code == 400
    assert exc.value.detail == detail


def test_sales_export_is_named_after_the_range(db_session):
    branch = branch_models.Branch(name="Main", code="MAIN", opening_cash=Decimal("0"))
    db_session.add(branch)
    db_session.commit()
    sale_services.create_sale(
        db_session,
        data=sale_schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 5, 2), cash_amount=Decimal("75")),
        actor_user_id=None,
    )
    db_session.commit()

    response = exports.export_report(
        db_session, kind="xlsx", module="sales", date_from=date(2024, 5, 1), date_to=date(2024, 5, 31)
    )

    assert response.media_type == exports.documents.XLSX_MEDIA_TYPE
    assert response.headers["content-disposition"] == 'attachment; filename="sales_2024-05-01_2024-05-31.xlsx"'


def test_branch_summary_pdf_without_range(db_session):
    response = exports.export_report(db_session, kind="pdf", module="branch_summary")

    assert response.headers["content-disposition"] == 'attachment; filename="branch_summary_all_all.pdf"'
