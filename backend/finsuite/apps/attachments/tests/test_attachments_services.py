from __future__ import annotations

from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest
from fastapi import HTTPException, UploadFile

from finsuite.apps.attachments import models, services, storage
from finsuite.apps.branches import models as branch_models
from finsuite.apps.expenses import schemas as expense_schemas
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.rent_bills import schemas as rent_bill_schemas
from finsuite.apps.rent_bills import services as rent_bill_services
from finsuite.apps.sales import schemas as sale_schemas
from finsuite.apps.sales import services as sale_services


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("FINSUITE_DATA_DIR", str(tmp_path))
    return tmp_path


def _upload(name="receipt.pdf", content=b"%PDF-1.4 receipt"):
    return UploadFile(filename=name, file=BytesIO(content), headers={"content-type": "application/pdf"})


def _create_sale(db):
    branch = branch_models.Branch(name="Main", code="MAIN", opening_cash=Decimal("0"))
    db.add(branch)
    db.commit()
    sale = sale_services.create_sale(
        db,
        data=sale_schemas.SaleCreate(branch_id=branch.id, sale_date=date(2024, 3, 5), cash_amount=Decimal("100")),
        actor_user_id=None,
    )
    db.commit()
    return sale


def _attach(db, owner_type, owner_id, *uploads):
    result = services.add_attachments(
        db, owner_type=owner_type, owner_id=owner_id, files=list(uploads), actor_user_id=None
    )
    db.commit()
    return result


def test_upload_then_list(db_session, data_dir):
    sale = _create_sale(db_session)

    result = _attach(db_session, models.AttachmentOwner.SALE, sale.id, _upload(), _upload("slip 2.png", b"png"))

    assert result.ok is True
    assert [a.filename for a in result.attachments] == ["receipt.pdf", "slip 2.png"]
    stored = result.attachments[1]
    assert stored.path.startswith("sales/")
    assert stored.path.endswith("_slip_2.png")
    assert stored.url == f"/uploads/{stored.path}"
    assert (data_dir / "uploads" / stored.path).read_bytes() == b"png"

    listed = services.list_attachments(db_session, owner_type=models.AttachmentOwner.SALE, owner_id=sale.id)
    assert [a.filename for a in listed] == ["slip 2.png", "receipt.pdf"]
    assert services.list_attachments(db_session, owner_type=models.AttachmentOwner.EXPENSE, owner_id=sale.id) == []


def test_upload_requires_files(db_session):
    with pytest.raises(HTTPException) as exc:
        services.add_attachments(
            db_session, owner_type=models.AttachmentOwner.SALE, owner_id=1, files=[], actor_user_id=None
        )
    assert exc.value.status_code == 400
    assert exc.value.detail == "No files uploaded."


def test_upload_limits_file_count(db_session):
    uploads = [_upload(f"page-{n}.pdf") for n in range(services.MAX_FILES_PER_UPLOAD + 1)]

    with pytest.raises(HTTPException) as exc:
        services.add_attachments(
            db_session, owner_type=models.AttachmentOwner.SALE, owner_id=1, files=uploads, actor_user_id=None
        )
    assert exc.value.status_code == 400


def test_oversized_upload_leaves_nothing_behind(db_session, data_dir, monkeypatch):
    monkeypatch.setattr(storage, "MAX_UPLOAD_BYTES", 4)

    with pytest.raises(HTTPException) as exc:
        services.add_attachments(
            db_session,
            owner_type=models.AttachmentOwner.SALE,
            owner_id=1,
            files=[_upload("a.txt", b"abc"), _upload("b.txt", b"too large")],
            actor_user_id=None,
        )
    db_session.commit()

    assert exc.value.status_code == 413
    assert list((data_dir / "uploads" / "sales").iterdir()) == []
    assert db_session.query(models.Attachment).count() == 0


def test_sanitize_name_and_path_escape():
    assert storage.sanitize_name("my bill (1).pdf") == "my_bill__1_.pdf"
    with pytest.raises(HTTPException):
        storage.remove_file("../outside.txt")


def test_delete_attachment_removes_file(db_session, data_dir):
    sale = _create_sale(db_session)
    [attachment] = _attach(db_session, models.AttachmentOwner.SALE, sale.id, _upload()).attachments

    with pytest.raises(HTTPException) as exc:
        services.delete_attachment(
            db_session,
            owner_type=models.AttachmentOwner.EXPENSE,
            owner_id=sale.id,
            attachment_id=attachment.id,
            actor_user_id=None,
        )
    assert exc.value.detail == "Attachment not found."

    services.delete_attachment(
        db_session,
        owner_type=models.AttachmentOwner.SALE,
        owner_id=sale.id,
        attachment_id=attachment.id,
        actor_user_id=None,
    )
    db_session.commit()

    assert not (data_dir / "uploads" / attachment.path).exists()
    assert db_session.query(models.Attachment).count() == 0


def test_sale_detail_lists_attachments_and_delete_removes_them(db_session, data_dir):
    sale = _create_sale(db_session)
    [attachment] = _attach(db_session, models.AttachmentOwner.SALE, sale.id, _upload()).attachments

    detail = sale_services.get_sale(db_session, sale.id)
    assert [a.id for a in detail.attachments] == [attachment.id]

    sale_services.delete_sale(db_session, sale_id=sale.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(models.Attachment).count() == 0
    assert not (data_dir / "uploads" / attachment.path).exists()


def test_expense_detail_lists_attachments_and_delete_removes_them(db_session, data_dir):
    branch = branch_models.Branch(name="Nakuru", code="NKR", opening_cash=Decimal("0"))
    db_session.add(branch)
    expense_services.ensure_default_categories(db_session)
    db_session.commit()
    category = expense_services.list_categories(db_session)[0]
    expense = expense_services.create_expense(
        db_session,
        data=expense_schemas.ExpenseCreate(
            branch_id=branch.id, category_id=category.id, amount=Decimal("45"), expense_date=date(2024, 4, 2)
        ),
        actor_user_id=None,
    )
    db_session.commit()
    [attachment] = _attach(db_session, models.AttachmentOwner.EXPENSE, expense.id, _upload()).attachments

    detail = expense_services.get_expense(db_session, expense.id)
    assert [a.filename for a in detail.attachments] == ["receipt.pdf"]
    assert detail.attachments[0].path.startswith("expenses/")

    expense_services.delete_expense(db_session, expense_id=expense.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(models.Attachment).count() == 0
    assert not (data_dir / "uploads" / attachment.path).exists()


def test_bill_detail_lists_attachments_and_delete_removes_them(db_session, data_dir):
    bill = rent_bill_services.create_bill(
        db_session,
        data=rent_bill_schemas.RentBillCreate(title="Rent", amount=Decimal("900")),
        actor_user_id=None,
    )
    db_session.commit()
    [attachment] = _attach(db_session, models.AttachmentOwner.RENT_BILL, bill.id, _upload("lease.pdf")).attachments

    detail = rent_bill_services.get_bill(db_session, bill.id)
    assert detail.title == "Rent"
    assert [a.filename for a in detail.attachments] == ["lease.pdf"]

    rent_bill_services.delete_bill(db_session, bill_id=bill.id, actor_user_id=None)
    db_session.commit()

    assert db_session.query(models.Attachment).count() == 0
    assert not (data_dir / "uploads" / attachment.path).exists()
