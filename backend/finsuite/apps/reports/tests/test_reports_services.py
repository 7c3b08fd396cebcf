from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from fastapi import HTTPException

from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import schemas as bank_schemas
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.expenses import models as expense_models
from finsuite.apps.expenses import schemas as expense_schemas
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.purchases import schemas as purchase_schemas
from finsuite.apps.purchases import services as purchase_services
from finsuite.apps.receivables import models as receivable_models
from finsuite.apps.receivables import schemas as receivable_schemas
from finsuite.apps.receivables import services as receivable_services
from finsuite.apps.reports import services
from finsuite.apps.sales import schemas as sale_schemas
from finsuite.apps.sales import services as sale_services

MARCH = date(2024, 3, 12)


def _create_branch(db, name, code, opening_cash="0", is_active=True):
    branch = branch_models.Branch(name=name, code=code, opening_cash=Decimal(opening_cash), is_active=is_active)
    db.add(branch)
    db.commit()
    return branch


def _create_bank(db, name="Operating"):
    bank = bank_models.Bank(name=name, opening_balance=Decimal("0"))
    db.add(bank)
    db.commit()
    return bank


def _sale(db, branch, *, sale_date=MARCH, bank_id=None, **amounts):
    sale = sale_services.create_sale(
        db,
        data=sale_schemas.SaleCreate(
            branch_id=branch.id,
            sale_date=sale_date,
            bank_id=bank_id,
            **{key: Decimal(value) for key, value in amounts.items()},
        ),
        actor_user_id=None,
    )
    db.commit()
    return sale


def _purchase(db, branch, total, paid="0", purchase_date=MARCH):
    supplier = purchase_services.create_supplier(
        db, data=purchase_schemas.SupplierCreate(name=f"Supplier {total}"), actor_user_id=None
    )
    purchase = purchase_services.create_purchase(
        db,
        data=purchase_schemas.PurchaseCreate(
            supplier_id=supplier.id,
            branch_id=branch.id,
            purchase_date=purchase_date,
            total_amount=Decimal(total),
            paid_amount=Decimal(paid),
        ),
        actor_user_id=None,
    )
    db.commit()
    return purchase


def _expense(db, branch, amount, expense_date=MARCH):
    category = db.query(expense_models.ExpenseCategory).first()
    if category is None:
        category = expense_models.ExpenseCategory(name="Utilities")
        db.add(category)
        db.flush()
    expense_services.create_expense(
        db,
        data=expense_schemas.ExpenseCreate(
            branch_id=branch.id, category_id=category.id, amount=Decimal(amount), expense_date=expense_date
        ),
        actor_user_id=None,
    )
    db.commit()


def test_branch_profit_and_loss(db_session):
    branch = _create_branch(db_session, "Central", "CTR")
    other = _create_branch(db_session, "East", "EST")
    _sale(db_session, branch, cash_amount="10000", discount="500")
    _sale(db_session, other, cash_amount="7000")
    _purchase(db_session, branch, "4000")
    _expense(db_session, branch, "1900")

    report = services.branch_profit_and_loss(
        db_session, branch_id=branch.id, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31)
    )

    assert report.gross_sales == Decimal("9500.00")
    assert report.cost_of_goods == Decimal("4000.00")
    assert report.gross_profit == Decimal("5500.00")
    assert report.total_expenses == Decimal("1900.00")
    assert report.net_profit == Decimal("3600.00")
    assert report.expense_ratio == Decimal("20.00")

    consolidated = services.consolidated_profit_and_loss(
        db_session, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31)
    )
    assert consolidated.gross_sales == Decimal("16500.00")


def test_unknown_branch_profit_and_loss(db_session):
    with pytest.raises(HTTPException) as exc:
        services.branch_profit_and_loss(db_session, branch_id=42, date_from=MARCH, date_to=MARCH)
    assert exc.value.status_code == 404


def test_monthly_comparison_and_yearly_summary(db_session):
    branch = _create_branch(db_session, "Central", "CTR")
    _sale(db_session, branch, cash_amount="1000", sale_date=date(2024, 1, 15))
    _sale(db_session, branch, cash_amount="3000", sale_date=date(2024, 3, 15))
    _expense(db_session, branch, "500", expense_date=date(2024, 3, 20))

    comparison = services.monthly_comparison(db_session, year=2024)
    assert len(comparison.months) == 12
    assert comparison.months[0].gross_sales == Decimal("1000.00")
    assert comparison.months[1].gross_sales == Decimal("0.00")
    assert comparison.months[2].net_profit == Decimal("2500.00")

    summary = services.yearly_summary(db_session, year=2024)
    assert summary.gross_sales == Decimal("4000.00")
    assert summary.net_profit == Decimal("3500.00")


def test_cash_in_hand_ignores_direct_bank_collections(db_session):
    branch = _create_branch(db_session, "Central", "CTR", opening_cash="1000")
    _create_branch(db_session, "Closed", "CLS", opening_cash="5000", is_active=False)
    bank = _create_bank(db_session)
    sale = _sale(db_session, branch, cash_amount="2000", bank_amount="800", credit_amount="300", bank_id=bank.id)
    receivable = db_session.query(receivable_models.Receivable).filter_by(sale_id=sale.id).one()
    receivable_services.recover(
        db_session,
        receivable_id=receivable.id,
        data=receivable_schemas.RecoveryCreate(amount=Decimal("100")),
        actor_user_id=None,
    )
    # Till cash banked by hand.
    bank_services.create_transaction(
        db_session,
        bank_id=bank.id,
        data=bank_schemas.BankTransactionCreate(type="deposit", amount=Decimal("1500")),
        actor_user_id=None,
    )
    _purchase(db_session, branch, "600")
    db_session.commit()

    # 1000 opening + 2000 cash sales + 100 recovered - 1500 banked
    assert services.cash_in_hand(db_session) == Decimal("1600.00")


def test_dashboard_widgets(db_session):
    branch = _create_branch(db_session, "Central", "CTR")
    bank = _create_bank(db_session)
    _sale(db_session, branch, cash_amount="500", bank_amount="250", credit_amount="100", bank_id=bank.id)
    _purchase(db_session, branch, "300", paid="100")

    board = services.dashboard(db_session, as_of=MARCH)

    widgets = board.widgets
    assert widgets.sales_today == Decimal("750.00")
    assert widgets.sales_today_credit == Decimal("100.00")
    assert widgets.sales_month == Decimal("850.00")
    assert widgets.net_profit == Decimal("550.00")
    assert widgets.receivables == Decimal("100.00")
    assert widgets.payables == Decimal("200.00")
    assert widgets.bank_balance == Decimal("250.00")
    assert [row.balance for row in board.bank_accounts] == [Decimal("250.00")]
    assert [row.name for row in board.branch_comparison] == ["Central"]


def test_branch_summary_lists_idle_branches(db_session):
    busy = _create_branch(db_session, "Busy", "BSY")
    _create_branch(db_session, "Idle", "IDL")
    _sale(db_session, busy, cash_amount="900", bank_amount="0")
    _purchase(db_session, busy, "400")

    summary = services.branch_summary(db_session, date_from=date(2024, 3, 1), date_to=date(2024, 3, 31))

    by_name = {row.branch_name: row for row in summary.rows}
    assert by_name["Busy"].total_sales == Decimal("900.00")
    assert by_name["Busy"].cash_sales == Decimal("900.00")
    assert by_name["Busy"].total_purchases == Decimal("400.00")
    assert by_name["Idle"].total_sales == Decimal("0.00")


def test_daily_combined(db_session):
    branch = _create_branch(db_session, "Central", "CTR")
    _sale(db_session, branch, cash_amount="120")
    _purchase(db_session, branch, "80")

    report = services.daily_combined(db_session, report_date=MARCH)

    assert report.sales_total == Decimal("120.00")
    assert report.purchase_total == Decimal("80.00")
    assert len(report.sales_rows) == 1
    assert len(report.purchase_rows) == 1
