"""
Profit and loss, dashboard and cross-module reports.

Every figure here is derived from the transactional tables at read time;
nothing is cached or stored.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from finsuite.apps.banks import models as bank_models
from finsuite.apps.banks import services as bank_services
from finsuite.apps.branches import models as branch_models
from finsuite.apps.branches import services as branch_services
from finsuite.apps.expenses import services as expense_services
from finsuite.apps.payments import models as payment_models
from finsuite.apps.payments import services as payment_services
from finsuite.apps.purchases import models as purchase_models
from finsuite.apps.purchases import services as purchase_services
from finsuite.apps.receivables import models as receivable_models
from finsuite.apps.receivables import services as receivable_services
from finsuite.apps.sales import models as sale_models
from finsuite.apps.sales import services as sale_services
from finsuite.utils.dates import month_bounds, today, year_bounds
from finsuite.utils.money import ZERO, money, percentage

from . import schemas

logger = logging.getLogger(__name__)

# Outgoing payment flows that take cash out of the branches.
CASH_OUT_PAYMENT_TYPES = (
    payment_models.PaymentReferenceType.SUPPLIER.value,
    payment_models.PaymentReferenceType.RENT_BILL.value,
    payment_models.PaymentReferenceType.SALARY.value,
)


def _sum(db: Session, column, *criteria) -> Decimal:
    return money(db.query(func.coalesce(func.sum(column), 0)).filter(*criteria).scalar())


def _sales_total(db: Session, column, *, date_from=None, date_to=None, branch_id=None) -> Decimal:
    criteria = []
    if date_from:
        criteria.append(sale_models.Sale.sale_date >= date_from)
    if date_to:
        criteria.append(sale_models.Sale.sale_date <= date_to)
    if branch_id:
        criteria.append(sale_models.Sale.branch_id == branch_id)
    return _sum(db, column, *criteria)


def _purchases_total(db: Session, *, date_from=None, date_to=None, branch_id=None) -> Decimal:
    criteria = []
    if date_from:
        criteria.append(purchase_models.Purchase.purchase_date >= date_from)
    if date_to:
        criteria.append(purchase_models.Purchase.purchase_date <= date_to)
    if branch_id:
        criteria.append(purchase_models.Purchase.branch_id == branch_id)
    return _sum(db, purchase_models.Purchase.total_amount, *criteria)


# ---------------------------------------------------------------------------
# Profit and loss
# ---------------------------------------------------------------------------


def _profit_and_loss(db: Session, *, date_from: date, date_to: date, branch_id: Optional[int] = None) -> dict:
    gross_sales = _sales_total(
        db, sale_models.Sale.net_sales, date_from=date_from, date_to=date_to, branch_id=branch_id
    )
    cost_of_goods = _purchases_total(db, date_from=date_from, date_to=date_to, branch_id=branch_id)
    total_expenses = expense_services.expenses_total(
        db, date_from=date_from, date_to=date_to, branch_id=branch_id
    )
    gross_profit = money(gross_sales - cost_of_goods)
    return {
        "date_from": date_from,
        "date_to": date_to,
        "gross_sales": gross_sales,
        "cost_of_goods": cost_of_goods,
        "gross_profit": gross_profit,
        "total_expenses": total_expenses,
        "net_profit": money(gross_profit - total_expenses),
        "expense_ratio": percentage(total_expenses, gross_sales),
    }


def branch_profit_and_loss(db: Session, *, branch_id: int, date_from: date, date_to: date) -> schemas.ProfitAndLoss:
    branch_services.get_branch_or_404(db, branch_id)
    return schemas.ProfitAndLoss(
        branch_id=branch_id,
        **_profit_and_loss(db, date_from=date_from, date_to=date_to, branch_id=branch_id),
    )


def consolidated_profit_and_loss(db: Session, *, date_from: date, date_to: date) -> schemas.ProfitAndLoss:
    return schemas.ProfitAndLoss(**_profit_and_loss(db, date_from=date_from, date_to=date_to))


def monthly_comparison(db: Session, *, year: Optional[int] = None) -> schemas.MonthlyComparison:
    year = year or today().year
    months = []
    for month in range(1, 13):
        start, end = month_bounds(year, month)
        months.append(
            schemas.MonthlyProfitRow(month=month, year=year, **_profit_and_loss(db, date_from=start, date_to=end))
        )
    return schemas.MonthlyComparison(year=year, months=months)


def yearly_summary(db: Session, *, year: Optional[int] = None) -> schemas.YearlySummary:
    year = year or today().year
    start, end = year_bounds(year)
    return schemas.YearlySummary(year=year, **_profit_and_loss(db, date_from=start, date_to=end))


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def cash_in_hand(db: Session) -> Decimal:
    """
    Cash held across active branches.

    Opening cash plus cash sales and cash recoveries, less cash that went to
    the bank net of withdrawals, less cash paid out to suppliers, bills and
    staff. Deposits posted by sales and recoveries went straight to the bank
    and never passed through the till.
    """
    opening = _sum(db, branch_models.Branch.opening_cash, branch_models.Branch.is_active.is_(True))
    cash_sales = _sum(db, sale_models.Sale.cash_amount)
    cash_recoveries = _sum(
        db,
        payment_models.Payment.amount,
        payment_models.Payment.type == receivable_services.RECOVERY_PAYMENT_TYPE,
        payment_models.Payment.mode == payment_models.PaymentMode.CASH,
    )
    txn = bank_models.BankTransaction
    deposits = _sum(
        db,
        txn.amount,
        txn.type.in_(bank_models.INFLOW_TYPES),
        or_(
            txn.reference.is_(None),
            and_(~txn.reference.like("sale-%"), ~txn.reference.like("receivable-%")),
        ),
    )
    withdrawals = _sum(
        db,
        txn.amount,
        txn.type.in_((bank_models.BankTransactionType.WITHDRAWAL, bank_models.BankTransactionType.TRANSFER_OUT)),
    )
    cash_payments = _sum(
        db,
        payment_models.Payment.amount,
        payment_models.Payment.mode == payment_models.PaymentMode.CASH,
        payment_models.Payment.type.in_(CASH_OUT_PAYMENT_TYPES),
    )
    return money(opening + cash_sales + cash_recoveries - (deposits - withdrawals) - cash_payments)


def _branch_comparison(db: Session, *, date_from: date, date_to: date) -> List[schemas.BranchSalesTotal]:
    total = func.coalesce(func.sum(sale_models.Sale.net_sales), 0)
    rows = (
        db.query(branch_models.Branch.id, branch_models.Branch.name, total.label("total"))
        .outerjoin(
            sale_models.Sale,
            and_(
                sale_models.Sale.branch_id == branch_models.Branch.id,
                sale_models.Sale.sale_date >= date_from,
                sale_models.Sale.sale_date <= date_to,
            ),
        )
        .filter(branch_models.Branch.is_active.is_(True))
        .group_by(branch_models.Branch.id, branch_models.Branch.name)
        .order_by(total.desc())
        .all()
    )
    return [schemas.BranchSalesTotal(id=row.id, name=row.name, total=money(row.total)) for row in rows]


def dashboard(db: Session, *, as_of: Optional[date] = None) -> schemas.Dashboard:
    day = as_of or today()
    month_start, month_end = month_bounds(day.year, day.month)

    today_cash = _sales_total(db, sale_models.Sale.cash_amount, date_from=day, date_to=day)
    today_bank = _sales_total(db, sale_models.Sale.bank_amount, date_from=day, date_to=day)
    today_credit = _sales_total(db, sale_models.Sale.credit_amount, date_from=day, date_to=day)
    recovered_today = _sum(
        db,
        payment_models.Payment.amount,
        payment_models.Payment.type == receivable_services.RECOVERY_PAYMENT_TYPE,
        payment_models.Payment.payment_date == day,
    )
    sales_month = _sales_total(db, sale_models.Sale.net_sales, date_from=month_start, date_to=month_end)
    purchases_month = _purchases_total(db, date_from=month_start, date_to=month_end)
    receivables = _sum(
        db,
        receivable_models.Receivable.amount,
        receivable_models.Receivable.status.in_(receivable_models.OPEN_STATUSES),
    )
    balances = bank_services.bank_balances(db)

    widgets = schemas.DashboardWidgets(
        sales_today=money(today_cash + today_bank + recovered_today),
        sales_today_cash=today_cash,
        sales_today_bank=today_bank,
        sales_today_credit=today_credit,
        sales_on_credit=receivables,
        sales_month=sales_month,
        sales_month_cash=_sales_total(db, sale_models.Sale.cash_amount, date_from=month_start, date_to=month_end),
        sales_month_bank=_sales_total(db, sale_models.Sale.bank_amount, date_from=month_start, date_to=month_end),
        net_profit=money(sales_month - purchases_month),
        bank_balance=money(sum(balances.values(), ZERO)),
        receivables=receivables,
        payables=_sum(db, purchase_models.Purchase.balance, purchase_models.Purchase.balance > 0),
        cash_in_hand=cash_in_hand(db),
        receivable_recovered=_sum(
            db,
            payment_models.Payment.amount,
            payment_models.Payment.type == receivable_services.RECOVERY_PAYMENT_TYPE,
        ),
        total_paid=payment_services.payments_total(db),
    )
    banks = db.query(bank_models.Bank).order_by(bank_models.Bank.name).all()
    return schemas.Dashboard(
        widgets=widgets,
        bank_accounts=[
            schemas.BankAccountBalance(
                id=bank.id,
                name=bank.name,
                account_number=bank.account_number,
                balance=balances.get(bank.id, money(bank.opening_balance)),
            )
            for bank in banks
        ],
        branch_comparison=_branch_comparison(db, date_from=month_start, date_to=month_end),
        report_date=day,
        month_start=month_start,
        month_end=month_end,
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def daily_combined(db: Session, *, report_date: date, branch_id: Optional[int] = None) -> schemas.DailyCombined:
    sales = sale_services.daily_report(db, report_date=report_date, branch_id=branch_id)
    purchases = purchase_services.daily_report(db, report_date=report_date, branch_id=branch_id)
    return schemas.DailyCombined(
        report_date=report_date,
        branch_id=branch_id,
        sales_rows=sales.rows,
        purchase_rows=purchases.rows,
        sales_total=sales.total,
        purchase_total=purchases.total,
    )


def branch_summary(
    db: Session,
    *,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> schemas.BranchSummary:
    """Sales split and purchases per active branch; branches with no activity report zeros."""
    rows: Dict[int, schemas.BranchSummaryRow] = {}
    for branch in (
        db.query(branch_models.Branch)
        .filter(branch_models.Branch.is_active.is_(True))
        .order_by(branch_models.Branch.name)
        .all()
    ):
        rows[branch.id] = schemas.BranchSummaryRow(
            branch_id=branch.id,
            branch_name=branch.name,
            total_sales=ZERO,
            cash_sales=ZERO,
            bank_sales=ZERO,
            total_purchases=ZERO,
        )

    sale = sale_models.Sale
    sales_query = db.query(
        sale.branch_id,
        func.coalesce(func.sum(sale.net_sales), 0),
        func.coalesce(func.sum(sale.cash_amount), 0),
        func.coalesce(func.sum(sale.bank_amount), 0),
    )
    if date_from:
        sales_query = sales_query.filter(sale.sale_date >= date_from)
    if date_to:
        sales_query = sales_query.filter(sale.sale_date <= date_to)
    for branch_id, total, cash, bank in sales_query.group_by(sale.branch_id).all():
        row = rows.get(branch_id)
        if row is None:
            continue
        row.total_sales = money(total)
        row.cash_sales = money(cash)
        row.bank_sales = money(bank)

    purchase = purchase_models.Purchase
    purchase_query = db.query(purchase.branch_id, func.coalesce(func.sum(purchase.total_amount), 0))
    if date_from:
        purchase_query = purchase_query.filter(purchase.purchase_date >= date_from)
    if date_to:
        purchase_query = purchase_query.filter(purchase.purchase_date <= date_to)
    for branch_id, total in purchase_query.group_by(purchase.branch_id).all():
        row = rows.get(branch_id)
        if row is not None:
            row.total_purchases = money(total)

    return schemas.BranchSummary(date_from=date_from, date_to=date_to, rows=list(rows.values()))
