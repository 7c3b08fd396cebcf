from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from finsuite.apps.purchases.schemas import PurchaseRead
from finsuite.apps.sales.schemas import SaleRead
from finsuite.utils.money import Money


class ProfitAndLoss(BaseModel):
    branch_id: Optional[int] = None
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")
    gross_sales: Money = Field(..., serialization_alias="grossSales")
    cost_of_goods: Money = Field(..., serialization_alias="costOfGoods")
    gross_profit: Money = Field(..., serialization_alias="grossProfit")
    total_expenses: Money = Field(..., serialization_alias="totalExpenses")
    net_profit: Money = Field(..., serialization_alias="netProfit")
    expense_ratio: Money = Field(..., serialization_alias="expenseRatio")

    class Config:
        populate_by_name = True


class MonthlyProfitRow(ProfitAndLoss):
    month: int
    year: int


class MonthlyComparison(BaseModel):
    year: int
    months: List[MonthlyProfitRow]


class YearlySummary(ProfitAndLoss):
    year: int


class DashboardWidgets(BaseModel):
    sales_today: Money = Field(..., serialization_alias="salesToday")
    sales_today_cash: Money = Field(..., serialization_alias="salesTodayCash")
    sales_today_bank: Money = Field(..., serialization_alias="salesTodayBank")
    sales_today_credit: Money = Field(..., serialization_alias="salesTodayCredit")
    sales_on_credit: Money = Field(..., serialization_alias="salesOnCredit")
    sales_month: Money = Field(..., serialization_alias="salesMonth")
    sales_month_cash: Money = Field(..., serialization_alias="salesMonthCash")
    sales_month_bank: Money = Field(..., serialization_alias="salesMonthBank")
    net_profit: Money = Field(..., serialization_alias="netProfit")
    bank_balance: Money = Field(..., serialization_alias="bankBalance")
    receivables: Money
    payables: Money
    cash_in_hand: Money = Field(..., serialization_alias="cashInHand")
    receivable_recovered: Money = Field(..., serialization_alias="receivableRecovered")
    total_paid: Money = Field(..., serialization_alias="totalPaid")


class BankAccountBalance(BaseModel):
    id: int
    name: str
    account_number: Optional[str] = None
    balance: Money


class BranchSalesTotal(BaseModel):
    id: int
    name: str
    total: Money


class Dashboard(BaseModel):
    widgets: DashboardWidgets
    bank_accounts: List[BankAccountBalance] = Field(..., serialization_alias="bankAccounts")
    branch_comparison: List[BranchSalesTotal] = Field(..., serialization_alias="branchComparison")
    report_date: date = Field(..., alias="date")
    month_start: date = Field(..., serialization_alias="monthStart")
    month_end: date = Field(..., serialization_alias="monthEnd")

    class Config:
        populate_by_name = True


class DailyCombined(BaseModel):
    report_date: date = Field(..., alias="date")
    branch_id: Optional[int] = None
    sales_rows: List[SaleRead] = Field(..., serialization_alias="salesRows")
    purchase_rows: List[PurchaseRead] = Field(..., serialization_alias="purchaseRows")
    sales_total: Money = Field(..., serialization_alias="salesTotal")
    purchase_total: Money = Field(..., serialization_alias="purchaseTotal")

    class Config:
        populate_by_name = True


class BranchSummaryRow(BaseModel):
    branch_id: int
    branch_name: str
    total_sales: Money
    cash_sales: Money
    bank_sales: Money
    total_purchases: Money


class BranchSummary(BaseModel):
    date_from: Optional[date] = Field(default=None, alias="from")
    date_to: Optional[date] = Field(default=None, alias="to")
    rows: List[BranchSummaryRow]

    class Config:
        populate_by_name = True
