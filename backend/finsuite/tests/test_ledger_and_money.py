from datetime import date, datetime
from decimal import Decimal

from finsuite.utils.ledger import LedgerEntry, LedgerLine, running_balance
from finsuite.utils.money import ZERO, money, non_negative, percentage


def test_money_rounds_half_up_to_cents():
    assert money("10.005") == Decimal("10.01")
    assert money(None) == ZERO
    assert money("") == ZERO
    assert money("abc") == ZERO
    assert money(3) == Decimal("3.00")


def test_non_negative_and_percentage():
    assert non_negative(Decimal("-4")) == ZERO
    assert non_negative("4.5") == Decimal("4.50")
    assert percentage(25, 200) == Decimal("12.50")
    assert percentage(25, 0) == ZERO


def test_running_balance_sorts_dates_and_datetimes_together():
    entries = [
        LedgerEntry(timestamp=datetime(2024, 1, 3, 9, 30), description="recovery", debit=Decimal("40")),
        LedgerEntry(timestamp=date(2024, 1, 1), description="invoice", credit=Decimal("100")),
        LedgerEntry(timestamp=None, description="carried", credit=Decimal("5")),
    ]

    folded = running_balance(entries, opening=Decimal("10"))

    assert [entry.description for entry in folded] == ["carried", "invoice", "recovery"]
    assert [entry.balance for entry in folded] == [Decimal("15.00"), Decimal("115.00"), Decimal("75.00")]


def test_running_balance_keeps_input_order_when_not_sorting():
    entries = [
        LedgerEntry(timestamp=date(2024, 2, 1), description="later", credit=Decimal("1")),
        LedgerEntry(timestamp=date(2024, 1, 1), description="earlier", debit=Decimal("3")),
    ]

    folded = running_balance(entries, sort=False)

    assert [entry.balance for entry in folded] == [Decimal("1.00"), Decimal("-2.00")]


def test_ledger_line_uses_kind_and_reference_for_id():
    entry = LedgerEntry(
        timestamp=datetime(2024, 5, 6, 12, 0),
        description="Receivable #4",
        credit=Decimal("20"),
        kind="receivable",
        reference_id=4,
        balance=Decimal("20"),
    )

    line = LedgerLine.from_entry(entry)

    assert line.id == "receivable-4"
    assert line.entry_date == date(2024, 5, 6)
    assert line.model_dump(by_alias=True, mode="json")["date"] == "2024-05-06"
    assert line.model_dump(mode="json")["credit"] == 20.0


def test_ledger_line_id_prefix_overrides_kind():
    entry = LedgerEntry(
        timestamp=date(2024, 5, 6),
        description="Recovery",
        debit=Decimal("5"),
        kind="recovery",
        reference_id=9,
        id_prefix="branch-recovery",
    )

    line = LedgerLine.from_entry(entry)

    assert line.id == "branch-recovery-9"
    assert line.type == "recovery"
