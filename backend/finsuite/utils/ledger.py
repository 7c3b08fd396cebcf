"""
Running-balance ledger fold shared by customer, branch, supplier and bank views.

Every ledger in the suite is the same shape: a chronological list of entries
that either raise the balance (credit) or reduce it (debit). The helpers here
sort the entries and attach the running balance so individual services only
need to say what the entries are.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from pydantic import BaseModel, Field

from .money import ZERO, Money, money

Stamp = Union[date, datetime, None]


def _sort_key(stamp: Stamp) -> datetime:
    if stamp is None:
        return datetime.min
    if isinstance(stamp, datetime):
        return stamp.replace(tzinfo=None)
    return datetime.combine(stamp, time.min)


@dataclass
class LedgerEntry:
    timestamp: Stamp
    description: str
    credit: Decimal = ZERO
    debit: Decimal = ZERO
    kind: str = "entry"
    reference_id: Optional[int] = None
    balance: Decimal = ZERO
    # Line id prefix on the wire; defaults to `kind`.
    id_prefix: Optional[str] = None


def running_balance(
    entries: Iterable[LedgerEntry],
    *,
    opening: Decimal = ZERO,
    sort: bool = True,
) -> List[LedgerEntry]:
    """
    Order entries chronologically and fill in `balance`.

    balance_n = balance_(n-1) + credit_n - debit_n, starting from `opening`.
    Entries sharing a timestamp keep their input order.
    """
    ordered = list(entries)
    if sort:
        ordered.sort(key=lambda entry: _sort_key(entry.timestamp))
    balance = money(opening)
    for entry in ordered:
        balance = money(balance + money(entry.credit) - money(entry.debit))
        entry.balance = balance
    return ordered


class LedgerLine(BaseModel):
    """Wire shape of one folded ledger entry."""

    id: str
    type: str
    entry_date: Optional[date] = Field(default=None, alias="date")
    description: str
    credit: Money
    debit: Money
    balance: Money

    class Config:
        populate_by_name = True

    @classmethod
    def from_entry(cls, entry: LedgerEntry) -> "LedgerLine":
        stamp = entry.timestamp
        if isinstance(stamp, datetime):
            stamp = stamp.date()
        return cls(
            id=f"{entry.id_prefix or entry.kind}-{entry.reference_id}",
            type=entry.kind,
            entry_date=stamp,
            description=entry.description,
            credit=entry.credit,
            debit=entry.debit,
            balance=entry.balance,
        )
