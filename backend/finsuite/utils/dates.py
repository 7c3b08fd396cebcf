from __future__ import annotations

import calendar
from datetime import date
from typing import Tuple


def today() -> date:
    return date.today()


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of the given month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def year_bounds(year: int) -> Tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)
