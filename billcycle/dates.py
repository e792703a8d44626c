"""Calendar arithmetic for billing cycles.

Every caller that needs "the next due date" goes through
``compute_next_date`` so month-end handling lives in one place.  The
functions here only ever see ``date`` values: no time of day and no
timezone, so the result for a given input never changes between runs.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from billcycle.models.schedule import Frequency

MONTHS_PER_CYCLE = {
    Frequency.MONTHLY: 1,
    Frequency.BIMONTHLY: 2,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUAL: 6,
    Frequency.ANNUAL: 12,
}

DEFAULT_CUSTOM_DAYS = 30


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def months_in_cycle(frequency: Frequency) -> int | None:
    """Number of calendar months per cycle, or None for day-based cycles."""
    return MONTHS_PER_CYCLE.get(Frequency(frequency))


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """Move ``months`` calendar months forward and pin the day-of-month.

    ``day`` defaults to the day of ``from_date``; it is clamped to the
    length of the resulting month (31 in February gives 28 or 29).
    """
    from_date = _as_date(from_date)
    shifted = from_date + relativedelta(months=months)
    target_day = from_date.day if day is None else day
    return shifted.replace(day=min(target_day, days_in_month(shifted.year, shifted.month)))


def compute_next_date(
    from_date: date,
    due_day: int,
    frequency: Frequency,
    custom_days: int | None = None,
) -> date:
    """Return the due date of the cycle that follows ``from_date``.

    Calendar frequencies advance by whole months and land on ``due_day``
    (clamped to the month length).  ``Frequency.CUSTOM`` advances by
    ``custom_days`` days and ignores ``due_day``.
    """
    frequency = Frequency(frequency)
    if frequency == Frequency.CUSTOM:
        return _as_date(from_date) + timedelta(days=custom_days or DEFAULT_CUSTOM_DAYS)
    return add_months(from_date, MONTHS_PER_CYCLE[frequency], day=due_day)


def monthly_factor(frequency: Frequency, custom_days: int | None = None) -> Decimal:
    """Share of one cycle's amount that falls in an average month."""
    months = months_in_cycle(frequency)
    if months is not None:
        return Decimal(1) / Decimal(months)
    return Decimal(DEFAULT_CUSTOM_DAYS) / Decimal(custom_days or DEFAULT_CUSTOM_DAYS)
