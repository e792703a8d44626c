"""Reminder planning for upcoming charges.

``notification_days`` is treated as an immutable set of day offsets kept
in descending order; the helpers below always return a new tuple.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from typing import NamedTuple

from billcycle.errors import ValidationError


class NotificationTrigger(NamedTuple):
    trigger_date: date
    days_before: int


def normalize_notification_days(values: Iterable[int]) -> tuple[int, ...]:
    days = set()
    for value in values:
        day = int(value)
        if day < 0:
            raise ValidationError({"notification_days": "Dias de notificação não podem ser negativos"})
        days.add(day)
    return tuple(sorted(days, reverse=True))


def add_notification_day(days: Iterable[int], day: int) -> tuple[int, ...]:
    return normalize_notification_days([*days, day])


def remove_notification_day(days: Iterable[int], day: int) -> tuple[int, ...]:
    return normalize_notification_days(d for d in days if d != day)


def compute_notification_dates(
    next_billing_date: date, notification_days: Iterable[int]
) -> list[NotificationTrigger]:
    """Reminder dates for one cycle, earliest first.

    An offset of 0 fires on the due date itself.
    """
    return [
        NotificationTrigger(next_billing_date - timedelta(days=days_before), days_before)
        for days_before in normalize_notification_days(notification_days)
    ]


def triggers_on(next_billing_date: date, notification_days: Iterable[int], day: date) -> list[int]:
    """Offsets whose reminder falls exactly on ``day``."""
    return [
        trigger.days_before
        for trigger in compute_notification_dates(next_billing_date, notification_days)
        if trigger.trigger_date == day
    ]
