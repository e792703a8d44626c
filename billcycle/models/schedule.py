from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, field_validator

DEFAULT_NOTIFICATION_DAYS = (5, 2, 0)
DEFAULT_PAYMENT_METHOD = "default"


class Frequency(str, Enum):
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    CUSTOM = "custom"


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({ScheduleStatus.CANCELLED, ScheduleStatus.COMPLETED})


class BillingSchedule(BaseModel):
    id: int | None = None
    uuid: str = ""
    customer_id: int
    plan_id: int | None = None
    title: str
    description: str = ""
    amount: Decimal = Decimal("0")
    frequency: Frequency = Frequency.MONTHLY
    custom_days: int | None = None
    due_day: int = 10
    start_date: date
    end_date: date | None = None
    next_billing_date: date | None = None
    notification_days: tuple[int, ...] = DEFAULT_NOTIFICATION_DAYS
    auto_generate_invoice: bool = True
    payment_method: str = DEFAULT_PAYMENT_METHOD
    payment_gateway_id: int | None = None
    auto_charge: bool = False
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    installments: int | None = None
    installments_generated: int = 0
    apply_late_fee: bool = False
    late_fee_percentage: Decimal = Decimal("2.0")
    apply_daily_interest: bool = False
    daily_interest_percentage: Decimal = Decimal("0.033")
    last_execution_date: datetime | None = None
    last_generated_invoice_id: int | None = None
    notes: str = ""
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("notification_days", mode="before")
    @classmethod
    def _sort_notification_days(cls, value):
        # Stored as a set ordered from the earliest reminder to the due date itself.
        if value is None:
            return ()
        return tuple(sorted(set(value), reverse=True))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def installments_remaining(self) -> int | None:
        if self.installments is None:
            return None
        return max(0, self.installments - self.installments_generated)
