from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


OPEN_INVOICE_STATUSES = frozenset({InvoiceStatus.PENDING, InvoiceStatus.OVERDUE})


class Invoice(BaseModel):
    id: int | None = None
    uuid: str = ""
    customer_id: int
    billing_schedule_id: int | None = None
    amount: Decimal
    due_date: date
    status: InvoiceStatus = InvoiceStatus.PENDING
    payment_method: str = ""
    payment_gateway_id: int | None = None
    description: str = ""
    payment_date: date | None = None
    transaction_id: str | None = None
    created_at: datetime | None = None

    def is_overdue(self, as_of: date) -> bool:
        if self.status not in OPEN_INVOICE_STATUSES:
            return False
        return as_of > self.due_date
