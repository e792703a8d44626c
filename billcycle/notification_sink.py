from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from billcycle.constants import format_date
from billcycle.models import format_money
from billcycle.models.customer import Customer
from billcycle.models.invoice import Invoice

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Delivers a payment reminder.  How (e-mail, SMS, ...) is up to the implementation."""

    @abstractmethod
    def notify(self, customer: Customer, invoice: Invoice, days_before: int) -> None: ...


class LoggingNotificationSink(NotificationSink):
    def notify(self, customer: Customer, invoice: Invoice, days_before: int) -> None:
        logger.info(
            "Reminder for %s <%s>: %s due %s (%d day(s) before)",
            customer.name,
            customer.email,
            format_money(invoice.amount),
            format_date(invoice.due_date),
            days_before,
        )
