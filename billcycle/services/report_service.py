from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from pydantic import BaseModel

from billcycle.constants import today as current_date
from billcycle.dates import monthly_factor
from billcycle.models import CENT
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import ScheduleStatus
from billcycle.repositories.base import InvoiceRepository, ScheduleRepository
from billcycle.settings import settings
from billcycle.surcharge import days_late, surcharge_for_invoice

logger = logging.getLogger(__name__)


class ScheduleStats(BaseModel):
    total: int = 0
    active: int = 0
    paused: int = 0
    upcoming: int = 0
    monthly_revenue: Decimal = Decimal("0.00")


class OverdueInvoice(BaseModel):
    invoice: Invoice
    days_late: int
    surcharge: Decimal

    @property
    def total_due(self) -> Decimal:
        return self.invoice.amount + self.surcharge


class ReportService:
    def __init__(self, schedule_repo: ScheduleRepository, invoice_repo: InvoiceRepository) -> None:
        self.schedule_repo = schedule_repo
        self.invoice_repo = invoice_repo

    def schedule_stats(self, today: date | None = None, window_days: int | None = None) -> ScheduleStats:
        """Headline numbers for the schedule list.

        ``upcoming`` counts active schedules billing within the next
        ``window_days`` days; ``monthly_revenue`` normalises every active
        schedule's amount to a per-month figure.
        """
        today = today or current_date()
        horizon = today + timedelta(days=window_days or settings.upcoming_window_days)
        schedules = self.schedule_repo.list_all()
        active = [s for s in schedules if s.status == ScheduleStatus.ACTIVE]

        revenue = sum(
            (s.amount * monthly_factor(s.frequency, s.custom_days) for s in active),
            Decimal(0),
        )
        stats = ScheduleStats(
            total=len(schedules),
            active=len(active),
            paused=sum(1 for s in schedules if s.status == ScheduleStatus.PAUSED),
            upcoming=sum(
                1 for s in active if s.next_billing_date is not None and today < s.next_billing_date < horizon
            ),
            monthly_revenue=revenue.quantize(CENT),
        )
        logger.debug("Schedule stats for %s: %s", today, stats)
        return stats

    def overdue_invoices(self, as_of: date | None = None) -> list[OverdueInvoice]:
        """Open invoices past their due date, with the surcharge owed as of ``as_of``."""
        as_of = as_of or current_date()
        schedules = {s.id: s for s in self.schedule_repo.list_all()}
        invoices = [
            *self.invoice_repo.list_all(status=InvoiceStatus.PENDING),
            *self.invoice_repo.list_all(status=InvoiceStatus.OVERDUE),
        ]

        result: list[OverdueInvoice] = []
        for invoice in invoices:
            if not invoice.is_overdue(as_of):
                continue
            schedule = schedules.get(invoice.billing_schedule_id)
            surcharge = surcharge_for_invoice(invoice, schedule, as_of) if schedule else Decimal("0.00")
            result.append(
                OverdueInvoice(invoice=invoice, days_late=days_late(invoice.due_date, as_of), surcharge=surcharge)
            )
        result.sort(key=lambda item: (item.invoice.due_date, item.invoice.id or 0))
        logger.debug("Found %d overdue invoice(s) as of %s", len(result), as_of)
        return result
