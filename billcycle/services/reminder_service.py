from __future__ import annotations

import logging
from datetime import date

from billcycle.constants import today as current_date
from billcycle.models.customer import Customer
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import BillingSchedule, ScheduleStatus
from billcycle.notification_sink import NotificationSink
from billcycle.notifications import triggers_on
from billcycle.repositories.base import CustomerRepository, InvoiceRepository, ScheduleRepository
from billcycle.services.invoice_generator import build_invoice

logger = logging.getLogger(__name__)


class ReminderService:
    """Sends the reminders that fall on a given day.

    Reminders are anchored on the cycle's due date: issued invoices that are
    still pending use their own due date, and active schedules whose next
    cycle has not been billed yet get a preview of the upcoming invoice.
    """

    def __init__(
        self,
        schedule_repo: ScheduleRepository,
        invoice_repo: InvoiceRepository,
        customer_repo: CustomerRepository,
        sink: NotificationSink,
    ) -> None:
        self.schedule_repo = schedule_repo
        self.invoice_repo = invoice_repo
        self.customer_repo = customer_repo
        self.sink = sink

    def _send(self, customer: Customer, invoice: Invoice, days_before: int) -> bool:
        try:
            self.sink.notify(customer, invoice, days_before)
        except Exception:
            logger.exception(
                "Failed to send reminder: customer=%s schedule=%s due=%s",
                customer.id,
                invoice.billing_schedule_id,
                invoice.due_date,
            )
            return False
        return True

    def _dispatch_for(self, schedule: BillingSchedule, invoice: Invoice, today: date) -> int:
        offsets = triggers_on(invoice.due_date, schedule.notification_days, today)
        if not offsets:
            return 0
        customer = self.customer_repo.get_by_id(schedule.customer_id)
        if customer is None:
            logger.warning("Reminder skipped: customer %s not found (schedule %s)", schedule.customer_id, schedule.id)
            return 0
        return sum(1 for days_before in offsets if self._send(customer, invoice, days_before))

    def dispatch(self, today: date | None = None) -> int:
        """Send every reminder due on ``today``.  Returns how many were delivered."""
        today = today or current_date()
        schedules = {s.id: s for s in self.schedule_repo.list_all()}
        sent = 0
        covered: set[tuple[int, date]] = set()

        for invoice in self.invoice_repo.list_all(status=InvoiceStatus.PENDING):
            schedule = schedules.get(invoice.billing_schedule_id)
            if schedule is None or schedule.status == ScheduleStatus.CANCELLED:
                continue
            covered.add((schedule.id, invoice.due_date))  # type: ignore[arg-type]
            sent += self._dispatch_for(schedule, invoice, today)

        for schedule in schedules.values():
            if schedule.status != ScheduleStatus.ACTIVE or schedule.next_billing_date is None:
                continue
            if (schedule.id, schedule.next_billing_date) in covered:
                continue
            preview = build_invoice(schedule, None, today)
            sent += self._dispatch_for(schedule, preview, today)

        logger.info("Reminders for %s: %d sent", today, sent)
        return sent
