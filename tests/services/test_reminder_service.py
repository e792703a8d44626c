from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

from billcycle.models.customer import Customer
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import ScheduleStatus
from billcycle.notification_sink import LoggingNotificationSink
from billcycle.services.reminder_service import ReminderService


class TestReminderService:
    def setup_method(self):
        self.schedule_repo = MagicMock()
        self.invoice_repo = MagicMock()
        self.customer_repo = MagicMock()
        self.sink = MagicMock()
        self.customer = Customer(id=1, name="Maria Souza", email="maria@example.com")
        self.customer_repo.get_by_id.return_value = self.customer
        self.invoice_repo.list_all.return_value = []
        self.service = ReminderService(self.schedule_repo, self.invoice_repo, self.customer_repo, self.sink)

    def _pending(self, schedule_id, due_date):
        return Invoice(
            id=10,
            customer_id=1,
            billing_schedule_id=schedule_id,
            amount=Decimal("2850.00"),
            due_date=due_date,
            status=InvoiceStatus.PENDING,
        )

    def test_preview_for_unbilled_cycle(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1)]

        sent = self.service.dispatch(date(2025, 3, 5))

        assert sent == 1
        customer, invoice, days_before = self.sink.notify.call_args.args
        assert customer is self.customer
        assert invoice.due_date == date(2025, 3, 10)
        assert invoice.id is None
        assert days_before == 5

    def test_no_reminder_on_other_days(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1)]
        assert self.service.dispatch(date(2025, 3, 6)) == 0
        self.sink.notify.assert_not_called()

    def test_pending_invoice_reminded_once(self, sample_schedule):
        schedule = sample_schedule(id=1, next_billing_date=date(2025, 3, 10))
        self.schedule_repo.list_all.return_value = [schedule]
        self.invoice_repo.list_all.return_value = [self._pending(1, date(2025, 3, 10))]

        sent = self.service.dispatch(date(2025, 3, 10))

        assert sent == 1
        assert self.sink.notify.call_args.args[1].id == 10
        assert self.sink.notify.call_args.args[2] == 0

    def test_pending_invoice_and_next_cycle_preview(self, sample_schedule):
        # Invoice for 10/03 already issued; schedule now points at 10/04.
        schedule = sample_schedule(id=1, next_billing_date=date(2025, 4, 10), notification_days=[31, 0])
        self.schedule_repo.list_all.return_value = [schedule]
        self.invoice_repo.list_all.return_value = [self._pending(1, date(2025, 3, 10))]

        sent = self.service.dispatch(date(2025, 3, 10))

        assert sent == 2
        due_dates = sorted(call.args[1].due_date for call in self.sink.notify.call_args_list)
        assert due_dates == [date(2025, 3, 10), date(2025, 4, 10)]

    def test_cancelled_schedule_skipped(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1, status=ScheduleStatus.CANCELLED)]
        self.invoice_repo.list_all.return_value = [self._pending(1, date(2025, 3, 10))]
        assert self.service.dispatch(date(2025, 3, 10)) == 0

    def test_paused_schedule_gets_no_preview(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1, status=ScheduleStatus.PAUSED)]
        assert self.service.dispatch(date(2025, 3, 5)) == 0

    def test_sink_failure_does_not_stop_others(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1), sample_schedule(id=2)]
        self.sink.notify.side_effect = [RuntimeError("smtp down"), None]

        sent = self.service.dispatch(date(2025, 3, 5))

        assert sent == 1
        assert self.sink.notify.call_count == 2

    def test_unknown_customer(self, sample_schedule):
        self.schedule_repo.list_all.return_value = [sample_schedule(id=1)]
        self.customer_repo.get_by_id.return_value = None
        assert self.service.dispatch(date(2025, 3, 5)) == 0


class TestLoggingNotificationSink:
    def test_logs_reminder(self, caplog):
        invoice = Invoice(customer_id=1, amount=Decimal("2850.00"), due_date=date(2025, 3, 10))
        with caplog.at_level("INFO", logger="billcycle.notification_sink"):
            LoggingNotificationSink().notify(Customer(id=1, name="Maria"), invoice, 2)
        assert "R$ 2.850,00" in caplog.text
        assert "10/03/2025" in caplog.text
