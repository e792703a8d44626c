import threading
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from billcycle.errors import InvalidTransitionError, ScheduleNotFoundError, ValidationError
from billcycle.locks import ScheduleLocks
from billcycle.models.customer import Plan
from billcycle.models.invoice import Invoice
from billcycle.models.schedule import Frequency, ScheduleStatus
from billcycle.services.schedule_service import ScheduleService


class TestScheduleService:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.mock_generator = MagicMock()
        self.mock_plan_repo = MagicMock()
        self.locks = ScheduleLocks()
        self.service = ScheduleService(
            self.mock_repo, self.mock_generator, plan_repo=self.mock_plan_repo, locks=self.locks
        )
        # update() echoes what it was given so tests can inspect the result
        self.mock_repo.update.side_effect = lambda schedule, expected_version=None: schedule

    def test_create_computes_first_billing_date(self, sample_schedule):
        self.mock_repo.create.side_effect = lambda s: s.model_copy(update={"id": 1})
        result = self.service.create_schedule(
            sample_schedule(start_date=date(2025, 1, 31), due_day=31, next_billing_date=None)
        )
        assert result.next_billing_date == date(2025, 2, 28)
        assert result.status == ScheduleStatus.ACTIVE

    def test_create_keeps_supplied_next_date(self, sample_schedule):
        self.mock_repo.create.side_effect = lambda s: s
        result = self.service.create_schedule(sample_schedule())
        assert result.next_billing_date == date(2025, 3, 10)

    def test_create_resets_system_fields(self, sample_schedule):
        self.mock_repo.create.side_effect = lambda s: s
        result = self.service.create_schedule(
            sample_schedule(id=50, status=ScheduleStatus.PAUSED, installments=4, installments_generated=2)
        )
        assert result.id is None
        assert result.status == ScheduleStatus.ACTIVE
        assert result.installments_generated == 0

    def test_create_invalid_never_hits_store(self, sample_schedule):
        with pytest.raises(ValidationError):
            self.service.create_schedule(sample_schedule(title=""))
        self.mock_repo.create.assert_not_called()

    @pytest.mark.parametrize("due_day", [0, -3, 32])
    def test_create_rejects_due_day_before_computing_first_date(self, sample_schedule, due_day):
        with pytest.raises(ValidationError) as exc_info:
            self.service.create_schedule(sample_schedule(due_day=due_day, next_billing_date=None))
        assert "due_day" in exc_info.value.errors
        self.mock_repo.create.assert_not_called()

    def test_create_uses_plan_price(self, sample_schedule):
        self.mock_repo.create.side_effect = lambda s: s
        self.mock_plan_repo.get_by_id.return_value = Plan(id=1, name="Básico", price=Decimal("99.90"))
        result = self.service.create_schedule(sample_schedule(amount=Decimal("0"), plan_id=1))
        assert result.amount == Decimal("99.90")

    def test_create_with_unknown_plan(self, sample_schedule):
        self.mock_plan_repo.get_by_id.return_value = None
        with pytest.raises(ValidationError):
            self.service.create_schedule(sample_schedule(amount=Decimal("0"), plan_id=7))

    def test_list_schedules(self, sample_schedule):
        self.mock_repo.list_all.return_value = [sample_schedule(id=1), sample_schedule(id=2)]
        result = self.service.list_schedules(status=ScheduleStatus.ACTIVE, frequency=Frequency.MONTHLY)
        assert len(result) == 2
        self.mock_repo.list_all.assert_called_once_with(status=ScheduleStatus.ACTIVE, frequency=Frequency.MONTHLY)

    def test_get_schedule(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        assert self.service.get_schedule(1).id == 1

    def test_get_schedule_by_uuid(self, sample_schedule):
        self.mock_repo.get_by_uuid.return_value = sample_schedule(id=1, uuid="abc")
        assert self.service.get_schedule_by_uuid("abc").uuid == "abc"

    def test_update_preserves_lifecycle_fields(self, sample_schedule):
        stored = sample_schedule(id=1, status=ScheduleStatus.PAUSED, installments_generated=2, version=4)
        self.mock_repo.get_by_id.return_value = stored
        edited = sample_schedule(id=1, title="Novo título", status=ScheduleStatus.ACTIVE, installments_generated=0)

        result = self.service.update_schedule(edited)

        assert result.title == "Novo título"
        assert result.status == ScheduleStatus.PAUSED
        assert result.installments_generated == 2
        self.mock_repo.update.assert_called_once()
        assert self.mock_repo.update.call_args.kwargs["expected_version"] == 4

    def test_update_missing(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = None
        with pytest.raises(ScheduleNotFoundError):
            self.service.update_schedule(sample_schedule(id=1))

    def test_update_invalid(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        with pytest.raises(ValidationError):
            self.service.update_schedule(sample_schedule(id=1, amount=Decimal("-5")))
        self.mock_repo.update.assert_not_called()

    def test_delete(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        self.service.delete_schedule(1)
        self.mock_repo.delete.assert_called_once_with(1)

    def test_delete_releases_schedule_lock(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        self.service.delete_schedule(1)
        assert len(self.locks) == 0

    def test_delete_missing(self):
        self.mock_repo.get_by_id.return_value = None
        with pytest.raises(ScheduleNotFoundError):
            self.service.delete_schedule(1)
        self.mock_repo.delete.assert_not_called()


class TestStatusTransitions:
    def setup_method(self):
        self.mock_repo = MagicMock()
        self.locks = ScheduleLocks()
        self.service = ScheduleService(self.mock_repo, MagicMock(), locks=self.locks)
        self.mock_repo.update.side_effect = lambda schedule, expected_version=None: schedule

    def test_pause_keeps_next_date(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        result = self.service.pause(1)
        assert result.status == ScheduleStatus.PAUSED
        assert result.next_billing_date == date(2025, 3, 10)

    def test_resume_skips_missed_cycles(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1, status=ScheduleStatus.PAUSED)
        result = self.service.resume(1, today=date(2025, 6, 20))
        assert result.status == ScheduleStatus.ACTIVE
        assert result.next_billing_date == date(2025, 7, 10)

    @freeze_time("2025-06-20 12:00:00")
    def test_resume_defaults_to_today(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1, status=ScheduleStatus.PAUSED)
        result = self.service.resume(1)
        assert result.next_billing_date >= date(2025, 6, 20)

    def test_cancel_active(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        assert self.service.cancel(1).status == ScheduleStatus.CANCELLED

    def test_cancel_paused(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1, status=ScheduleStatus.PAUSED)
        assert self.service.cancel(1).status == ScheduleStatus.CANCELLED

    @pytest.mark.parametrize(
        "current, requested",
        [
            (ScheduleStatus.ACTIVE, ScheduleStatus.ACTIVE),
            (ScheduleStatus.PAUSED, ScheduleStatus.PAUSED),
            (ScheduleStatus.CANCELLED, ScheduleStatus.ACTIVE),
            (ScheduleStatus.CANCELLED, ScheduleStatus.PAUSED),
            (ScheduleStatus.COMPLETED, ScheduleStatus.ACTIVE),
            (ScheduleStatus.COMPLETED, ScheduleStatus.CANCELLED),
            (ScheduleStatus.ACTIVE, ScheduleStatus.COMPLETED),
        ],
    )
    def test_illegal_transitions(self, sample_schedule, current, requested):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1, status=current)
        with pytest.raises(InvalidTransitionError):
            self.service.change_status(1, requested)
        self.mock_repo.update.assert_not_called()

    def test_missing_schedule(self):
        self.mock_repo.get_by_id.return_value = None
        with pytest.raises(ScheduleNotFoundError):
            self.service.pause(1)

    def test_transition_waits_for_generation(self, sample_schedule):
        self.mock_repo.get_by_id.return_value = sample_schedule(id=1)
        done = threading.Event()

        def cancel():
            self.service.cancel(1)
            done.set()

        with self.locks.hold(1):
            worker = threading.Thread(target=cancel)
            worker.start()
            assert not done.wait(timeout=0.1)
            self.mock_repo.update.assert_not_called()

        worker.join(timeout=1)
        assert done.is_set()
        self.mock_repo.update.assert_called_once()


class TestGenerateNow:
    def test_delegates_to_generator(self, sample_schedule):
        repo = MagicMock()
        generator = MagicMock()
        schedule = sample_schedule(id=1, auto_generate_invoice=False)
        repo.get_by_id.return_value = schedule
        invoice = Invoice(id=3, customer_id=1, amount=Decimal("2850.00"), due_date=date(2025, 3, 10))
        generator.generate_invoice.return_value = (invoice, schedule)

        result = ScheduleService(repo, generator).generate_now(1, as_of=date(2025, 3, 10))

        assert result is invoice
        generator.generate_invoice.assert_called_once_with(schedule, date(2025, 3, 10))

    def test_missing(self):
        repo = MagicMock()
        repo.get_by_id.return_value = None
        with pytest.raises(ScheduleNotFoundError):
            ScheduleService(repo, MagicMock()).generate_now(1)
