from __future__ import annotations

import logging
from datetime import date

from billcycle.constants import today as current_date
from billcycle.dates import compute_next_date
from billcycle.errors import InvalidTransitionError, ScheduleNotFoundError, ValidationError
from billcycle.locks import ScheduleLocks, get_schedule_locks
from billcycle.models.invoice import Invoice
from billcycle.models.schedule import BillingSchedule, Frequency, ScheduleStatus
from billcycle.repositories.base import PlanRepository, ScheduleRepository
from billcycle.services.invoice_generator import InvoiceGenerator
from billcycle.validation import validate_schedule

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = frozenset(
    {
        (ScheduleStatus.ACTIVE, ScheduleStatus.PAUSED),
        (ScheduleStatus.PAUSED, ScheduleStatus.ACTIVE),
        (ScheduleStatus.ACTIVE, ScheduleStatus.CANCELLED),
        (ScheduleStatus.PAUSED, ScheduleStatus.CANCELLED),
    }
)

# Fields owned by generation and the lifecycle; edits never overwrite them.
_SYSTEM_FIELDS = (
    "uuid",
    "status",
    "installments_generated",
    "last_execution_date",
    "last_generated_invoice_id",
    "version",
    "created_at",
    "updated_at",
)


class ScheduleService:
    def __init__(
        self,
        repo: ScheduleRepository,
        generator: InvoiceGenerator,
        plan_repo: PlanRepository | None = None,
        locks: ScheduleLocks | None = None,
    ) -> None:
        self.repo = repo
        self.generator = generator
        self.plan_repo = plan_repo
        self.locks = locks or get_schedule_locks()

    def _apply_plan_price(self, schedule: BillingSchedule) -> BillingSchedule:
        if schedule.amount > 0 or schedule.plan_id is None or self.plan_repo is None:
            return schedule
        plan = self.plan_repo.get_by_id(schedule.plan_id)
        if plan is None:
            raise ValidationError({"plan_id": "Plano não encontrado"})
        logger.debug("Using price %s from plan %s", plan.price, plan.id)
        return schedule.model_copy(update={"amount": plan.price})

    def create_schedule(self, schedule: BillingSchedule) -> BillingSchedule:
        schedule = self._apply_plan_price(schedule)
        schedule = schedule.model_copy(
            update={
                "id": None,
                "status": ScheduleStatus.ACTIVE,
                "installments_generated": 0,
                "last_execution_date": None,
                "last_generated_invoice_id": None,
            }
        )
        # due_day must be in range before the first billing date is derived from it.
        validate_schedule(schedule)
        if schedule.next_billing_date is None:
            schedule = schedule.model_copy(
                update={
                    "next_billing_date": compute_next_date(
                        schedule.start_date, schedule.due_day, schedule.frequency, schedule.custom_days
                    )
                }
            )
        validate_schedule(schedule)

        result = self.repo.create(schedule)
        logger.info(
            "Billing schedule created: id=%s, title=%s, next=%s",
            result.id,
            result.title,
            result.next_billing_date,
        )
        return result

    def list_schedules(
        self,
        status: ScheduleStatus | None = None,
        frequency: Frequency | None = None,
    ) -> list[BillingSchedule]:
        result = self.repo.list_all(status=status, frequency=frequency)
        logger.debug("Listed %d billing schedules (status=%s, frequency=%s)", len(result), status, frequency)
        return result

    def get_schedule(self, schedule_id: int) -> BillingSchedule | None:
        result = self.repo.get_by_id(schedule_id)
        logger.debug("get_schedule id=%s found=%s", schedule_id, result is not None)
        return result

    def get_schedule_by_uuid(self, uuid: str) -> BillingSchedule | None:
        result = self.repo.get_by_uuid(uuid)
        logger.debug("get_schedule_by_uuid uuid=%s found=%s", uuid, result is not None)
        return result

    def _require(self, schedule_id: int) -> BillingSchedule:
        schedule = self.repo.get_by_id(schedule_id)
        if schedule is None:
            logger.warning("Billing schedule %s not found", schedule_id)
            raise ScheduleNotFoundError(schedule_id)
        return schedule

    def update_schedule(self, schedule: BillingSchedule) -> BillingSchedule:
        """Save edits to a schedule's terms; lifecycle fields keep their stored values."""
        if schedule.id is None:
            raise ValueError("Cannot update billing schedule without an id")
        with self.locks.hold(schedule.id):
            stored = self._require(schedule.id)
            edited = schedule.model_copy(update={name: getattr(stored, name) for name in _SYSTEM_FIELDS})
            if edited.next_billing_date is None:
                edited = edited.model_copy(update={"next_billing_date": stored.next_billing_date})
            validate_schedule(edited)
            result = self.repo.update(edited, expected_version=stored.version)
        logger.info("Billing schedule updated: id=%s, title=%s", result.id, result.title)
        return result

    def delete_schedule(self, schedule_id: int) -> None:
        with self.locks.hold(schedule_id):
            self._require(schedule_id)
            self.repo.delete(schedule_id)
        self.locks.discard(schedule_id)
        logger.info("Billing schedule %s deleted", schedule_id)

    def change_status(
        self,
        schedule_id: int,
        new_status: ScheduleStatus,
        today: date | None = None,
    ) -> BillingSchedule:
        """Apply a manual status change.

        Waits for any in-flight generation on the same schedule, then checks
        the transition against the freshly stored status.  Resuming skips the
        cycles missed while paused: the next date is computed from ``today``.
        """
        new_status = ScheduleStatus(new_status)
        with self.locks.hold(schedule_id):
            stored = self._require(schedule_id)
            if (stored.status, new_status) not in ALLOWED_TRANSITIONS:
                logger.warning(
                    "Rejected transition for schedule %s: %s -> %s",
                    schedule_id,
                    stored.status.value,
                    new_status.value,
                )
                raise InvalidTransitionError(schedule_id, stored.status.value, new_status.value)

            changes: dict = {"status": new_status}
            if stored.status == ScheduleStatus.PAUSED and new_status == ScheduleStatus.ACTIVE:
                changes["next_billing_date"] = compute_next_date(
                    today or current_date(), stored.due_day, stored.frequency, stored.custom_days
                )
            result = self.repo.update(stored.model_copy(update=changes), expected_version=stored.version)

        logger.info(
            "Billing schedule %s: %s -> %s (next=%s)",
            schedule_id,
            stored.status.value,
            result.status.value,
            result.next_billing_date,
        )
        return result

    def pause(self, schedule_id: int) -> BillingSchedule:
        return self.change_status(schedule_id, ScheduleStatus.PAUSED)

    def resume(self, schedule_id: int, today: date | None = None) -> BillingSchedule:
        return self.change_status(schedule_id, ScheduleStatus.ACTIVE, today=today)

    def cancel(self, schedule_id: int) -> BillingSchedule:
        return self.change_status(schedule_id, ScheduleStatus.CANCELLED)

    def generate_now(self, schedule_id: int, as_of: date | None = None) -> Invoice:
        """Manual trigger: bill the current cycle regardless of auto_generate_invoice."""
        schedule = self._require(schedule_id)
        invoice, _ = self.generator.generate_invoice(schedule, as_of or current_date())
        logger.info("Manual generation: schedule=%s invoice=%s", schedule_id, invoice.id)
        return invoice
