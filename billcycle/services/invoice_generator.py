from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date

from billcycle.constants import format_date, now, today
from billcycle.dates import compute_next_date
from billcycle.errors import DuplicateGenerationError, NotActiveError, ScheduleNotFoundError
from billcycle.locks import ScheduleLocks, get_schedule_locks
from billcycle.models.customer import Customer
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import DEFAULT_PAYMENT_METHOD, BillingSchedule, ScheduleStatus
from billcycle.repositories.base import UnitOfWork
from billcycle.settings import settings

logger = logging.getLogger(__name__)


def resolve_payment_method(schedule: BillingSchedule, customer: Customer | None) -> str:
    """Pick the payment method for an invoice.

    1. The schedule's own method, unless it is the ``"default"`` placeholder.
    2. The customer's stored default method.
    Falls back to ``settings.default_payment_method`` when neither is set.
    """
    if schedule.payment_method and schedule.payment_method != DEFAULT_PAYMENT_METHOD:
        return schedule.payment_method
    if customer is not None and customer.default_payment_method:
        return customer.default_payment_method
    return settings.default_payment_method


def advance_schedule(schedule: BillingSchedule, invoice: Invoice) -> BillingSchedule:
    """Schedule state after ``invoice`` was issued for its current cycle."""
    current_due = schedule.next_billing_date
    if current_due is None:  # pragma: no cover
        raise ValueError("Cannot advance a schedule without next_billing_date")

    next_date = compute_next_date(current_due, schedule.due_day, schedule.frequency, schedule.custom_days)
    changes: dict = {
        "last_generated_invoice_id": invoice.id,
        "last_execution_date": now(),
        "next_billing_date": next_date,
    }

    status = schedule.status
    if schedule.installments is not None:
        generated = schedule.installments_generated + 1
        changes["installments_generated"] = generated
        if generated >= schedule.installments:
            status = ScheduleStatus.COMPLETED
    if schedule.end_date is not None and next_date > schedule.end_date:
        status = ScheduleStatus.COMPLETED
    changes["status"] = status

    return schedule.model_copy(update=changes)


def build_invoice(schedule: BillingSchedule, customer: Customer | None, as_of: date) -> Invoice:
    """Unsaved invoice for the schedule's current cycle."""
    if schedule.next_billing_date is None:
        raise ValueError("Cannot build an invoice for a schedule without next_billing_date")
    return Invoice(
        customer_id=schedule.customer_id,
        billing_schedule_id=schedule.id,
        amount=schedule.amount,
        due_date=schedule.next_billing_date,
        status=InvoiceStatus.PENDING,
        payment_method=resolve_payment_method(schedule, customer),
        payment_gateway_id=schedule.payment_gateway_id,
        description=(
            f"{schedule.title} - vencimento {format_date(schedule.next_billing_date)} "
            f"(gerada em {format_date(as_of)})"
        ),
    )


class InvoiceGenerator:
    """Issues exactly one invoice per billing cycle.

    ``uow_factory`` returns a fresh unit of work for each call so the
    generator can be shared between batch worker threads.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        locks: ScheduleLocks | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.locks = locks or get_schedule_locks()

    def generate_invoice(self, schedule: BillingSchedule, as_of: date | None = None) -> tuple[Invoice, BillingSchedule]:
        """Issue the invoice for ``schedule``'s current cycle and advance it.

        Raises ``NotActiveError`` for schedules that are not active,
        ``DuplicateGenerationError`` when this cycle was already billed and
        ``PersistenceError`` when the store fails (nothing is written then).
        """
        if schedule.status != ScheduleStatus.ACTIVE:
            raise NotActiveError(schedule.id, schedule.status.value)
        if schedule.id is None:
            raise ValueError("Cannot generate an invoice for a schedule without an id")

        with self.locks.hold(schedule.id), self.uow_factory() as uow:
            stored = uow.schedules.get_by_id(schedule.id)
            if stored is None:
                raise ScheduleNotFoundError(schedule.id)
            if stored.status != ScheduleStatus.ACTIVE:
                raise NotActiveError(stored.id, stored.status.value)

            cycle = schedule.next_billing_date
            if cycle is None:
                raise ValueError(f"Billing schedule {schedule.id} has no next_billing_date")
            if stored.next_billing_date != cycle or uow.invoices.get_for_cycle(stored.id, cycle) is not None:
                logger.warning("Duplicate generation refused: schedule=%s cycle=%s", stored.id, cycle)
                raise DuplicateGenerationError(stored.id, cycle)

            customer = uow.customers.get_by_id(stored.customer_id)
            draft = build_invoice(stored, customer, as_of or today())

            with uow.atomic():
                invoice = uow.invoices.create(draft)
                updated = uow.schedules.update(advance_schedule(stored, invoice), expected_version=stored.version)

        logger.info(
            "Invoice generated: id=%s, schedule=%s, due=%s, amount=%s, as_of=%s, next=%s, status=%s",
            invoice.id,
            updated.id,
            invoice.due_date,
            invoice.amount,
            as_of,
            updated.next_billing_date,
            updated.status.value,
        )
        return invoice, updated
