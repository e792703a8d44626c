from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date

from billcycle.models.customer import Customer, Plan
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import BillingSchedule, Frequency, ScheduleStatus


class ScheduleRepository(ABC):
    @abstractmethod
    def create(self, schedule: BillingSchedule) -> BillingSchedule: ...

    @abstractmethod
    def get_by_id(self, schedule_id: int) -> BillingSchedule | None: ...

    @abstractmethod
    def get_by_uuid(self, uuid: str) -> BillingSchedule | None: ...

    @abstractmethod
    def list_all(
        self,
        status: ScheduleStatus | None = None,
        frequency: Frequency | None = None,
    ) -> list[BillingSchedule]: ...

    @abstractmethod
    def list_due(self, today: date) -> list[BillingSchedule]:
        """Active, auto-generating schedules whose next_billing_date is on or before ``today``."""

    @abstractmethod
    def update(self, schedule: BillingSchedule, expected_version: int | None = None) -> BillingSchedule:
        """Persist ``schedule`` and bump its version.

        When ``expected_version`` is given the write only succeeds if the
        stored version still matches; otherwise ``ConcurrentModificationError``.
        """

    @abstractmethod
    def delete(self, schedule_id: int) -> None: ...


class InvoiceRepository(ABC):
    @abstractmethod
    def create(self, invoice: Invoice) -> Invoice: ...

    @abstractmethod
    def get_by_id(self, invoice_id: int) -> Invoice | None: ...

    @abstractmethod
    def get_for_cycle(self, schedule_id: int, due_date: date) -> Invoice | None: ...

    @abstractmethod
    def list_all(
        self,
        status: InvoiceStatus | None = None,
        billing_schedule_id: int | None = None,
    ) -> list[Invoice]: ...

    @abstractmethod
    def update(self, invoice: Invoice) -> Invoice: ...


class CustomerRepository(ABC):
    @abstractmethod
    def get_by_id(self, customer_id: int) -> Customer | None: ...


class PlanRepository(ABC):
    @abstractmethod
    def get_by_id(self, plan_id: int) -> Plan | None: ...


class UnitOfWork(ABC):
    """Schedule, invoice and customer stores sharing one connection and transaction."""

    schedules: ScheduleRepository
    invoices: InvoiceRepository
    customers: CustomerRepository

    @abstractmethod
    def atomic(self) -> AbstractContextManager[UnitOfWork]:
        """Commit every write made inside the block together, or none of them.

        Store failures surface as ``PersistenceError`` after rollback.
        """

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

