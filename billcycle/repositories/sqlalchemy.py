from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from ulid import ULID

from billcycle.constants import now
from billcycle.errors import ConcurrentModificationError, DuplicateGenerationError, PersistenceError
from billcycle.models.customer import Customer, Plan
from billcycle.models.invoice import Invoice, InvoiceStatus
from billcycle.models.schedule import BillingSchedule, Frequency, ScheduleStatus
from billcycle.repositories.base import (
    CustomerRepository,
    InvoiceRepository,
    PlanRepository,
    ScheduleRepository,
    UnitOfWork,
)

logger = logging.getLogger(__name__)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _decimal(value) -> str | None:
    return str(value) if value is not None else None


class _SQLAlchemyRepository:
    def __init__(self, conn: Connection) -> None:
        self.conn = conn
        # Cleared by SQLAlchemyUnitOfWork while an atomic block is open.
        self.autocommit = True

    def _commit(self) -> None:
        if self.autocommit:
            self.conn.commit()


class SQLAlchemyScheduleRepository(_SQLAlchemyRepository, ScheduleRepository):
    _COLUMNS = (
        "customer_id",
        "plan_id",
        "title",
        "description",
        "amount",
        "frequency",
        "custom_days",
        "due_day",
        "start_date",
        "end_date",
        "next_billing_date",
        "notification_days",
        "auto_generate_invoice",
        "payment_method",
        "payment_gateway_id",
        "auto_charge",
        "status",
        "installments",
        "installments_generated",
        "apply_late_fee",
        "late_fee_percentage",
        "apply_daily_interest",
        "daily_interest_percentage",
        "last_execution_date",
        "last_generated_invoice_id",
        "notes",
    )

    @staticmethod
    def _params(schedule: BillingSchedule) -> dict:
        return {
            "customer_id": schedule.customer_id,
            "plan_id": schedule.plan_id,
            "title": schedule.title,
            "description": schedule.description,
            "amount": _decimal(schedule.amount),
            "frequency": schedule.frequency.value,
            "custom_days": schedule.custom_days,
            "due_day": schedule.due_day,
            "start_date": _iso(schedule.start_date),
            "end_date": _iso(schedule.end_date),
            "next_billing_date": _iso(schedule.next_billing_date),
            "notification_days": json.dumps(list(schedule.notification_days)),
            "auto_generate_invoice": schedule.auto_generate_invoice,
            "payment_method": schedule.payment_method,
            "payment_gateway_id": schedule.payment_gateway_id,
            "auto_charge": schedule.auto_charge,
            "status": schedule.status.value,
            "installments": schedule.installments,
            "installments_generated": schedule.installments_generated,
            "apply_late_fee": schedule.apply_late_fee,
            "late_fee_percentage": _decimal(schedule.late_fee_percentage),
            "apply_daily_interest": schedule.apply_daily_interest,
            "daily_interest_percentage": _decimal(schedule.daily_interest_percentage),
            "last_execution_date": schedule.last_execution_date,
            "last_generated_invoice_id": schedule.last_generated_invoice_id,
            "notes": schedule.notes,
        }

    def create(self, schedule: BillingSchedule) -> BillingSchedule:
        timestamp = now()
        params = self._params(schedule)
        params.update(uuid=str(ULID()), version=0, created_at=timestamp, updated_at=timestamp)
        columns = ", ".join(params)
        placeholders = ", ".join(f":{name}" for name in params)
        result = self.conn.execute(
            text(f"INSERT INTO billing_schedules ({columns}) VALUES ({placeholders})"),
            params,
        )
        schedule_id = result.lastrowid
        self._commit()
        created = self.get_by_id(schedule_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve billing schedule after create (id={schedule_id})")
        return created

    @staticmethod
    def _build_schedule(row: RowMapping) -> BillingSchedule:
        notification_days = row["notification_days"]
        if isinstance(notification_days, str):
            notification_days = json.loads(notification_days)
        return BillingSchedule(
            id=row["id"],
            uuid=row["uuid"],
            customer_id=row["customer_id"],
            plan_id=row["plan_id"],
            title=row["title"],
            description=row["description"],
            amount=row["amount"],
            frequency=Frequency(row["frequency"]),
            custom_days=row["custom_days"],
            due_day=row["due_day"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            next_billing_date=row["next_billing_date"],
            notification_days=notification_days or (),
            auto_generate_invoice=row["auto_generate_invoice"],
            payment_method=row["payment_method"],
            payment_gateway_id=row["payment_gateway_id"],
            auto_charge=row["auto_charge"],
            status=ScheduleStatus(row["status"]),
            installments=row["installments"],
            installments_generated=row["installments_generated"],
            apply_late_fee=row["apply_late_fee"],
            late_fee_percentage=row["late_fee_percentage"],
            apply_daily_interest=row["apply_daily_interest"],
            daily_interest_percentage=row["daily_interest_percentage"],
            last_execution_date=row["last_execution_date"],
            last_generated_invoice_id=row["last_generated_invoice_id"],
            notes=row["notes"],
            version=row["version"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _fetch_one(self, where: str, params: dict) -> BillingSchedule | None:
        row = (
            self.conn.execute(text(f"SELECT * FROM billing_schedules WHERE {where}"), params)
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_schedule(row)

    def get_by_id(self, schedule_id: int) -> BillingSchedule | None:
        return self._fetch_one("id = :id", {"id": schedule_id})

    def get_by_uuid(self, uuid: str) -> BillingSchedule | None:
        return self._fetch_one("uuid = :uuid", {"uuid": uuid})

    def list_all(
        self,
        status: ScheduleStatus | None = None,
        frequency: Frequency | None = None,
    ) -> list[BillingSchedule]:
        clauses = []
        params: dict = {}
        if status is not None:
            clauses.append("status = :status")
            params["status"] = ScheduleStatus(status).value
        if frequency is not None:
            clauses.append("frequency = :frequency")
            params["frequency"] = Frequency(frequency).value
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = (
            self.conn.execute(text(f"SELECT * FROM billing_schedules {where}ORDER BY title, id"), params)
            .mappings()
            .fetchall()
        )
        return [self._build_schedule(row) for row in rows]

    def list_due(self, today: date) -> list[BillingSchedule]:
        rows = (
            self.conn.execute(
                text(
                    "SELECT * FROM billing_schedules WHERE status = :status "
                    "AND auto_generate_invoice = :auto AND next_billing_date <= :today "
                    "ORDER BY next_billing_date, id"
                ),
                {"status": ScheduleStatus.ACTIVE.value, "auto": True, "today": today.isoformat()},
            )
            .mappings()
            .fetchall()
        )
        return [self._build_schedule(row) for row in rows]

    def update(self, schedule: BillingSchedule, expected_version: int | None = None) -> BillingSchedule:
        if schedule.id is None:
            raise ValueError("Cannot update billing schedule without an id")
        params = self._params(schedule)
        assignments = ", ".join(f"{name} = :{name}" for name in self._COLUMNS)
        params.update(id=schedule.id, updated_at=now())
        sql = (
            f"UPDATE billing_schedules SET {assignments}, updated_at = :updated_at, "
            "version = version + 1 WHERE id = :id"
        )
        if expected_version is not None:
            sql += " AND version = :expected_version"
            params["expected_version"] = expected_version
        result = self.conn.execute(text(sql), params)
        if result.rowcount == 0:
            if expected_version is not None:
                raise ConcurrentModificationError(schedule.id, expected_version)
            raise RuntimeError(f"Billing schedule {schedule.id} disappeared during update")
        self._commit()
        updated = self.get_by_id(schedule.id)
        if updated is None:
            raise RuntimeError(f"Failed to retrieve billing schedule after update (id={schedule.id})")
        return updated

    def delete(self, schedule_id: int) -> None:
        self.conn.execute(
            text("UPDATE invoices SET billing_schedule_id = NULL WHERE billing_schedule_id = :id"),
            {"id": schedule_id},
        )
        self.conn.execute(text("DELETE FROM billing_schedules WHERE id = :id"), {"id": schedule_id})
        self._commit()


class SQLAlchemyInvoiceRepository(_SQLAlchemyRepository, InvoiceRepository):
    def create(self, invoice: Invoice) -> Invoice:
        try:
            result = self.conn.execute(
                text(
                    "INSERT INTO invoices (uuid, customer_id, billing_schedule_id, amount, due_date, "
                    "status, payment_method, payment_gateway_id, description, payment_date, "
                    "transaction_id, created_at) "
                    "VALUES (:uuid, :customer_id, :billing_schedule_id, :amount, :due_date, "
                    ":status, :payment_method, :payment_gateway_id, :description, :payment_date, "
                    ":transaction_id, :created_at)"
                ),
                {
                    "uuid": str(ULID()),
                    "customer_id": invoice.customer_id,
                    "billing_schedule_id": invoice.billing_schedule_id,
                    "amount": _decimal(invoice.amount),
                    "due_date": _iso(invoice.due_date),
                    "status": invoice.status.value,
                    "payment_method": invoice.payment_method,
                    "payment_gateway_id": invoice.payment_gateway_id,
                    "description": invoice.description,
                    "payment_date": _iso(invoice.payment_date),
                    "transaction_id": invoice.transaction_id,
                    "created_at": now(),
                },
            )
        except IntegrityError as exc:
            if invoice.billing_schedule_id is None:
                raise
            # uq_invoices_schedule_due_date: another writer already billed this cycle.
            raise DuplicateGenerationError(invoice.billing_schedule_id, invoice.due_date) from exc
        invoice_id = result.lastrowid
        self._commit()
        created = self.get_by_id(invoice_id)
        if created is None:
            raise RuntimeError(f"Failed to retrieve invoice after create (id={invoice_id})")
        return created

    @staticmethod
    def _build_invoice(row: RowMapping) -> Invoice:
        return Invoice(
            id=row["id"],
            uuid=row["uuid"],
            customer_id=row["customer_id"],
            billing_schedule_id=row["billing_schedule_id"],
            amount=row["amount"],
            due_date=row["due_date"],
            status=InvoiceStatus(row["status"]),
            payment_method=row["payment_method"],
            payment_gateway_id=row["payment_gateway_id"],
            description=row["description"],
            payment_date=row["payment_date"],
            transaction_id=row["transaction_id"],
            created_at=row["created_at"],
        )

    def get_by_id(self, invoice_id: int) -> Invoice | None:
        row = (
            self.conn.execute(text("SELECT * FROM invoices WHERE id = :id"), {"id": invoice_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_invoice(row)

    def get_for_cycle(self, schedule_id: int, due_date: date) -> Invoice | None:
        row = (
            self.conn.execute(
                text("SELECT * FROM invoices WHERE billing_schedule_id = :schedule_id AND due_date = :due_date"),
                {"schedule_id": schedule_id, "due_date": due_date.isoformat()},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_invoice(row)

    def list_all(
        self,
        status: InvoiceStatus | None = None,
        billing_schedule_id: int | None = None,
    ) -> list[Invoice]:
        clauses = []
        params: dict = {}
        if status is not None:
            clauses.append("status = :status")
            params["status"] = InvoiceStatus(status).value
        if billing_schedule_id is not None:
            clauses.append("billing_schedule_id = :billing_schedule_id")
            params["billing_schedule_id"] = billing_schedule_id
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        rows = (
            self.conn.execute(text(f"SELECT * FROM invoices {where}ORDER BY due_date, id"), params)
            .mappings()
            .fetchall()
        )
        return [self._build_invoice(row) for row in rows]

    def update(self, invoice: Invoice) -> Invoice:
        if invoice.id is None:
            raise ValueError("Cannot update invoice without an id")
        self.conn.execute(
            text(
                "UPDATE invoices SET amount = :amount, due_date = :due_date, status = :status, "
                "payment_method = :payment_method, payment_gateway_id = :payment_gateway_id, "
                "description = :description, payment_date = :payment_date, "
                "transaction_id = :transaction_id WHERE id = :id"
            ),
            {
                "amount": _decimal(invoice.amount),
                "due_date": _iso(invoice.due_date),
                "status": invoice.status.value,
                "payment_method": invoice.payment_method,
                "payment_gateway_id": invoice.payment_gateway_id,
                "description": invoice.description,
                "payment_date": _iso(invoice.payment_date),
                "transaction_id": invoice.transaction_id,
                "id": invoice.id,
            },
        )
        self._commit()
        updated = self.get_by_id(invoice.id)
        if updated is None:
            raise RuntimeError(f"Failed to retrieve invoice after update (id={invoice.id})")
        return updated


class SQLAlchemyCustomerRepository(CustomerRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_by_id(self, customer_id: int) -> Customer | None:
        row = (
            self.conn.execute(text("SELECT * FROM customers WHERE id = :id"), {"id": customer_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return Customer(
            id=row["id"],
            name=row["name"],
            email=row["email"] or "",
            default_payment_method=row["default_payment_method"] or "",
        )


class SQLAlchemyPlanRepository(PlanRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def get_by_id(self, plan_id: int) -> Plan | None:
        row = (
            self.conn.execute(text("SELECT * FROM plans WHERE id = :id"), {"id": plan_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return Plan(id=row["id"], name=row["name"], price=row["price"])


class SQLAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, conn: Connection, owns_connection: bool = False) -> None:
        self.conn = conn
        self.owns_connection = owns_connection
        self.schedules = SQLAlchemyScheduleRepository(conn)
        self.invoices = SQLAlchemyInvoiceRepository(conn)
        self.customers = SQLAlchemyCustomerRepository(conn)

    def _set_autocommit(self, value: bool) -> None:
        self.schedules.autocommit = value
        self.invoices.autocommit = value

    @contextmanager
    def atomic(self) -> Iterator[SQLAlchemyUnitOfWork]:
        # Close out any implicit read transaction so the block starts clean.
        self.conn.commit()
        self._set_autocommit(False)
        try:
            yield self
            self.conn.commit()
        except SQLAlchemyError as exc:
            self.conn.rollback()
            logger.error("Transaction rolled back: %s", exc)
            raise PersistenceError(f"Store operation failed: {exc}") from exc
        except BaseException:
            self.conn.rollback()
            raise
        finally:
            self._set_autocommit(True)

    def close(self) -> None:
        if self.owns_connection:
            self.conn.close()
