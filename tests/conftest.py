"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from billcycle.models.schedule import BillingSchedule, Frequency

# Matches Alembic head: 3f9a1c2b7d10 (initial schema).
# Amounts and dates are TEXT so SQLite hands back exactly what was stored.
SCHEMA_DDL = """
CREATE TABLE customers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL DEFAULT '',
    default_payment_method TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE plans (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    price TEXT NOT NULL,
    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE billing_schedules (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    plan_id INTEGER REFERENCES plans(id),
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    amount TEXT NOT NULL,
    frequency VARCHAR(20) NOT NULL,
    custom_days INTEGER,
    due_day INTEGER NOT NULL DEFAULT 10,
    start_date TEXT NOT NULL,
    end_date TEXT,
    next_billing_date TEXT,
    notification_days TEXT NOT NULL,
    auto_generate_invoice BOOLEAN NOT NULL DEFAULT 1,
    payment_method VARCHAR(30) NOT NULL DEFAULT 'default',
    payment_gateway_id INTEGER,
    auto_charge BOOLEAN NOT NULL DEFAULT 0,
    status VARCHAR(20) NOT NULL DEFAULT 'active',
    installments INTEGER,
    installments_generated INTEGER NOT NULL DEFAULT 0,
    apply_late_fee BOOLEAN NOT NULL DEFAULT 0,
    late_fee_percentage TEXT NOT NULL DEFAULT '2.0',
    apply_daily_interest BOOLEAN NOT NULL DEFAULT 0,
    daily_interest_percentage TEXT NOT NULL DEFAULT '0.033',
    last_execution_date DATETIME,
    last_generated_invoice_id INTEGER,
    notes TEXT NOT NULL DEFAULT '',
    version INTEGER NOT NULL DEFAULT 0,
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL
);

CREATE TABLE invoices (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    uuid VARCHAR(26) NOT NULL UNIQUE,
    customer_id INTEGER NOT NULL REFERENCES customers(id),
    billing_schedule_id INTEGER REFERENCES billing_schedules(id) ON DELETE SET NULL,
    amount TEXT NOT NULL,
    due_date TEXT NOT NULL,
    status VARCHAR(20) NOT NULL DEFAULT 'pending',
    payment_method VARCHAR(30) NOT NULL DEFAULT '',
    payment_gateway_id INTEGER,
    description TEXT NOT NULL DEFAULT '',
    payment_date TEXT,
    transaction_id TEXT,
    created_at DATETIME NOT NULL,
    CONSTRAINT uq_invoices_schedule_due_date UNIQUE (billing_schedule_id, due_date)
);

INSERT INTO customers (id, name, email, default_payment_method)
VALUES (1, 'Maria Souza', 'maria@example.com', 'pix');

INSERT INTO customers (id, name, email, default_payment_method)
VALUES (2, 'João Lima', '', '');

INSERT INTO plans (id, name, price) VALUES (1, 'Plano Básico', '99.90');
"""


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


def _sample_schedule(**overrides) -> BillingSchedule:
    defaults = dict(
        customer_id=1,
        title="Mensalidade Academia",
        description="Plano mensal",
        amount=Decimal("2850.00"),
        frequency=Frequency.MONTHLY,
        due_day=10,
        start_date=date(2025, 1, 10),
        next_billing_date=date(2025, 3, 10),
    )
    defaults.update(overrides)
    return BillingSchedule(**defaults)


@pytest.fixture()
def sample_schedule():
    return _sample_schedule
