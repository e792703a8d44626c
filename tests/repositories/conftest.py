import pytest
from sqlalchemy import Connection

from billcycle.repositories.sqlalchemy import (
    SQLAlchemyCustomerRepository,
    SQLAlchemyInvoiceRepository,
    SQLAlchemyPlanRepository,
    SQLAlchemyScheduleRepository,
)


@pytest.fixture()
def schedule_repo(db_connection: Connection) -> SQLAlchemyScheduleRepository:
    return SQLAlchemyScheduleRepository(db_connection)


@pytest.fixture()
def invoice_repo(db_connection: Connection) -> SQLAlchemyInvoiceRepository:
    return SQLAlchemyInvoiceRepository(db_connection)


@pytest.fixture()
def customer_repo(db_connection: Connection) -> SQLAlchemyCustomerRepository:
    return SQLAlchemyCustomerRepository(db_connection)


@pytest.fixture()
def plan_repo(db_connection: Connection) -> SQLAlchemyPlanRepository:
    return SQLAlchemyPlanRepository(db_connection)
