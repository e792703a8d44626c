from billcycle.repositories.base import (
    CustomerRepository,
    InvoiceRepository,
    PlanRepository,
    ScheduleRepository,
    UnitOfWork,
)


def get_schedule_repository() -> ScheduleRepository:
    from billcycle.db import get_connection
    from billcycle.repositories.sqlalchemy import SQLAlchemyScheduleRepository

    return SQLAlchemyScheduleRepository(get_connection())


def get_invoice_repository() -> InvoiceRepository:
    from billcycle.db import get_connection
    from billcycle.repositories.sqlalchemy import SQLAlchemyInvoiceRepository

    return SQLAlchemyInvoiceRepository(get_connection())


def get_customer_repository() -> CustomerRepository:
    from billcycle.db import get_connection
    from billcycle.repositories.sqlalchemy import SQLAlchemyCustomerRepository

    return SQLAlchemyCustomerRepository(get_connection())


def get_plan_repository() -> PlanRepository:
    from billcycle.db import get_connection
    from billcycle.repositories.sqlalchemy import SQLAlchemyPlanRepository

    return SQLAlchemyPlanRepository(get_connection())


def get_unit_of_work() -> UnitOfWork:
    """A unit of work on its own connection, safe to hand to a worker thread."""
    from billcycle.db import get_engine
    from billcycle.repositories.sqlalchemy import SQLAlchemyUnitOfWork

    return SQLAlchemyUnitOfWork(get_engine().connect(), owns_connection=True)
