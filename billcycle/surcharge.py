from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from billcycle.models import CENT
from billcycle.models.invoice import Invoice
from billcycle.models.schedule import BillingSchedule

HUNDRED = Decimal(100)


def days_late(due_date: date, as_of: date) -> int:
    return max(0, (as_of - due_date).days)


def compute_overdue_surcharge(
    invoice_amount: Decimal,
    due_date: date,
    as_of: date,
    apply_late_fee: bool,
    late_fee_percentage: Decimal,
    apply_daily_interest: bool,
    daily_interest_percentage: Decimal,
) -> Decimal:
    """Late fee plus simple daily interest owed on an invoice as of ``as_of``.

    The late fee is a flat percentage charged once the invoice is at least
    one day late.  Interest accrues linearly per day late and never
    compounds.  The result is rounded to cents.
    """
    late = days_late(due_date, as_of)
    if late == 0:
        return Decimal("0.00")

    amount = Decimal(invoice_amount)
    late_fee = amount * Decimal(late_fee_percentage) / HUNDRED if apply_late_fee else Decimal(0)
    interest = (
        amount * Decimal(daily_interest_percentage) / HUNDRED * late if apply_daily_interest else Decimal(0)
    )
    return (late_fee + interest).quantize(CENT, rounding=ROUND_HALF_UP)


def surcharge_for_invoice(invoice: Invoice, schedule: BillingSchedule, as_of: date) -> Decimal:
    return compute_overdue_surcharge(
        invoice.amount,
        invoice.due_date,
        as_of,
        schedule.apply_late_fee,
        schedule.late_fee_percentage,
        schedule.apply_daily_interest,
        schedule.daily_interest_percentage,
    )
