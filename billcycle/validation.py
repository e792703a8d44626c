"""Input checks applied before a schedule reaches the store."""

from __future__ import annotations

from decimal import Decimal

from billcycle.errors import ValidationError
from billcycle.models.schedule import BillingSchedule, Frequency

MAX_LATE_FEE_PERCENTAGE = Decimal(20)
MAX_DAILY_INTEREST_PERCENTAGE = Decimal(1)


def collect_schedule_errors(schedule: BillingSchedule) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not schedule.customer_id:
        errors["customer_id"] = "Cliente é obrigatório"
    if not schedule.title.strip():
        errors["title"] = "Título é obrigatório"
    if schedule.amount <= 0:
        errors["amount"] = "Valor deve ser maior que zero"
    if not 1 <= schedule.due_day <= 31:
        errors["due_day"] = "Dia de vencimento deve estar entre 1 e 31"

    if schedule.frequency == Frequency.CUSTOM and (not schedule.custom_days or schedule.custom_days < 1):
        errors["custom_days"] = "Para frequência personalizada, informe um número de dias válido"

    if schedule.apply_late_fee and not 0 < schedule.late_fee_percentage <= MAX_LATE_FEE_PERCENTAGE:
        errors["late_fee_percentage"] = "Percentual de multa deve estar entre 0.01% e 20%"
    if schedule.apply_daily_interest and not 0 < schedule.daily_interest_percentage <= MAX_DAILY_INTEREST_PERCENTAGE:
        errors["daily_interest_percentage"] = "Percentual de juros diários deve estar entre 0.01% e 1%"

    if schedule.installments is not None:
        if schedule.installments < 1:
            errors["installments"] = "Número de parcelas deve ser um número inteiro maior que zero"
        elif schedule.installments_generated > schedule.installments:
            errors["installments_generated"] = "Parcelas geradas excedem o número de parcelas"
    if schedule.installments_generated < 0:
        errors["installments_generated"] = "Parcelas geradas não pode ser negativo"

    if any(day < 0 for day in schedule.notification_days):
        errors["notification_days"] = "Dias de notificação não podem ser negativos"

    if schedule.end_date is not None and schedule.end_date < schedule.start_date:
        errors["end_date"] = "Data final deve ser posterior à data de início"
    if schedule.next_billing_date is not None and schedule.next_billing_date < schedule.start_date:
        errors["next_billing_date"] = "Próximo vencimento não pode ser anterior à data de início"

    return errors


def validate_schedule(schedule: BillingSchedule) -> None:
    """Raise ``ValidationError`` listing every invalid field."""
    errors = collect_schedule_errors(schedule)
    if errors:
        raise ValidationError(errors)
