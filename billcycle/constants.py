from datetime import date, datetime
from zoneinfo import ZoneInfo

from billcycle.models.invoice import InvoiceStatus
from billcycle.models.schedule import Frequency, ScheduleStatus
from billcycle.settings import settings

TZ = ZoneInfo(settings.timezone)

DATE_FORMAT = "%d/%m/%Y"

FREQUENCY_LABELS = {
    Frequency.MONTHLY: "Mensal",
    Frequency.BIMONTHLY: "Bimestral",
    Frequency.QUARTERLY: "Trimestral",
    Frequency.SEMIANNUAL: "Semestral",
    Frequency.ANNUAL: "Anual",
    Frequency.CUSTOM: "Personalizada",
}

STATUS_LABELS = {
    ScheduleStatus.ACTIVE: "Ativo",
    ScheduleStatus.PAUSED: "Pausado",
    ScheduleStatus.CANCELLED: "Cancelado",
    ScheduleStatus.COMPLETED: "Concluído",
}

INVOICE_STATUS_LABELS = {
    InvoiceStatus.PENDING: "Pendente",
    InvoiceStatus.PAID: "Paga",
    InvoiceStatus.OVERDUE: "Vencida",
    InvoiceStatus.CANCELLED: "Cancelada",
}


def now() -> datetime:
    return datetime.now(TZ)


def today() -> date:
    return now().date()


def format_date(value: date | None) -> str:
    if value is None:
        return ""
    return value.strftime(DATE_FORMAT)
