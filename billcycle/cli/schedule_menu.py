from __future__ import annotations

from datetime import date

import questionary
from rich.console import Console
from rich.table import Table

from billcycle.constants import FREQUENCY_LABELS, STATUS_LABELS, format_date
from billcycle.errors import BillingError, ValidationError
from billcycle.models import format_money, parse_money
from billcycle.models.schedule import BillingSchedule, Frequency, ScheduleStatus
from billcycle.notifications import compute_notification_dates
from billcycle.services.schedule_service import ScheduleService

console = Console()

_FREQUENCY_BY_LABEL = {label: freq for freq, label in FREQUENCY_LABELS.items()}


def _ask_int(prompt: str, default: str = "", minimum: int = 1, maximum: int | None = None) -> int | None:
    while True:
        raw = questionary.text(prompt, default=default).ask()
        if raw is None:
            return None
        try:
            value = int(raw)
        except ValueError:
            console.print("[red]Número inválido. Tente novamente.[/red]")
            continue
        if value < minimum or (maximum is not None and value > maximum):
            console.print("[red]Valor fora do intervalo. Tente novamente.[/red]")
            continue
        return value


def _ask_date(prompt: str, default: str = "") -> date | None:
    while True:
        raw = questionary.text(prompt, default=default).ask()
        if not raw:
            return None
        try:
            return date.fromisoformat(raw)
        except ValueError:
            console.print("[red]Data inválida, use AAAA-MM-DD.[/red]")


def _print_validation_errors(exc: ValidationError) -> None:
    for field, message in exc.errors.items():
        console.print(f"  [red]{field}: {message}[/red]")


def create_schedule_menu(schedule_service: ScheduleService) -> None:
    console.print()
    console.print("[bold]Novo Agendamento[/bold]", style="cyan")

    title = questionary.text("Título:").ask()
    if not title:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return

    customer_id = _ask_int("ID do cliente:")
    if customer_id is None:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return

    while True:
        amount = parse_money(questionary.text("Valor (ex: 99.90):").ask() or "")
        if amount is not None and amount > 0:
            break
        console.print("[red]Valor inválido. Tente novamente.[/red]")

    frequency_label = questionary.select("Frequência:", choices=list(_FREQUENCY_BY_LABEL)).ask()
    if frequency_label is None:
        return
    frequency = _FREQUENCY_BY_LABEL[frequency_label]

    custom_days = None
    if frequency == Frequency.CUSTOM:
        custom_days = _ask_int("Intervalo em dias:", default="30")
    due_day = _ask_int("Dia de vencimento (1-31):", default="10", maximum=31)
    if due_day is None:
        return
    start_date = _ask_date("Data de início (AAAA-MM-DD):", default=date.today().isoformat()) or date.today()

    installments = None
    if questionary.confirm("Limitar número de parcelas?", default=False).ask():
        installments = _ask_int("Número de parcelas:")

    schedule = BillingSchedule(
        customer_id=customer_id,
        title=title,
        description=questionary.text("Descrição (opcional):").ask() or "",
        amount=amount,
        frequency=frequency,
        custom_days=custom_days,
        due_day=due_day,
        start_date=start_date,
        installments=installments,
    )

    try:
        schedule = schedule_service.create_schedule(schedule)
    except ValidationError as exc:
        console.print("[red]Agendamento inválido:[/red]")
        _print_validation_errors(exc)
        return

    console.print()
    console.print(
        f"[green bold]Agendamento '{schedule.title}' criado! "
        f"Primeira cobrança em {format_date(schedule.next_billing_date)}.[/green bold]"
    )


def list_schedules_menu(schedule_service: ScheduleService) -> None:
    schedules = schedule_service.list_schedules()

    if not schedules:
        console.print("[yellow]Nenhum agendamento cadastrado.[/yellow]")
        return

    table = Table(title="Agendamentos")
    table.add_column("#", style="dim")
    table.add_column("Título", style="bold")
    table.add_column("Valor", justify="right")
    table.add_column("Frequência")
    table.add_column("Próxima cobrança")
    table.add_column("Parcelas", justify="right")
    table.add_column("Status")

    for s in schedules:
        parcels = f"{s.installments_generated}/{s.installments}" if s.installments else "-"
        table.add_row(
            str(s.id),
            s.title,
            format_money(s.amount),
            FREQUENCY_LABELS[s.frequency],
            format_date(s.next_billing_date),
            parcels,
            STATUS_LABELS[s.status],
        )

    console.print()
    console.print(table)
    console.print()

    schedule_choices = {f"{s.id} - {s.title}": s for s in schedules}
    choice = questionary.select("Selecione um agendamento:", choices=[*schedule_choices, "Voltar"]).ask()
    if choice is None or choice == "Voltar":
        return

    _schedule_detail_menu(schedule_choices[choice], schedule_service)


def _print_reminders(schedule: BillingSchedule) -> None:
    if schedule.next_billing_date is None or not schedule.notification_days:
        console.print("[yellow]Nenhum lembrete configurado.[/yellow]")
        return
    table = Table(title="Lembretes do próximo ciclo")
    table.add_column("Data")
    table.add_column("Antecedência", justify="right")
    for trigger in compute_notification_dates(schedule.next_billing_date, schedule.notification_days):
        table.add_row(format_date(trigger.trigger_date), f"{trigger.days_before} dia(s)")
    console.print(table)


def _status_actions(schedule: BillingSchedule) -> list[str]:
    actions = []
    if schedule.status == ScheduleStatus.ACTIVE:
        actions += ["Gerar Fatura Agora", "Pausar"]
    elif schedule.status == ScheduleStatus.PAUSED:
        actions.append("Reativar")
    if schedule.status in (ScheduleStatus.ACTIVE, ScheduleStatus.PAUSED):
        actions.append("Cancelar Agendamento")
    return actions


def _schedule_detail_menu(schedule: BillingSchedule, schedule_service: ScheduleService) -> None:
    while True:
        console.print()
        console.print(f"[bold cyan]Agendamento: {schedule.title}[/bold cyan]")
        console.print(
            f"  {format_money(schedule.amount)} · {FREQUENCY_LABELS[schedule.frequency]} · "
            f"{STATUS_LABELS[schedule.status]} · próxima em {format_date(schedule.next_billing_date)}"
        )

        choice = questionary.select(
            "Ações:",
            choices=[*_status_actions(schedule), "Ver Lembretes", "Excluir Agendamento", "Voltar"],
        ).ask()

        if choice is None or choice == "Voltar":
            break
        if choice == "Ver Lembretes":
            _print_reminders(schedule)
            continue
        if choice == "Excluir Agendamento":
            confirm = questionary.confirm(f"Tem certeza que deseja excluir '{schedule.title}'?", default=False).ask()
            if confirm:
                schedule_service.delete_schedule(schedule.id)
                console.print("[green]Agendamento excluído.[/green]")
                break
            continue

        try:
            if choice == "Gerar Fatura Agora":
                invoice = schedule_service.generate_now(schedule.id)
                console.print(
                    f"[green]Fatura #{invoice.id} gerada: {format_money(invoice.amount)} "
                    f"vence em {format_date(invoice.due_date)}.[/green]"
                )
            elif choice == "Pausar":
                schedule_service.pause(schedule.id)
                console.print("[green]Agendamento pausado.[/green]")
            elif choice == "Reativar":
                schedule_service.resume(schedule.id)
                console.print("[green]Agendamento reativado.[/green]")
            elif choice == "Cancelar Agendamento":
                if questionary.confirm("Cancelar é definitivo. Continuar?", default=False).ask():
                    schedule_service.cancel(schedule.id)
                    console.print("[green]Agendamento cancelado.[/green]")
        except BillingError as exc:
            console.print(f"[red]{exc}[/red]")

        refreshed = schedule_service.get_schedule(schedule.id)
        if refreshed is None:  # pragma: no cover
            break
        schedule = refreshed
