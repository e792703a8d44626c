import questionary
from rich.console import Console
from rich.table import Table

from billcycle.cli.schedule_menu import create_schedule_menu, list_schedules_menu
from billcycle.constants import format_date
from billcycle.models import format_money
from billcycle.repositories.factory import (
    get_invoice_repository,
    get_plan_repository,
    get_schedule_repository,
    get_unit_of_work,
)
from billcycle.services.batch_service import BatchProcessor
from billcycle.services.invoice_generator import InvoiceGenerator
from billcycle.services.report_service import ReportService
from billcycle.services.schedule_service import ScheduleService

console = Console()


def _build_services() -> tuple[ScheduleService, BatchProcessor, ReportService]:
    schedule_repo = get_schedule_repository()
    invoice_repo = get_invoice_repository()
    generator = InvoiceGenerator(get_unit_of_work)
    return (
        ScheduleService(schedule_repo, generator, plan_repo=get_plan_repository()),
        BatchProcessor(get_unit_of_work, generator),
        ReportService(schedule_repo, invoice_repo),
    )


def run_batch_menu(batch: BatchProcessor) -> None:
    result = batch.run()
    console.print(
        f"[green]Geradas: {result.generated}[/green]  "
        f"[yellow]Ignoradas: {result.skipped}[/yellow]  "
        f"[red]Falhas: {result.failed}[/red]"
    )


def stats_menu(reports: ReportService) -> None:
    stats = reports.schedule_stats()
    table = Table(title="Resumo")
    table.add_column("Indicador")
    table.add_column("Valor", justify="right")
    table.add_row("Agendamentos", str(stats.total))
    table.add_row("Ativos", str(stats.active))
    table.add_row("Pausados", str(stats.paused))
    table.add_row("Próximos 30 dias", str(stats.upcoming))
    table.add_row("Receita mensal estimada", format_money(stats.monthly_revenue))
    console.print(table)


def overdue_menu(reports: ReportService) -> None:
    overdue = reports.overdue_invoices()
    if not overdue:
        console.print("[green]Nenhuma fatura vencida.[/green]")
        return
    table = Table(title="Faturas vencidas")
    table.add_column("#", style="dim")
    table.add_column("Vencimento")
    table.add_column("Dias", justify="right")
    table.add_column("Valor", justify="right")
    table.add_column("Encargos", justify="right")
    table.add_column("Total", justify="right", style="bold")
    for item in overdue:
        table.add_row(
            str(item.invoice.id),
            format_date(item.invoice.due_date),
            str(item.days_late),
            format_money(item.invoice.amount),
            format_money(item.surcharge),
            format_money(item.total_due),
        )
    console.print(table)


def main_menu() -> None:
    schedule_service, batch, reports = _build_services()

    console.print()
    console.print("[bold]Cobrança Recorrente[/bold]", style="cyan")
    console.print()

    while True:
        choice = questionary.select(
            "Menu Principal",
            choices=[
                "Listar Agendamentos",
                "Novo Agendamento",
                "Executar Cobrança Automática",
                "Resumo",
                "Faturas Vencidas",
                "Sair",
            ],
        ).ask()

        if choice is None or choice == "Sair":
            console.print("[bold]Até logo![/bold]")
            break
        elif choice == "Listar Agendamentos":
            list_schedules_menu(schedule_service)
        elif choice == "Novo Agendamento":
            create_schedule_menu(schedule_service)
        elif choice == "Executar Cobrança Automática":
            run_batch_menu(batch)
        elif choice == "Resumo":
            stats_menu(reports)
        elif choice == "Faturas Vencidas":
            overdue_menu(reports)
