"""Generate the invoices due today for every auto-billing schedule.

Meant to be run once a day (cron, systemd timer, ...).

Usage:
    python -m billcycle.scripts.run_batch
    python -m billcycle.scripts.run_batch --date 2025-03-10
    python -m billcycle.scripts.run_batch --dry-run
    python -m billcycle.scripts.run_batch --reminders
"""

from __future__ import annotations

import argparse
import sys
from datetime import date

from rich.console import Console
from rich.table import Table

from billcycle.constants import FREQUENCY_LABELS, format_date, today
from billcycle.db import initialize_db
from billcycle.logging import configure_logging, reconfigure
from billcycle.models import format_money
from billcycle.notification_sink import LoggingNotificationSink
from billcycle.repositories.factory import (
    get_customer_repository,
    get_invoice_repository,
    get_schedule_repository,
    get_unit_of_work,
)
from billcycle.services.batch_service import BatchProcessor, Outcome
from billcycle.services.invoice_generator import InvoiceGenerator
from billcycle.services.reminder_service import ReminderService

console = Console()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="billcycle.scripts.run_batch", description=__doc__.splitlines()[0])
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="run as if today were YYYY-MM-DD")
    parser.add_argument("--dry-run", action="store_true", help="list due schedules without generating")
    parser.add_argument("--reminders", action="store_true", help="also send today's payment reminders")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    run_date = args.date or today()

    configure_logging()
    initialize_db()
    reconfigure()

    processor = BatchProcessor(get_unit_of_work, InvoiceGenerator(get_unit_of_work))
    due = processor.due_schedules(run_date)

    if not due:
        console.print(f"[yellow]Nenhum agendamento vencendo até {format_date(run_date)}.[/yellow]")
    else:
        table = Table(title=f"Agendamentos a faturar ({format_date(run_date)})")
        table.add_column("#", style="dim")
        table.add_column("Título", style="bold")
        table.add_column("Frequência")
        table.add_column("Vencimento")
        table.add_column("Valor", justify="right")
        for schedule in due:
            table.add_row(
                str(schedule.id),
                schedule.title,
                FREQUENCY_LABELS[schedule.frequency],
                format_date(schedule.next_billing_date),
                format_money(schedule.amount),
            )
        console.print(table)

    if args.dry_run:
        console.print("\n[yellow]--dry-run: nenhuma fatura foi gerada.[/yellow]")
        return 0

    failed = 0
    if due:
        result = processor.run(run_date)
        for item in result.results:
            if item.outcome == Outcome.GENERATED:
                console.print(f"  [green]✓[/green] agendamento {item.schedule_id} → fatura {item.invoice_id}")
            else:
                console.print(f"  [red]✗[/red] agendamento {item.schedule_id}: {item.outcome.value} {item.error}")
        console.print(f"\n[bold]{result.generated} fatura(s) gerada(s), {result.failed} falha(s).[/bold]")
        failed = result.failed

    if args.reminders:
        reminders = ReminderService(
            get_schedule_repository(),
            get_invoice_repository(),
            get_customer_repository(),
            LoggingNotificationSink(),
        )
        sent = reminders.dispatch(run_date)
        console.print(f"{sent} lembrete(s) enviado(s).")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
