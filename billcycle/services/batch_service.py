from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import date
from enum import Enum

from pydantic import BaseModel

from billcycle.constants import today as current_date
from billcycle.errors import BillingError, DuplicateGenerationError, NotActiveError
from billcycle.models.schedule import BillingSchedule
from billcycle.repositories.base import UnitOfWork
from billcycle.services.invoice_generator import InvoiceGenerator
from billcycle.settings import settings

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class ScheduleResult(BaseModel):
    schedule_id: int
    outcome: Outcome
    invoice_id: int | None = None
    error: str = ""


class BatchResult(BaseModel):
    run_date: date
    results: list[ScheduleResult] = []

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def generated(self) -> int:
        return self._count(Outcome.GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED) + self._count(Outcome.TIMED_OUT)


class BatchProcessor:
    """Daily run: bill every active, auto-generating schedule that is due.

    Schedules are processed on a bounded thread pool.  A failure or a
    missed deadline is recorded for that schedule only; the rest of the
    run carries on.
    """

    poll_interval = 0.05

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        generator: InvoiceGenerator,
        max_workers: int | None = None,
        schedule_timeout: float | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.generator = generator
        self.max_workers = max_workers or settings.batch_max_workers
        self.schedule_timeout = schedule_timeout if schedule_timeout is not None else settings.batch_schedule_timeout

    def due_schedules(self, run_date: date) -> list[BillingSchedule]:
        with self.uow_factory() as uow:
            result = uow.schedules.list_due(run_date)
        logger.debug("Found %d due schedule(s) for %s", len(result), run_date)
        return result

    def _generate(self, schedule: BillingSchedule, run_date: date, started: dict[int, float]):
        started[schedule.id] = time.monotonic()  # type: ignore[index]
        return self.generator.generate_invoice(schedule, run_date)

    @staticmethod
    def _collect(schedule: BillingSchedule, future: Future) -> ScheduleResult:
        schedule_id = schedule.id or 0
        try:
            invoice, _ = future.result()
        except (NotActiveError, DuplicateGenerationError) as exc:
            logger.warning("Schedule %s skipped: %s", schedule_id, exc)
            return ScheduleResult(schedule_id=schedule_id, outcome=Outcome.SKIPPED, error=str(exc))
        except BillingError as exc:
            logger.error("Schedule %s failed: %s", schedule_id, exc)
            return ScheduleResult(schedule_id=schedule_id, outcome=Outcome.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected error generating invoice for schedule %s", schedule_id)
            return ScheduleResult(schedule_id=schedule_id, outcome=Outcome.FAILED, error=str(exc))
        return ScheduleResult(schedule_id=schedule_id, outcome=Outcome.GENERATED, invoice_id=invoice.id)

    def _expired(self, schedule: BillingSchedule, started: dict[int, float]) -> bool:
        start = started.get(schedule.id)  # type: ignore[arg-type]
        return start is not None and time.monotonic() - start > self.schedule_timeout

    def run(self, today: date | None = None) -> BatchResult:
        run_date = today or current_date()
        result = BatchResult(run_date=run_date)

        schedules = self.due_schedules(run_date)
        if not schedules:
            logger.info("Batch %s: nothing due", run_date)
            return result

        logger.info("Batch %s: %d schedule(s) due, %d worker(s)", run_date, len(schedules), self.max_workers)
        started: dict[int, float] = {}
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="billcycle-batch")
        futures = {executor.submit(self._generate, s, run_date, started): s for s in schedules}
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(pending, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    result.results.append(self._collect(futures[future], future))

                expired = {f for f in pending if self._expired(futures[f], started)}
                for future in expired:
                    schedule_id = futures[future].id or 0
                    logger.error(
                        "Schedule %s exceeded the %.1fs deadline; leaving it to finish in the background",
                        schedule_id,
                        self.schedule_timeout,
                    )
                    result.results.append(
                        ScheduleResult(
                            schedule_id=schedule_id,
                            outcome=Outcome.TIMED_OUT,
                            error=f"exceeded {self.schedule_timeout}s deadline",
                        )
                    )
                pending -= expired
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "Batch %s finished: generated=%d skipped=%d failed=%d",
            run_date,
            result.generated,
            result.skipped,
            result.failed,
        )
        return result
