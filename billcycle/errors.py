"""Exception hierarchy for schedule validation, generation and lifecycle."""

from __future__ import annotations


class BillingError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(BillingError, ValueError):
    """Input rejected before any store call.

    ``errors`` maps field name to a human readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(f"Invalid billing schedule ({detail})")


class ScheduleNotFoundError(BillingError, LookupError):
    def __init__(self, schedule_id: int) -> None:
        self.schedule_id = schedule_id
        super().__init__(f"Billing schedule {schedule_id} not found")


class NotActiveError(BillingError):
    def __init__(self, schedule_id: int | None, status: str) -> None:
        self.schedule_id = schedule_id
        self.status = status
        super().__init__(f"Billing schedule {schedule_id} is {status}, not active")


class DuplicateGenerationError(BillingError):
    def __init__(self, schedule_id: int | None, due_date: object) -> None:
        self.schedule_id = schedule_id
        self.due_date = due_date
        super().__init__(f"Invoice for schedule {schedule_id} cycle {due_date} was already generated")


class InvalidTransitionError(BillingError):
    def __init__(self, schedule_id: int | None, current: str, requested: str) -> None:
        self.schedule_id = schedule_id
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move billing schedule {schedule_id} from {current} to {requested}")


class PersistenceError(BillingError):
    """A store call failed; the schedule was left unchanged and the call can be retried."""


class ConcurrentModificationError(PersistenceError):
    def __init__(self, schedule_id: int | None, expected_version: int) -> None:
        self.schedule_id = schedule_id
        self.expected_version = expected_version
        super().__init__(
            f"Billing schedule {schedule_id} changed concurrently (expected version {expected_version})"
        )
