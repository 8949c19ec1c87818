"""Immutability enforcement for append-only records using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from carhire.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "These records are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _guard(model, id_attr: str = "id") -> None:
    name = model.__name__

    @event.listens_for(model, "before_update")
    def prevent_update(mapper, connection, target):
        record_id = str(getattr(target, id_attr))
        _log_immutability_violation(name, "UPDATE", record_id)
        raise ImmutabilityViolationError(name, "UPDATE", record_id)

    @event.listens_for(model, "before_delete")
    def prevent_delete(mapper, connection, target):
        record_id = str(getattr(target, id_attr))
        _log_immutability_violation(name, "DELETE", record_id)
        raise ImmutabilityViolationError(name, "DELETE", record_id)


def register_immutability_enforcement() -> None:
    """Register SQLAlchemy event listeners for append-only tables.

    Must be called after models are imported but before session use. Safe to
    call more than once.
    """
    global _registered
    if _registered:
        return

    from carhire.models.admin import AuditLog
    from carhire.models.booking import BookingStatusChange
    from carhire.models.webhook import ProcessedWebhookEvent

    _guard(AuditLog)
    _guard(BookingStatusChange)
    _guard(ProcessedWebhookEvent, id_attr="event_id")

    _registered = True
    logger.info("Immutability enforcement registered for append-only records")
