"""
Audit Logger

DESIGN DECISION: Every committed or rejected ledger mutation is logged.
This provides:
1. Complete traceability of aggregate changes
2. Debugging capability for drift between balances and transactions
3. A history the user can inspect

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a broken audit store never fails a mutation)
- Supports correlation IDs to trace related events (e.g. one cascade delete)
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from wealthtrack.config import AppSettings
from wealthtrack.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from wealthtrack.models.entities import EntityKind
from wealthtrack.services.storage import AuditStorageInterface


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Configure structlog for local logging.

    Called once by the orchestrator at startup. Safe to call again,
    e.g. from tests that want console output.
    """
    settings = settings or AppSettings()
    level = logging.DEBUG if settings.debug_mode else getattr(logging, settings.log_level)
    logging.basicConfig(format="%(message)s", level=level)
    # basicConfig is a no-op once the root logger has handlers
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_many(self, events: list[AuditEvent]) -> None:
        """Log the events produced by one committed unit of work."""
        for event in events:
            await self.log(event)

    async def log_rejected(
        self,
        entity_kind: EntityKind,
        operation: str,
        error: Exception,
        entity_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a mutation that was rejected before anything was persisted."""
        event = AuditEventBuilder.mutation_rejected(
            entity_kind=entity_kind,
            operation=operation,
            error_code=getattr(error, "code", type(error).__name__),
            error_message=str(error),
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_conflict(
        self,
        attempt: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a concurrent-modification conflict."""
        event = AuditEventBuilder.conflict_detected(
            attempt=attempt,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., deleting a budget).
    Pass it through all subsequent operations.
    """
    return uuid4()
