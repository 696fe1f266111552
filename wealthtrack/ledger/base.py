"""
Shared plumbing for the ledger services: store access, settings and audit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

import structlog

from wealthtrack.audit import AuditLogger
from wealthtrack.config import LedgerSettings
from wealthtrack.ledger.errors import LedgerError, NotFoundError
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEvent
from wealthtrack.models.entities import EntityKind
from wealthtrack.services.storage.interface import EntityStoreInterface


class LedgerService:
    """
    Base class for every mutation service.

    Subclasses open one UnitOfWork per public call, commit it, and then
    report what happened through `_emit`.
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._settings = settings or LedgerSettings()
        self._audit = audit
        self._logger = structlog.get_logger(type(self).__module__)

    @property
    def correction_category_id(self) -> UUID:
        return self._settings.balance_correction_category_id

    def _uow(self) -> UnitOfWork:
        return UnitOfWork(self._store)

    @asynccontextmanager
    async def _guard(
        self,
        kind: EntityKind,
        operation: str,
        entity_id: Optional[UUID] = None,
    ) -> AsyncIterator[None]:
        """Audit domain rejections, then let them propagate unchanged."""
        try:
            yield
        except (LedgerError, NotFoundError) as e:
            self._logger.info(
                "mutation_rejected",
                entity_type=kind.value,
                operation=operation,
                entity_id=str(entity_id) if entity_id else None,
                error=str(e),
            )
            if self._audit:
                await self._audit.log_rejected(kind, operation, e, entity_id=entity_id)
            raise

    async def _emit(self, *events: AuditEvent) -> None:
        if self._audit:
            await self._audit.log_many(list(events))
