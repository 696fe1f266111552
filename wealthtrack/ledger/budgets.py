"""
Budget lifecycle. overall_balance is derived and never set by callers.
"""

from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.cascade import CascadeResult, CascadeService
from wealthtrack.ledger.rules import ZERO
from wealthtrack.models.audit import AuditEventBuilder, AuditEventType
from wealthtrack.models.commands import CreateBudget, UpdateBudget
from wealthtrack.models.entities import Budget, EntityKind, utc_now


class BudgetService(LedgerService):

    async def create(self, command: CreateBudget) -> Budget:
        async with self._guard(EntityKind.BUDGET, "create"):
            uow = self._uow()
            now = utc_now()
            budget = uow.add(Budget(
                name=command.name,
                currency_id=command.currency_id,
                overall_balance=ZERO,
                created_date=now,
                modified_date=now,
            ))
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.BUDGET_CREATED,
                EntityKind.BUDGET,
                budget.id,
                f"Budget '{budget.name}' created",
                correlation_id=correlation_id,
            )
        )
        return budget

    async def update(self, budget_id: UUID, command: UpdateBudget) -> Budget:
        """Change name, currency or status."""
        async with self._guard(EntityKind.BUDGET, "update", budget_id):
            uow = self._uow()
            budget = await uow.budget(budget_id)
            fields = command.provided()
            for name, value in fields.items():
                setattr(budget, name, value)
            budget.modified_date = utc_now()
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.BUDGET_UPDATED,
                EntityKind.BUDGET,
                budget.id,
                f"Budget '{budget.name}' updated",
                {"changed_fields": sorted(fields)},
                correlation_id,
            )
        )
        return budget

    async def delete(self, budget_id: UUID) -> CascadeResult:
        return await CascadeService(self._store, self._settings, self._audit).delete_budget(budget_id)
