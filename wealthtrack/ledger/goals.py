"""
Goal Recalculation Service

Transaction mutations move goals incrementally (see transactions.py).
When a goal's own definition changes we recompute instead:

DESIGN DECISION: On goal create/update, actual_money_amount is the full
sum over matching transactions. Old and new definitions are never diffed.
"""

from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.errors import InvalidArgumentError
from wealthtrack.ledger.rules import ZERO, is_goal_applicable
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEventBuilder, AuditEventType
from wealthtrack.models.commands import CreateGoal, UpdateGoal
from wealthtrack.models.entities import EntityKind, Goal, utc_now


class GoalService(LedgerService):
    """Goal lifecycle plus full recalculation."""

    async def recalculate(self, goal: Goal) -> Decimal:
        """
        Sum every transaction that counts towards the goal.

        Balance-correction transactions never count.
        """
        total = ZERO
        for category_id in goal.category_ids:
            if category_id == self.correction_category_id:
                continue
            matches = await self._store.get_transactions_matching(
                category_id, goal.type, goal.start_date, goal.end_date
            )
            total += sum(
                (t.amount for t in matches if is_goal_applicable(goal, t)),
                ZERO,
            )
        return total

    async def _validate(self, uow: UnitOfWork, values: dict[str, Any]) -> None:
        """Check a complete goal definition."""
        if values["planned_money_amount"] is None or values["planned_money_amount"] < 0:
            raise InvalidArgumentError("Planned amount cannot be negative")
        if values["end_date"] < values["start_date"]:
            raise InvalidArgumentError("Goal end date cannot be before start date")
        if not values["category_ids"]:
            raise InvalidArgumentError("A goal needs at least one category")

        goal_type = values["type"]
        for category_id in values["category_ids"]:
            category = await uow.category(category_id)
            if category.type.value != goal_type.value:
                raise InvalidArgumentError(
                    f"Category '{category.name}' is {category.type.value}, "
                    f"goal is {goal_type.value}"
                )

    async def create(self, command: CreateGoal) -> Goal:
        """
        Create a goal already counting every matching historical transaction.

        Raises:
            InvalidArgumentError: Bad amount, date range, or category type
            NotFoundError: Unknown category
        """
        async with self._guard(EntityKind.GOAL, "create"):
            uow = self._uow()
            values = command.model_dump()
            values["category_ids"] = set(command.category_ids)
            await self._validate(uow, values)

            now = utc_now()
            goal = Goal(**values, created_date=now, modified_date=now)
            goal.actual_money_amount = await self.recalculate(goal)
            uow.add(goal)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.GOAL_CREATED,
                EntityKind.GOAL,
                goal.id,
                f"Goal '{goal.name}' created",
                {"actual_money_amount": str(goal.actual_money_amount)},
                correlation_id,
            )
        )
        return goal

    async def update(self, goal_id: UUID, command: UpdateGoal) -> Goal:
        """
        Update a goal and recompute its actual amount from scratch.

        Raises:
            InvalidArgumentError: The resulting definition is invalid
            NotFoundError: Unknown goal or category
        """
        async with self._guard(EntityKind.GOAL, "update", goal_id):
            uow = self._uow()
            goal = await uow.goal(goal_id)
            fields = command.provided()
            if "category_ids" in fields:
                fields["category_ids"] = set(fields["category_ids"])

            values = {
                name: fields.get(name, getattr(goal, name))
                for name in (
                    "planned_money_amount", "type", "start_date", "end_date", "category_ids",
                )
            }
            await self._validate(uow, values)

            for name, value in fields.items():
                setattr(goal, name, value)
            goal.modified_date = utc_now()

            previous = goal.actual_money_amount
            goal.actual_money_amount = await self.recalculate(goal)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.GOAL_UPDATED,
                EntityKind.GOAL,
                goal.id,
                f"Goal '{goal.name}' updated",
                {"changed_fields": sorted(fields)},
                correlation_id,
            ),
            AuditEventBuilder.goal_recalculated(goal, previous, correlation_id),
        )
        return goal

    async def refresh(self, goal_id: UUID) -> Goal:
        """Recompute a goal without changing its definition."""
        async with self._guard(EntityKind.GOAL, "refresh", goal_id):
            uow = self._uow()
            goal = await uow.goal(goal_id)
            previous = goal.actual_money_amount
            goal.actual_money_amount = await self.recalculate(goal)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        if goal.actual_money_amount != previous:
            self._logger.warning(
                "goal_drift_corrected",
                goal_id=str(goal.id),
                previous=str(previous),
                actual=str(goal.actual_money_amount),
            )
            await self._emit(AuditEventBuilder.goal_recalculated(goal, previous, correlation_id))
        return goal

    async def delete(self, goal_id: UUID) -> None:
        async with self._guard(EntityKind.GOAL, "delete", goal_id):
            uow = self._uow()
            goal = await uow.goal(goal_id)
            uow.delete(goal)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.GOAL_DELETED,
                EntityKind.GOAL,
                goal.id,
                f"Goal '{goal.name}' deleted",
                correlation_id=correlation_id,
            )
        )
