"""
Transaction Mutation Service

Create, update and delete regular (income/expense) transactions while
keeping the wallet balance, the budget's overall balance and every goal
the transaction counts towards in step.

DESIGN DECISION: Updates never patch aggregates field by field. The old
effect is reversed and the new one applied, both through the same
function create uses. A changed wallet, category, amount or date is then
just a different forward effect.
"""

from typing import Optional
from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.errors import InvalidArgumentError
from wealthtrack.ledger.rules import (
    Effect,
    TransactionEffect,
    budget_delta,
    goal_delta,
    wallet_delta,
)
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEventBuilder
from wealthtrack.models.commands import CreateTransaction, UpdateTransaction
from wealthtrack.models.entities import (
    EntityKind,
    Transaction,
    TransactionType,
    utc_now,
)


# =============================================================================
# Staging helpers (shared with the wallet, category and cascade services)
# =============================================================================

async def apply_goal_effect(uow: UnitOfWork, effect: Effect, sign: int) -> None:
    """Move every goal of the effect's category by goal_delta."""
    if effect.category_id is None:
        return
    for goal in await uow.goals_by_category(effect.category_id):
        goal.actual_money_amount += goal_delta(goal, effect, sign)


async def apply_transaction_effect(uow: UnitOfWork, effect: Effect, sign: int) -> None:
    """Apply (sign=+1) or reverse (sign=-1) a regular transaction's effect."""
    wallet = await uow.wallet(effect.wallet_id)
    delta = wallet_delta(effect.type, effect.amount, sign)
    wallet.balance += delta

    share = budget_delta(wallet, delta)
    if share:
        budget = await uow.budget(wallet.budget_id)
        budget.overall_balance += share

    await apply_goal_effect(uow, effect, sign)


async def stage_create(uow: UnitOfWork, transaction: Transaction) -> Transaction:
    uow.add(transaction)
    await apply_transaction_effect(uow, transaction, +1)
    return transaction


async def stage_delete(uow: UnitOfWork, transaction: Transaction) -> None:
    await apply_transaction_effect(uow, TransactionEffect.of(transaction), -1)
    uow.delete(transaction)


async def stage_unassign(uow: UnitOfWork, transaction: Transaction) -> Optional[UUID]:
    """
    Clear a transaction's category and take it out of that category's goals.

    Returns the category id that was removed (None if there was none).
    """
    previous = transaction.category_id
    if previous is None:
        return None
    await apply_goal_effect(uow, TransactionEffect.of(transaction), -1)
    transaction.category_id = None
    transaction.modified_date = utc_now()
    return previous


def require_positive(amount, what: str = "Transaction") -> None:
    if amount is None or amount <= 0:
        raise InvalidArgumentError(f"{what} amount must be greater than zero")


# =============================================================================
# SERVICE
# =============================================================================

class TransactionService(LedgerService):
    """Regular transaction mutations."""

    async def _check_category(
        self,
        uow: UnitOfWork,
        category_id: UUID,
        type: TransactionType,
    ) -> None:
        """The category must exist, be user-owned and carry the transaction's type."""
        category = await uow.category(category_id)
        if category.is_system:
            raise InvalidArgumentError("System categories are reserved for balance corrections")
        if category.type.value != type.value:
            raise InvalidArgumentError(
                f"Category '{category.name}' is {category.type.value}, "
                f"transaction is {type.value}"
            )

    async def create(self, command: CreateTransaction) -> Transaction:
        """
        Record a new transaction.

        Raises:
            InvalidArgumentError: Non-positive amount, system category or
                category type mismatch
            NotFoundError: Unknown wallet or category
        """
        async with self._guard(EntityKind.TRANSACTION, "create"):
            require_positive(command.amount)
            uow = self._uow()
            await uow.wallet(command.wallet_id)
            if command.category_id is not None:
                await self._check_category(uow, command.category_id, command.type)

            now = utc_now()
            transaction = Transaction(
                amount=command.amount,
                description=command.description,
                transaction_date=command.transaction_date,
                type=command.type,
                category_id=command.category_id,
                wallet_id=command.wallet_id,
                created_date=now,
                modified_date=now,
            )
            await stage_create(uow, transaction)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        self._logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            wallet_id=str(transaction.wallet_id),
            amount=str(transaction.amount),
        )
        await self._emit(AuditEventBuilder.transaction_created(transaction, correlation_id))
        return transaction

    async def update(self, transaction_id: UUID, command: UpdateTransaction) -> Transaction:
        """
        Partially update a transaction.

        Fields left as None keep their stored value. The type is fixed at
        creation: re-sending the same type is accepted, a different one is not.

        Raises:
            InvalidArgumentError: Type change, non-positive amount, system
                category or category type mismatch
            NotFoundError: Unknown transaction, wallet or category
        """
        async with self._guard(EntityKind.TRANSACTION, "update", transaction_id):
            uow = self._uow()
            transaction = await uow.transaction(transaction_id)
            fields = command.provided()

            if "type" in fields and fields["type"] != transaction.type:
                raise InvalidArgumentError("Transaction type cannot be changed after creation")
            if "amount" in fields:
                require_positive(fields["amount"])
            if "wallet_id" in fields:
                await uow.wallet(fields["wallet_id"])
            if "category_id" in fields:
                await self._check_category(uow, fields["category_id"], transaction.type)

            old = TransactionEffect.of(transaction)
            changed = sorted(
                name for name, value in fields.items()
                if getattr(transaction, name) != value
            )
            for name, value in fields.items():
                setattr(transaction, name, value)
            transaction.modified_date = utc_now()

            await apply_transaction_effect(uow, old, -1)
            await apply_transaction_effect(uow, TransactionEffect.of(transaction), +1)

            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.transaction_updated(transaction, changed, correlation_id)
        )
        return transaction

    async def unassign_category(self, transaction_id: UUID) -> Transaction:
        """
        Remove the transaction's category.

        Goals stop counting it; wallet and budget are unaffected.
        """
        async with self._guard(EntityKind.TRANSACTION, "unassign_category", transaction_id):
            uow = self._uow()
            transaction = await uow.transaction(transaction_id)
            previous = await stage_unassign(uow, transaction)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        if previous is not None:
            await self._emit(
                AuditEventBuilder.category_unassigned(transaction, previous, correlation_id)
            )
        return transaction

    async def delete(self, transaction_id: UUID) -> None:
        """
        Delete a transaction, reversing everything its creation did.

        Raises:
            NotFoundError: Unknown transaction
        """
        async with self._guard(EntityKind.TRANSACTION, "delete", transaction_id):
            uow = self._uow()
            transaction = await uow.transaction(transaction_id)
            await stage_delete(uow, transaction)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(AuditEventBuilder.transaction_deleted(transaction, correlation_id))
