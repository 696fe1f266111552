"""
Cascade Deletion Service

Deleting a wallet, budget or category has to unwind every aggregate the
removed records contributed to, in the same unit of work as the removal.

Order for one wallet:
1. Reverse and remove each regular transaction (wallet, budget, goals)
2. Reverse and remove each transfer on both of its wallets
3. Subtract whatever balance is left from the budget, if flagged
4. Remove the wallet

A budget runs that sequence for each of its wallets in one unit of work.
A transfer between two wallets of the budget is reversed only once: the
identity map hands the second wallet the same, already-deleted instance.
"""

from uuid import UUID

from pydantic import BaseModel

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.errors import InvalidArgumentError
from wealthtrack.ledger.transactions import stage_delete, stage_unassign
from wealthtrack.ledger.transfers import stage_transfer_delete
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEventBuilder, AuditEventType
from wealthtrack.models.entities import Category, EntityKind, Wallet


class CascadeResult(BaseModel):
    """What one cascade removed."""
    wallets: int = 0
    transactions: int = 0
    transfers: int = 0
    unassigned: int = 0


async def stage_wallet_delete(uow: UnitOfWork, wallet: Wallet, result: CascadeResult) -> None:
    for transaction in await uow.transactions_by_wallet(wallet.id):
        if uow.is_deleted(transaction):
            continue
        await stage_delete(uow, transaction)
        result.transactions += 1

    for transfer in await uow.transfers_by_wallet(wallet.id):
        if uow.is_deleted(transfer):
            continue
        await stage_transfer_delete(uow, transfer)
        result.transfers += 1

    if wallet.is_part_of_general_balance and wallet.balance:
        budget = await uow.budget(wallet.budget_id)
        budget.overall_balance -= wallet.balance

    uow.delete(wallet)
    result.wallets += 1


class CascadeService(LedgerService):
    """Deletes that cascade into dependent records and aggregates."""

    async def delete_wallet(self, wallet_id: UUID) -> CascadeResult:
        """
        Delete a wallet with its transactions and transfers.

        Counterpart wallets of removed transfers get their balance back.

        Raises:
            NotFoundError: Unknown wallet
        """
        result = CascadeResult()
        async with self._guard(EntityKind.WALLET, "delete", wallet_id):
            uow = self._uow()
            wallet = await uow.wallet(wallet_id)
            await stage_wallet_delete(uow, wallet, result)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        self._logger.info("wallet_deleted", wallet_id=str(wallet_id), **result.model_dump())
        await self._emit(
            AuditEventBuilder.wallet_event(
                AuditEventType.WALLET_DELETED, wallet, result.model_dump(), correlation_id
            )
        )
        return result

    async def delete_budget(self, budget_id: UUID) -> CascadeResult:
        """
        Delete a budget and everything under it, atomically.

        Raises:
            NotFoundError: Unknown budget
        """
        result = CascadeResult()
        async with self._guard(EntityKind.BUDGET, "delete", budget_id):
            uow = self._uow()
            budget = await uow.budget(budget_id)
            for wallet in await uow.wallets_by_budget(budget_id):
                await stage_wallet_delete(uow, wallet, result)
            uow.delete(budget)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        self._logger.info("budget_deleted", budget_id=str(budget_id), **result.model_dump())
        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.BUDGET_DELETED,
                EntityKind.BUDGET,
                budget.id,
                f"Budget '{budget.name}' deleted",
                result.model_dump(),
                correlation_id,
            )
        )
        return result

    async def _check_category_deletable(self, uow: UnitOfWork, category: Category) -> None:
        if category.is_system or category.id == self.correction_category_id:
            raise InvalidArgumentError("System categories cannot be deleted")
        if await self._store.list_child_categories(category.id):
            raise InvalidArgumentError(
                f"Category '{category.name}' has child categories; move or delete them first"
            )
        if await uow.goals_by_category(category.id):
            raise InvalidArgumentError(
                f"Category '{category.name}' is used by a goal; remove it from the goal first"
            )

    async def delete_category(self, category_id: UUID) -> CascadeResult:
        """
        Delete a category, unassigning it from its transactions.

        Raises:
            InvalidArgumentError: System category, has children, or used by a goal
            NotFoundError: Unknown category
        """
        result = CascadeResult()
        async with self._guard(EntityKind.CATEGORY, "delete", category_id):
            uow = self._uow()
            category = await uow.category(category_id)
            await self._check_category_deletable(uow, category)

            for transaction in await uow.transactions_by_category(category_id):
                await stage_unassign(uow, transaction)
                result.unassigned += 1
            uow.delete(category)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.CATEGORY_DELETED,
                EntityKind.CATEGORY,
                category.id,
                f"Category '{category.name}' deleted",
                result.model_dump(),
                correlation_id,
            )
        )
        return result
