"""
Transfer Mutation Service

Moves money between two wallets of one budget. A transfer takes `amount`
from the source and gives it to the target, so the pair's combined
balance never changes. Budgets and goals are never touched.
"""

from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.errors import InvalidArgumentError
from wealthtrack.ledger.rules import transfer_deltas
from wealthtrack.ledger.transactions import require_positive
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEventBuilder, AuditEventType
from wealthtrack.models.commands import CreateTransfer, UpdateTransfer
from wealthtrack.models.entities import EntityKind, TransferTransaction, utc_now


async def apply_transfer_effect(
    uow: UnitOfWork,
    source_wallet_id: UUID,
    target_wallet_id: UUID,
    amount,
    sign: int,
) -> None:
    """Apply (sign=+1) or reverse (sign=-1) a transfer on both wallets."""
    source_delta, target_delta = transfer_deltas(amount, sign)
    source = await uow.wallet(source_wallet_id)
    target = await uow.wallet(target_wallet_id)
    source.balance += source_delta
    target.balance += target_delta


async def stage_transfer_delete(uow: UnitOfWork, transfer: TransferTransaction) -> None:
    await apply_transfer_effect(
        uow, transfer.source_wallet_id, transfer.target_wallet_id, transfer.amount, -1
    )
    uow.delete(transfer)


class TransferService(LedgerService):
    """Transfer mutations."""

    async def _check_wallets(
        self,
        uow: UnitOfWork,
        source_wallet_id: UUID,
        target_wallet_id: UUID,
    ) -> None:
        if source_wallet_id == target_wallet_id:
            raise InvalidArgumentError("Transfer source and target wallets must differ")
        source = await uow.wallet(source_wallet_id)
        target = await uow.wallet(target_wallet_id)
        if source.budget_id != target.budget_id:
            raise InvalidArgumentError("Transfers between wallets of different budgets are not allowed")

    async def create(self, command: CreateTransfer) -> TransferTransaction:
        """
        Record a transfer.

        Raises:
            InvalidArgumentError: Non-positive amount, same wallet, cross-budget
            NotFoundError: Unknown wallet
        """
        async with self._guard(EntityKind.TRANSFER, "create"):
            require_positive(command.amount, "Transfer")
            uow = self._uow()
            await self._check_wallets(uow, command.source_wallet_id, command.target_wallet_id)

            now = utc_now()
            transfer = TransferTransaction(
                amount=command.amount,
                description=command.description,
                transaction_date=command.transaction_date,
                source_wallet_id=command.source_wallet_id,
                target_wallet_id=command.target_wallet_id,
                created_date=now,
                modified_date=now,
            )
            uow.add(transfer)
            await apply_transfer_effect(
                uow, transfer.source_wallet_id, transfer.target_wallet_id, transfer.amount, +1
            )
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.transfer_event(AuditEventType.TRANSFER_CREATED, transfer, correlation_id)
        )
        return transfer

    async def update(self, transfer_id: UUID, command: UpdateTransfer) -> TransferTransaction:
        """
        Partially update a transfer.

        Source and target are reversed and re-applied independently, so
        either side may change wallet.
        """
        async with self._guard(EntityKind.TRANSFER, "update", transfer_id):
            uow = self._uow()
            transfer = await uow.transfer(transfer_id)
            fields = command.provided()

            source_id = fields.get("source_wallet_id", transfer.source_wallet_id)
            target_id = fields.get("target_wallet_id", transfer.target_wallet_id)
            amount = fields.get("amount", transfer.amount)
            require_positive(amount, "Transfer")
            await self._check_wallets(uow, source_id, target_id)

            await apply_transfer_effect(
                uow, transfer.source_wallet_id, transfer.target_wallet_id, transfer.amount, -1
            )
            for name, value in fields.items():
                setattr(transfer, name, value)
            transfer.modified_date = utc_now()
            await apply_transfer_effect(
                uow, transfer.source_wallet_id, transfer.target_wallet_id, transfer.amount, +1
            )

            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.transfer_event(AuditEventType.TRANSFER_UPDATED, transfer, correlation_id)
        )
        return transfer

    async def delete(self, transfer_id: UUID) -> None:
        async with self._guard(EntityKind.TRANSFER, "delete", transfer_id):
            uow = self._uow()
            transfer = await uow.transfer(transfer_id)
            await stage_transfer_delete(uow, transfer)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.transfer_event(AuditEventType.TRANSFER_DELETED, transfer, correlation_id)
        )
