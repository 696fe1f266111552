"""
Wallet lifecycle

A wallet's balance is never written directly. Opening a wallet with money
in it, or telling the ledger "this wallet actually holds X", books a
balance-correction transaction in the system category for the difference.
The normal transaction rules then carry it to the budget.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.cascade import CascadeResult, CascadeService
from wealthtrack.ledger.categories import correction_category
from wealthtrack.ledger.errors import InvalidArgumentError
from wealthtrack.ledger.rules import ZERO
from wealthtrack.ledger.transactions import stage_create
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from wealthtrack.models.commands import CreateWallet, UpdateWallet
from wealthtrack.models.entities import (
    EntityKind,
    Transaction,
    TransactionType,
    Wallet,
    utc_now,
)


# Fields copied through from UpdateWallet as-is
PLAIN_FIELDS = ("name", "currency_id", "status", "type")


class WalletService(LedgerService):
    """Wallet create/update; delete is delegated to the cascade."""

    async def _stage_correction(
        self,
        uow: UnitOfWork,
        wallet: Wallet,
        target_balance: Decimal,
    ) -> Optional[Transaction]:
        """Book the difference between the wallet's balance and `target_balance`."""
        difference = target_balance - wallet.balance
        if difference == ZERO:
            return None

        category = await correction_category(uow, self._settings)
        now = utc_now()
        correction = Transaction(
            amount=abs(difference),
            type=TransactionType.INCOME if difference > 0 else TransactionType.EXPENSE,
            category_id=category.id,
            wallet_id=wallet.id,
            description=self._settings.balance_correction_description,
            transaction_date=now,
            created_date=now,
            modified_date=now,
        )
        await stage_create(uow, correction)
        return correction

    async def create(self, command: CreateWallet) -> Wallet:
        """
        Open a wallet in a budget.

        Raises:
            NotFoundError: Unknown budget
        """
        async with self._guard(EntityKind.WALLET, "create"):
            uow = self._uow()
            await uow.budget(command.budget_id)

            now = utc_now()
            wallet = uow.add(Wallet(
                name=command.name,
                balance=ZERO,
                is_part_of_general_balance=command.is_part_of_general_balance,
                budget_id=command.budget_id,
                currency_id=command.currency_id,
                type=command.type,
                created_date=now,
                modified_date=now,
            ))
            correction = await self._stage_correction(uow, wallet, command.balance)
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        events: list[AuditEvent] = [
            AuditEventBuilder.wallet_event(
                AuditEventType.WALLET_CREATED, wallet, correlation_id=correlation_id
            )
        ]
        if correction is not None:
            events.append(AuditEventBuilder.balance_corrected(wallet, correction, correlation_id))
        await self._emit(*events)
        return wallet

    async def update(self, wallet_id: UUID, command: UpdateWallet) -> Wallet:
        """
        Update a wallet.

        Applied in order:
        1. plain fields (name, currency, status, type)
        2. balance correction, against the current budget and flag
        3. general-balance flag flip: the whole balance enters or leaves the budget
        4. budget move: the flagged contribution follows the wallet

        Raises:
            InvalidArgumentError: Moving a wallet that has transfers
            NotFoundError: Unknown wallet or target budget
        """
        async with self._guard(EntityKind.WALLET, "update", wallet_id):
            uow = self._uow()
            wallet = await uow.wallet(wallet_id)
            fields = command.provided()

            new_budget_id = fields.get("budget_id", wallet.budget_id)
            if new_budget_id != wallet.budget_id:
                await uow.budget(new_budget_id)
                if await self._store.list_transfers_by_wallet(wallet.id):
                    raise InvalidArgumentError(
                        "A wallet with transfers cannot be moved to another budget"
                    )

            for name in PLAIN_FIELDS:
                if name in fields:
                    setattr(wallet, name, fields[name])

            correction = None
            if "balance" in fields:
                correction = await self._stage_correction(uow, wallet, fields["balance"])

            flag = fields.get("is_part_of_general_balance", wallet.is_part_of_general_balance)
            if flag != wallet.is_part_of_general_balance:
                budget = await uow.budget(wallet.budget_id)
                budget.overall_balance += wallet.balance if flag else -wallet.balance
                wallet.is_part_of_general_balance = flag

            if new_budget_id != wallet.budget_id:
                if wallet.is_part_of_general_balance:
                    old_budget = await uow.budget(wallet.budget_id)
                    new_budget = await uow.budget(new_budget_id)
                    old_budget.overall_balance -= wallet.balance
                    new_budget.overall_balance += wallet.balance
                wallet.budget_id = new_budget_id

            wallet.modified_date = utc_now()
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        events: list[AuditEvent] = [
            AuditEventBuilder.wallet_event(
                AuditEventType.WALLET_UPDATED,
                wallet,
                {"changed_fields": sorted(fields)},
                correlation_id,
            )
        ]
        if correction is not None:
            events.append(AuditEventBuilder.balance_corrected(wallet, correction, correlation_id))
        await self._emit(*events)
        return wallet

    async def delete(self, wallet_id: UUID) -> CascadeResult:
        return await CascadeService(self._store, self._settings, self._audit).delete_wallet(wallet_id)
