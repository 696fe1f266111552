"""
Shared fixtures for WealthTrack tests.

Test strategy:
1. Unit tests for the pure rules and the models
2. Service tests against the in-memory store
3. Store tests for both backends (atomicity, conflicts)
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

import pytest

from wealthtrack.audit import AuditLogger
from wealthtrack.config import LedgerSettings
from wealthtrack.ledger import (
    BudgetService,
    CascadeService,
    CategoryService,
    GoalService,
    TransactionService,
    TransferService,
    WalletService,
)
from wealthtrack.models import (
    Budget,
    Category,
    CategoryType,
    CreateBudget,
    CreateCategory,
    CreateTransaction,
    CreateTransfer,
    CreateWallet,
    EntityKind,
    Transaction,
    TransactionType,
    TransferTransaction,
    Wallet,
)
from wealthtrack.services.storage import InMemoryAuditStorage, InMemoryEntityStore


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    """A UTC timestamp for transaction dates."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class Ledger:
    """All services over one in-memory store, plus builders for test data."""

    def __init__(self, store=None, settings: Optional[LedgerSettings] = None):
        self.store = store or InMemoryEntityStore()
        self.settings = settings or LedgerSettings()
        self.audit_storage = InMemoryAuditStorage()
        self.audit = AuditLogger(self.audit_storage)

        args = (self.store, self.settings, self.audit)
        self.transactions = TransactionService(*args)
        self.transfers = TransferService(*args)
        self.goals = GoalService(*args)
        self.wallets = WalletService(*args)
        self.budgets = BudgetService(*args)
        self.categories = CategoryService(*args)
        self.cascade = CascadeService(*args)

    # Builders

    async def budget(self, name: str = "Household") -> Budget:
        return await self.budgets.create(CreateBudget(name=name))

    async def wallet(
        self,
        budget: Budget,
        balance: str = "0",
        flagged: bool = True,
        name: str = "Cash",
    ) -> Wallet:
        return await self.wallets.create(CreateWallet(
            name=name,
            budget_id=budget.id,
            balance=Decimal(balance),
            is_part_of_general_balance=flagged,
        ))

    async def category(
        self,
        name: str = "Food",
        type: CategoryType = CategoryType.EXPENSE,
        parent: Optional[Category] = None,
    ) -> Category:
        return await self.categories.create(CreateCategory(
            name=name,
            type=type,
            parent_category_id=parent.id if parent else None,
        ))

    async def expense(
        self,
        wallet: Wallet,
        amount: str,
        category: Optional[Category] = None,
        when: Optional[datetime] = None,
    ) -> Transaction:
        return await self.transactions.create(CreateTransaction(
            wallet_id=wallet.id,
            amount=Decimal(amount),
            type=TransactionType.EXPENSE,
            category_id=category.id if category else None,
            transaction_date=when or at(2024, 1, 15),
        ))

    async def income(
        self,
        wallet: Wallet,
        amount: str,
        category: Optional[Category] = None,
        when: Optional[datetime] = None,
    ) -> Transaction:
        return await self.transactions.create(CreateTransaction(
            wallet_id=wallet.id,
            amount=Decimal(amount),
            type=TransactionType.INCOME,
            category_id=category.id if category else None,
            transaction_date=when or at(2024, 1, 15),
        ))

    async def transfer(self, source: Wallet, target: Wallet, amount: str) -> TransferTransaction:
        return await self.transfers.create(CreateTransfer(
            source_wallet_id=source.id,
            target_wallet_id=target.id,
            amount=Decimal(amount),
            transaction_date=at(2024, 1, 20),
        ))

    # Readers

    async def balance(self, wallet_id: UUID) -> Decimal:
        return (await self.store.get_wallet(wallet_id)).balance

    async def overall(self, budget_id: UUID) -> Decimal:
        return (await self.store.get_budget(budget_id)).overall_balance

    async def actual(self, goal_id: UUID) -> Decimal:
        return (await self.store.get_goal(goal_id)).actual_money_amount

    async def flagged_total(self, budget_id: UUID) -> Decimal:
        wallets = await self.store.list_wallets_by_budget(budget_id)
        return sum(
            (w.balance for w in wallets if w.is_part_of_general_balance),
            Decimal("0"),
        )

    async def net_of(self, wallet_id: UUID) -> Decimal:
        """Income minus expense over the wallet's transactions, plus transfers."""
        total = Decimal("0")
        for t in await self.store.list_transactions_by_wallet(wallet_id):
            total += t.amount if t.type == TransactionType.INCOME else -t.amount
        for t in await self.store.list_transfers_by_wallet(wallet_id):
            if t.source_wallet_id == wallet_id:
                total -= t.amount
            if t.target_wallet_id == wallet_id:
                total += t.amount
        return total

    def event_types(self) -> list[str]:
        return [e.event_type.value for e in self.audit_storage.events]

    def rejected(self, kind: EntityKind) -> list:
        return [
            e for e in self.audit_storage.events
            if e.event_type.value == "mutation_rejected" and e.entity_type == kind.value
        ]


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()
