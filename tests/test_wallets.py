"""Tests for the wallet and budget lifecycle."""

from decimal import Decimal
from uuid import uuid4

import pytest

from wealthtrack.ledger import InvalidArgumentError, NotFoundError
from wealthtrack.models import (
    CreateWallet,
    EntityStatus,
    TransactionType,
    UpdateBudget,
    UpdateWallet,
    WalletType,
)


class TestWalletCreate:
    """Tests for WalletService.create."""

    @pytest.mark.asyncio
    async def test_opening_balance_books_correction(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "250")

        assert wallet.balance == Decimal("250")
        assert await ledger.overall(budget.id) == Decimal("250")

        [correction] = await ledger.store.list_transactions_by_wallet(wallet.id)
        assert correction.type == TransactionType.INCOME
        assert correction.amount == Decimal("250")
        assert correction.category_id == ledger.settings.balance_correction_category_id
        assert correction.description == ledger.settings.balance_correction_description
        assert "balance_corrected" in ledger.event_types()

    @pytest.mark.asyncio
    async def test_negative_opening_balance(self, ledger):
        budget = await ledger.budget()
        card = await ledger.wallet(budget, "-80", name="Card")

        [correction] = await ledger.store.list_transactions_by_wallet(card.id)
        assert correction.type == TransactionType.EXPENSE
        assert correction.amount == Decimal("80")
        assert await ledger.overall(budget.id) == Decimal("-80")

    @pytest.mark.asyncio
    async def test_zero_balance_books_nothing(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget)
        assert await ledger.store.list_transactions_by_wallet(wallet.id) == []

    @pytest.mark.asyncio
    async def test_correction_category_created_on_demand(self, ledger):
        """The system category is staged with the first correction if missing."""
        budget = await ledger.budget()
        await ledger.wallet(budget, "10")

        category = await ledger.store.get_category(ledger.settings.balance_correction_category_id)
        assert category.is_system

    @pytest.mark.asyncio
    async def test_unknown_budget(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.wallets.create(CreateWallet(name="Orphan", budget_id=uuid4()))
        assert await ledger.store.list_wallets() == []


class TestWalletUpdate:
    """Tests for WalletService.update."""

    @pytest.mark.asyncio
    async def test_plain_fields(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "10")

        updated = await ledger.wallets.update(
            wallet.id,
            UpdateWallet(name="Main card", type=WalletType.CARD, status=EntityStatus.ARCHIVED),
        )

        assert updated.name == "Main card"
        assert updated.type == WalletType.CARD
        assert updated.status == EntityStatus.ARCHIVED
        assert updated.balance == Decimal("10")
        assert updated.created_date == wallet.created_date

    @pytest.mark.asyncio
    async def test_balance_change_books_correction(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "100")

        await ledger.wallets.update(wallet.id, UpdateWallet(balance=Decimal("40")))

        assert await ledger.balance(wallet.id) == Decimal("40")
        assert await ledger.overall(budget.id) == Decimal("40")
        assert await ledger.balance(wallet.id) == await ledger.net_of(wallet.id)
        corrections = await ledger.store.list_transactions_by_wallet(wallet.id)
        assert sorted(t.type.value for t in corrections) == ["expense", "income"]

    @pytest.mark.asyncio
    async def test_same_balance_books_nothing(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "100")

        await ledger.wallets.update(wallet.id, UpdateWallet(balance=Decimal("100")))

        assert len(await ledger.store.list_transactions_by_wallet(wallet.id)) == 1

    @pytest.mark.asyncio
    async def test_flag_flip(self, ledger):
        budget = await ledger.budget()
        cash = await ledger.wallet(budget, "100")
        savings = await ledger.wallet(budget, "500", name="Savings")
        assert await ledger.overall(budget.id) == Decimal("600")

        await ledger.wallets.update(savings.id, UpdateWallet(is_part_of_general_balance=False))
        assert await ledger.overall(budget.id) == Decimal("100")

        await ledger.wallets.update(savings.id, UpdateWallet(is_part_of_general_balance=True))
        assert await ledger.overall(budget.id) == Decimal("600")
        assert await ledger.balance(cash.id) == Decimal("100")

    @pytest.mark.asyncio
    async def test_flag_flip_with_correction(self, ledger):
        """The post-correction balance is what leaves the budget."""
        budget = await ledger.budget()
        await ledger.wallet(budget, "100")
        savings = await ledger.wallet(budget, "500", name="Savings")

        await ledger.wallets.update(
            savings.id,
            UpdateWallet(balance=Decimal("700"), is_part_of_general_balance=False),
        )

        assert await ledger.balance(savings.id) == Decimal("700")
        assert await ledger.overall(budget.id) == Decimal("100")
        assert await ledger.overall(budget.id) == await ledger.flagged_total(budget.id)

    @pytest.mark.asyncio
    async def test_move_to_other_budget(self, ledger):
        home = await ledger.budget("Home")
        travel = await ledger.budget("Travel")
        wallet = await ledger.wallet(home, "300")

        moved = await ledger.wallets.update(wallet.id, UpdateWallet(budget_id=travel.id))

        assert moved.budget_id == travel.id
        assert await ledger.overall(home.id) == Decimal("0")
        assert await ledger.overall(travel.id) == Decimal("300")

    @pytest.mark.asyncio
    async def test_move_unflagged_wallet(self, ledger):
        home = await ledger.budget("Home")
        travel = await ledger.budget("Travel")
        wallet = await ledger.wallet(home, "300", flagged=False)

        await ledger.wallets.update(wallet.id, UpdateWallet(budget_id=travel.id))

        assert await ledger.overall(home.id) == Decimal("0")
        assert await ledger.overall(travel.id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_move_with_transfers_rejected(self, ledger):
        home = await ledger.budget("Home")
        travel = await ledger.budget("Travel")
        a = await ledger.wallet(home, "300", name="A")
        b = await ledger.wallet(home, "0", name="B")
        await ledger.transfer(a, b, "50")

        with pytest.raises(InvalidArgumentError):
            await ledger.wallets.update(a.id, UpdateWallet(budget_id=travel.id))

        assert (await ledger.store.get_wallet(a.id)).budget_id == home.id

    @pytest.mark.asyncio
    async def test_move_to_unknown_budget(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "10")
        with pytest.raises(NotFoundError):
            await ledger.wallets.update(wallet.id, UpdateWallet(budget_id=uuid4()))


class TestBudgetLifecycle:
    """Tests for BudgetService."""

    @pytest.mark.asyncio
    async def test_create_starts_at_zero(self, ledger):
        budget = await ledger.budget()
        assert budget.overall_balance == Decimal("0")
        assert budget.created_date == budget.modified_date

    @pytest.mark.asyncio
    async def test_update_keeps_balance(self, ledger):
        budget = await ledger.budget()
        await ledger.wallet(budget, "75")

        updated = await ledger.budgets.update(budget.id, UpdateBudget(name="Family"))

        assert updated.name == "Family"
        assert updated.overall_balance == Decimal("75")

    @pytest.mark.asyncio
    async def test_update_unknown(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.budgets.update(uuid4(), UpdateBudget(name="x"))
