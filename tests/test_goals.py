"""Tests for the goal recalculation service."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from conftest import at

from wealthtrack.ledger import InvalidArgumentError, NotFoundError
from wealthtrack.models import (
    CategoryType,
    CreateGoal,
    TransactionType,
    UpdateGoal,
    UpdateTransaction,
)
from wealthtrack.services.storage import ChangeSet


def goal_command(*categories, type=TransactionType.EXPENSE, **overrides) -> CreateGoal:
    values = dict(
        name="Groceries",
        planned_money_amount=Decimal("300"),
        type=type,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
        category_ids=[c.id for c in categories],
    )
    values.update(overrides)
    return CreateGoal(**values)


class TestGoalCreate:
    """Tests for GoalService.create."""

    @pytest.mark.asyncio
    async def test_counts_history(self, ledger):
        """A new goal starts at the full recomputation, not zero."""
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        await ledger.expense(wallet, "40", food, at(2024, 1, 3))
        await ledger.expense(wallet, "60", food, at(2024, 1, 31, 22))
        await ledger.expense(wallet, "99", food, at(2024, 2, 1))
        await ledger.expense(wallet, "11")

        goal = await ledger.goals.create(goal_command(food))

        assert goal.actual_money_amount == Decimal("100")
        assert await ledger.actual(goal.id) == Decimal("100")

    @pytest.mark.asyncio
    async def test_ignores_other_types(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        salary = await ledger.category("Salary", CategoryType.INCOME)
        food = await ledger.category("Food")
        await ledger.income(wallet, "500", salary, at(2024, 1, 5))
        await ledger.expense(wallet, "20", food, at(2024, 1, 5))

        income_goal = await ledger.goals.create(
            goal_command(salary, type=TransactionType.INCOME, name="Earn")
        )

        assert income_goal.actual_money_amount == Decimal("500")

    @pytest.mark.asyncio
    async def test_negative_planned_amount_rejected(self, ledger):
        food = await ledger.category("Food")
        with pytest.raises(InvalidArgumentError):
            await ledger.goals.create(goal_command(food, planned_money_amount=Decimal("-1")))

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, ledger):
        food = await ledger.category("Food")
        with pytest.raises(InvalidArgumentError):
            await ledger.goals.create(
                goal_command(food, start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))
            )

    @pytest.mark.asyncio
    async def test_empty_categories_rejected(self, ledger):
        with pytest.raises(InvalidArgumentError):
            await ledger.goals.create(goal_command())

    @pytest.mark.asyncio
    async def test_category_type_must_match(self, ledger):
        salary = await ledger.category("Salary", CategoryType.INCOME)
        with pytest.raises(InvalidArgumentError):
            await ledger.goals.create(goal_command(salary))
        assert await ledger.store.list_goals() == []

    @pytest.mark.asyncio
    async def test_system_category_rejected(self, ledger):
        correction = await ledger.categories.seed_system_categories()
        with pytest.raises(InvalidArgumentError):
            await ledger.goals.create(goal_command(correction))

    @pytest.mark.asyncio
    async def test_unknown_category(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.goals.create(CreateGoal(
                name="Ghost",
                planned_money_amount=Decimal("1"),
                type=TransactionType.EXPENSE,
                start_date=date(2024, 1, 1),
                end_date=date(2024, 1, 31),
                category_ids=[uuid4()],
            ))


class TestGoalUpdate:
    """Tests for GoalService.update and refresh."""

    @pytest.mark.asyncio
    async def test_date_range_change_recomputes(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        await ledger.expense(wallet, "40", food, at(2024, 1, 10))
        await ledger.expense(wallet, "70", food, at(2024, 2, 10))
        goal = await ledger.goals.create(goal_command(food))
        assert goal.actual_money_amount == Decimal("40")

        updated = await ledger.goals.update(goal.id, UpdateGoal(end_date=date(2024, 2, 29)))

        assert updated.actual_money_amount == Decimal("110")
        assert "goal_recalculated" in ledger.event_types()

    @pytest.mark.asyncio
    async def test_category_set_change_recomputes(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        fuel = await ledger.category("Fuel")
        await ledger.expense(wallet, "40", food, at(2024, 1, 10))
        await ledger.expense(wallet, "25", fuel, at(2024, 1, 11))
        goal = await ledger.goals.create(goal_command(food))

        updated = await ledger.goals.update(goal.id, UpdateGoal(category_ids=[food.id, fuel.id]))
        assert updated.actual_money_amount == Decimal("65")

        updated = await ledger.goals.update(goal.id, UpdateGoal(category_ids=[fuel.id]))
        assert updated.actual_money_amount == Decimal("25")

    @pytest.mark.asyncio
    async def test_type_change_with_matching_categories(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        salary = await ledger.category("Salary", CategoryType.INCOME)
        await ledger.expense(wallet, "40", food, at(2024, 1, 10))
        await ledger.income(wallet, "900", salary, at(2024, 1, 25))
        goal = await ledger.goals.create(goal_command(food))

        updated = await ledger.goals.update(
            goal.id,
            UpdateGoal(type=TransactionType.INCOME, category_ids=[salary.id]),
        )

        assert updated.actual_money_amount == Decimal("900")

    @pytest.mark.asyncio
    async def test_type_change_with_mismatched_categories_rejected(self, ledger):
        food = await ledger.category("Food")
        goal = await ledger.goals.create(goal_command(food))

        with pytest.raises(InvalidArgumentError):
            await ledger.goals.update(goal.id, UpdateGoal(type=TransactionType.INCOME))

        stored = await ledger.store.get_goal(goal.id)
        assert stored.type == TransactionType.EXPENSE

    @pytest.mark.asyncio
    async def test_unknown_goal(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.goals.update(uuid4(), UpdateGoal(name="x"))

    @pytest.mark.asyncio
    async def test_incremental_matches_recalculation(self, ledger):
        """Transaction-driven deltas agree with a full recomputation."""
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        fuel = await ledger.category("Fuel")
        goal = await ledger.goals.create(goal_command(food))

        a = await ledger.expense(wallet, "40", food, at(2024, 1, 10))
        b = await ledger.expense(wallet, "15", fuel, at(2024, 1, 12))
        c = await ledger.expense(wallet, "33", food, at(2024, 3, 1))
        await ledger.transactions.update(b.id, UpdateTransaction(category_id=food.id))
        await ledger.transactions.update(c.id, UpdateTransaction(transaction_date=at(2024, 1, 31)))
        await ledger.transactions.update(a.id, UpdateTransaction(amount=Decimal("45")))
        await ledger.transactions.delete(b.id)

        stored = await ledger.store.get_goal(goal.id)
        assert stored.actual_money_amount == Decimal("78")
        assert await ledger.goals.recalculate(stored) == stored.actual_money_amount

    @pytest.mark.asyncio
    async def test_refresh_repairs_drift(self, ledger):
        budget = await ledger.budget()
        wallet = await ledger.wallet(budget, "1000")
        food = await ledger.category("Food")
        goal = await ledger.goals.create(goal_command(food))
        await ledger.expense(wallet, "40", food, at(2024, 1, 10))

        drifted = await ledger.store.get_goal(goal.id)
        drifted.actual_money_amount = Decimal("999")
        await ledger.store.save_atomic(ChangeSet(upserts=[drifted]))

        refreshed = await ledger.goals.refresh(goal.id)

        assert refreshed.actual_money_amount == Decimal("40")
        assert await ledger.actual(goal.id) == Decimal("40")

    @pytest.mark.asyncio
    async def test_delete(self, ledger):
        food = await ledger.category("Food")
        goal = await ledger.goals.create(goal_command(food))

        await ledger.goals.delete(goal.id)

        with pytest.raises(NotFoundError):
            await ledger.store.get_goal(goal.id)
