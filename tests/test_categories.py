"""Tests for the category lifecycle."""

from uuid import uuid4

import pytest

from wealthtrack.ledger import InvalidArgumentError, NotFoundError
from wealthtrack.models import CategoryType, CreateCategory, UpdateCategory


class TestCategories:
    """Tests for CategoryService."""

    @pytest.mark.asyncio
    async def test_create_nested(self, ledger):
        food = await ledger.category("Food")
        fruit = await ledger.category("Fruit", parent=food)

        children = await ledger.store.list_child_categories(food.id)
        assert [c.id for c in children] == [fruit.id]

    @pytest.mark.asyncio
    async def test_create_system_rejected(self, ledger):
        with pytest.raises(InvalidArgumentError):
            await ledger.categories.create(CreateCategory(name="Sneaky", type=CategoryType.SYSTEM))

    @pytest.mark.asyncio
    async def test_parent_type_mismatch_rejected(self, ledger):
        salary = await ledger.category("Salary", CategoryType.INCOME)
        with pytest.raises(InvalidArgumentError):
            await ledger.category("Fruit", parent=salary)

    @pytest.mark.asyncio
    async def test_unknown_parent(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.categories.create(CreateCategory(
                name="Fruit", type=CategoryType.EXPENSE, parent_category_id=uuid4()
            ))

    @pytest.mark.asyncio
    async def test_rename(self, ledger):
        food = await ledger.category("Food")
        updated = await ledger.categories.update(
            food.id, UpdateCategory(name="Groceries", icon_name="cart")
        )
        assert updated.name == "Groceries"
        assert updated.icon_name == "cart"
        assert updated.type == CategoryType.EXPENSE

    @pytest.mark.asyncio
    async def test_type_change_rejected(self, ledger):
        food = await ledger.category("Food")
        with pytest.raises(InvalidArgumentError):
            await ledger.categories.update(food.id, UpdateCategory(type=CategoryType.INCOME))

    @pytest.mark.asyncio
    async def test_system_category_is_read_only(self, ledger):
        correction = await ledger.categories.seed_system_categories()
        with pytest.raises(InvalidArgumentError):
            await ledger.categories.update(correction.id, UpdateCategory(name="Mine now"))

    @pytest.mark.asyncio
    async def test_cycle_rejected(self, ledger):
        food = await ledger.category("Food")
        fruit = await ledger.category("Fruit", parent=food)

        with pytest.raises(InvalidArgumentError):
            await ledger.categories.update(food.id, UpdateCategory(parent_category_id=fruit.id))

    @pytest.mark.asyncio
    async def test_clear_parent_moves_to_top_level(self, ledger):
        food = await ledger.category("Food")
        fruit = await ledger.category("Fruit", parent=food)

        updated = await ledger.categories.update(fruit.id, UpdateCategory(clear_parent=True))

        assert updated.parent_category_id is None
        assert (await ledger.store.get_category(fruit.id)).parent_category_id is None
        assert await ledger.store.list_child_categories(food.id) == []

    @pytest.mark.asyncio
    async def test_omitted_parent_is_kept(self, ledger):
        food = await ledger.category("Food")
        fruit = await ledger.category("Fruit", parent=food)

        await ledger.categories.update(fruit.id, UpdateCategory(name="Fresh fruit"))

        assert (await ledger.store.get_category(fruit.id)).parent_category_id == food.id

    @pytest.mark.asyncio
    async def test_set_and_clear_parent_rejected(self, ledger):
        food = await ledger.category("Food")
        drinks = await ledger.category("Drinks")
        fruit = await ledger.category("Fruit", parent=food)

        with pytest.raises(InvalidArgumentError):
            await ledger.categories.update(
                fruit.id, UpdateCategory(parent_category_id=drinks.id, clear_parent=True)
            )

        assert (await ledger.store.get_category(fruit.id)).parent_category_id == food.id

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, ledger):
        first = await ledger.categories.seed_system_categories()
        second = await ledger.categories.seed_system_categories()

        assert first.id == second.id == ledger.settings.balance_correction_category_id
        system = [
            c for c in await ledger.store.list_child_categories(None)
            if c.type == CategoryType.SYSTEM
        ]
        assert len(system) == 1
