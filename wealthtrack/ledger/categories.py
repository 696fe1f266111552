"""
Category lifecycle: create, update, delete and system-category seeding.
"""

from typing import Optional
from uuid import UUID

from wealthtrack.audit import create_correlation_id
from wealthtrack.config import LedgerSettings
from wealthtrack.ledger.base import LedgerService
from wealthtrack.ledger.errors import InvalidArgumentError, NotFoundError
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.models.audit import AuditEventBuilder, AuditEventType
from wealthtrack.models.commands import CreateCategory, UpdateCategory
from wealthtrack.models.entities import Category, CategoryType, EntityKind, utc_now


BALANCE_CORRECTION_NAME = "Balance correction"


def build_correction_category(settings: LedgerSettings) -> Category:
    now = utc_now()
    return Category(
        id=settings.balance_correction_category_id,
        name=BALANCE_CORRECTION_NAME,
        type=CategoryType.SYSTEM,
        icon_name="balance",
        created_date=now,
        modified_date=now,
    )


async def correction_category(uow: UnitOfWork, settings: LedgerSettings) -> Category:
    """Load the balance-correction category, staging it if it was never seeded."""
    try:
        return await uow.category(settings.balance_correction_category_id)
    except NotFoundError:
        return uow.add(build_correction_category(settings))


class CategoryService(LedgerService):
    """Category mutations. Deletion lives in CascadeService."""

    async def _check_parent(
        self,
        uow: UnitOfWork,
        parent_id: UUID,
        type: CategoryType,
        child_id: Optional[UUID] = None,
    ) -> None:
        parent = await uow.category(parent_id)
        if parent.type != type:
            raise InvalidArgumentError("Parent category must have the same type")

        # Walk up from the new parent; meeting the child means a cycle
        seen = set()
        current = parent
        while current is not None and current.id not in seen:
            if current.id == child_id:
                raise InvalidArgumentError("A category cannot be nested under itself")
            seen.add(current.id)
            if current.parent_category_id is None:
                break
            try:
                current = await uow.category(current.parent_category_id)
            except NotFoundError:
                break

    async def create(self, command: CreateCategory) -> Category:
        """
        Create a user category.

        Raises:
            InvalidArgumentError: System type, or parent of another type
            NotFoundError: Unknown parent
        """
        async with self._guard(EntityKind.CATEGORY, "create"):
            if command.type == CategoryType.SYSTEM:
                raise InvalidArgumentError("System categories cannot be created")
            uow = self._uow()
            if command.parent_category_id is not None:
                await self._check_parent(uow, command.parent_category_id, command.type)

            now = utc_now()
            category = uow.add(Category(
                name=command.name,
                type=command.type,
                parent_category_id=command.parent_category_id,
                icon_name=command.icon_name,
                created_date=now,
                modified_date=now,
            ))
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.CATEGORY_CREATED,
                EntityKind.CATEGORY,
                category.id,
                f"Category '{category.name}' created",
                {"type": category.type.value},
                correlation_id,
            )
        )
        return category

    async def update(self, category_id: UUID, command: UpdateCategory) -> Category:
        """
        Update name, icon, parent or status. The type is immutable.

        A parent_category_id of None keeps the current parent; clear_parent
        detaches the category and makes it top-level again.

        Raises:
            InvalidArgumentError: System category, type change, bad parent,
                or a parent both set and cleared
            NotFoundError: Unknown category or parent
        """
        async with self._guard(EntityKind.CATEGORY, "update", category_id):
            uow = self._uow()
            category = await uow.category(category_id)
            if category.is_system:
                raise InvalidArgumentError("System categories cannot be modified")

            fields = command.provided()
            clear_parent = fields.pop("clear_parent", False)
            if "type" in fields and fields["type"] != category.type:
                raise InvalidArgumentError("Category type cannot be changed")
            if clear_parent and "parent_category_id" in fields:
                raise InvalidArgumentError("Cannot set and clear the parent category at once")
            if "parent_category_id" in fields:
                await self._check_parent(
                    uow, fields["parent_category_id"], category.type, child_id=category.id
                )
            if clear_parent:
                fields["parent_category_id"] = None

            for name, value in fields.items():
                setattr(category, name, value)
            category.modified_date = utc_now()
            correlation_id = create_correlation_id()
            await uow.commit(correlation_id)

        await self._emit(
            AuditEventBuilder.entity_event(
                AuditEventType.CATEGORY_UPDATED,
                EntityKind.CATEGORY,
                category.id,
                f"Category '{category.name}' updated",
                {"changed_fields": sorted(fields)},
                correlation_id,
            )
        )
        return category

    async def seed_system_categories(self) -> Category:
        """Create the balance-correction category if missing. Idempotent."""
        uow = self._uow()
        category = await correction_category(uow, self._settings)
        changes = await uow.commit()
        if changes.upserts:
            self._logger.info("system_category_seeded", category_id=str(category.id))
        return category
