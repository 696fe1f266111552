"""
Unit of Work

One UnitOfWork per mutation call. It:
1. Loads entities through an identity map, so two loads of the same wallet
   return the same instance and deltas accumulate on it
2. Remembers how each entity looked when it was loaded
3. On commit, sends every changed, added or removed entity to the store
   in one save_atomic() call

Nothing reaches storage before commit(). If a mutation raises half way,
the unit of work is simply dropped.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from wealthtrack.models.entities import (
    Budget,
    Category,
    Entity,
    EntityKind,
    Goal,
    Transaction,
    TransferTransaction,
    Wallet,
)
from wealthtrack.services.storage.interface import ChangeSet, EntityStoreInterface


logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=Entity)

Key = tuple[EntityKind, UUID]


class UnitOfWork:
    """Identity map plus staged writes over an entity store."""

    def __init__(self, store: EntityStoreInterface):
        self._store = store
        self._identity: dict[Key, Entity] = {}
        self._snapshots: dict[Key, dict[str, Any]] = {}
        self._added: dict[Key, Entity] = {}
        self._deleted: dict[Key, Entity] = {}
        self._committed = False

    @property
    def store(self) -> EntityStoreInterface:
        return self._store

    # =========================================================================
    # Tracking
    # =========================================================================

    def track(self, entity: E) -> E:
        """
        Register a loaded entity.

        Returns the already-tracked instance when the entity was seen
        before, so callers always work on one copy per id.
        """
        key = (entity.kind, entity.id)
        tracked = self._identity.get(key)
        if tracked is not None:
            return tracked
        self._identity[key] = entity
        self._snapshots[key] = entity.model_dump()
        return entity

    def track_all(self, entities: list[E]) -> list[E]:
        return [self.track(e) for e in entities]

    async def _load(self, model: type[E], entity_id: UUID, getter: Callable[[UUID], Awaitable[E]]) -> E:
        tracked = self._identity.get((model.kind, entity_id))
        if tracked is not None:
            return tracked
        return self.track(await getter(entity_id))

    def add(self, entity: E) -> E:
        """Stage a brand-new entity for insertion."""
        key = (entity.kind, entity.id)
        self._identity[key] = entity
        self._added[key] = entity
        return entity

    def delete(self, entity: Entity) -> None:
        """Stage an entity for removal."""
        key = (entity.kind, entity.id)
        if key in self._added:
            # Never reached storage
            del self._added[key]
            del self._identity[key]
            self._snapshots.pop(key, None)
            return
        self._deleted[key] = entity

    def is_deleted(self, entity: Entity) -> bool:
        return (entity.kind, entity.id) in self._deleted

    # =========================================================================
    # Loading
    # =========================================================================

    async def wallet(self, wallet_id: UUID) -> Wallet:
        return await self._load(Wallet, wallet_id, self._store.get_wallet)

    async def budget(self, budget_id: UUID) -> Budget:
        return await self._load(Budget, budget_id, self._store.get_budget)

    async def category(self, category_id: UUID) -> Category:
        return await self._load(Category, category_id, self._store.get_category)

    async def goal(self, goal_id: UUID) -> Goal:
        return await self._load(Goal, goal_id, self._store.get_goal)

    async def transaction(self, transaction_id: UUID) -> Transaction:
        return await self._load(Transaction, transaction_id, self._store.get_transaction)

    async def transfer(self, transfer_id: UUID) -> TransferTransaction:
        return await self._load(TransferTransaction, transfer_id, self._store.get_transfer)

    async def goals_by_category(self, category_id: UUID) -> list[Goal]:
        return self.track_all(await self._store.get_goals_by_category(category_id))

    async def wallets_by_budget(self, budget_id: UUID) -> list[Wallet]:
        return self.track_all(await self._store.list_wallets_by_budget(budget_id))

    async def transactions_by_wallet(self, wallet_id: UUID) -> list[Transaction]:
        return self.track_all(await self._store.list_transactions_by_wallet(wallet_id))

    async def transactions_by_category(self, category_id: UUID) -> list[Transaction]:
        return self.track_all(await self._store.list_transactions_by_category(category_id))

    async def transfers_by_wallet(self, wallet_id: UUID) -> list[TransferTransaction]:
        return self.track_all(await self._store.list_transfers_by_wallet(wallet_id))

    # =========================================================================
    # Commit
    # =========================================================================

    def pending_changes(self) -> ChangeSet:
        """Build the change set from everything touched so far."""
        upserts: list[Entity] = list(self._added.values())
        for key, entity in self._identity.items():
            if key in self._added or key in self._deleted:
                continue
            snapshot = self._snapshots.get(key)
            if snapshot is not None and entity.model_dump() != snapshot:
                upserts.append(entity)
        return ChangeSet(upserts=upserts, deletes=list(self._deleted.values()))

    async def commit(self, correlation_id: Optional[UUID] = None) -> ChangeSet:
        """
        Write every staged change in one atomic call.

        Raises:
            ConflictError: If the store detected a concurrent modification
            RuntimeError: If this unit of work was already committed
        """
        if self._committed:
            raise RuntimeError("UnitOfWork already committed")

        changes = self.pending_changes()
        if not changes.is_empty():
            await self._store.save_atomic(changes)

        self._committed = True
        for key, entity in self._identity.items():
            self._snapshots[key] = entity.model_dump()
        self._added.clear()

        logger.debug(
            "unit_of_work_committed",
            upserts=len(changes.upserts),
            deletes=len(changes.deletes),
            correlation_id=str(correlation_id) if correlation_id else None,
        )
        return changes
