"""
In-Memory Storage Implementation

The default store for tests and embedded use. Entities live in a dict
keyed by (kind, id). Commits are serialised with an asyncio.Lock so the
version check and the write happen as one step.

Everything handed out is a deep copy: callers can't mutate stored state
except through save_atomic().
"""

import asyncio
from datetime import date
from typing import Optional, TypeVar
from uuid import UUID

from wealthtrack.models.audit import AuditEvent
from wealthtrack.models.entities import (
    Budget,
    Category,
    Entity,
    EntityKind,
    Goal,
    Transaction,
    TransactionType,
    TransferTransaction,
    Wallet,
)
from wealthtrack.services.storage.interface import (
    AuditStorageInterface,
    ChangeSet,
    EntityStoreInterface,
    NotFoundError,
    check_versions,
    filter_transactions_matching,
)


E = TypeVar("E", bound=Entity)


class InMemoryEntityStore(EntityStoreInterface):
    """Dict-backed entity store."""

    def __init__(self):
        self._rows: dict[tuple[EntityKind, UUID], Entity] = {}
        self._lock = asyncio.Lock()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _get(self, model: type[E], entity_id: UUID) -> E:
        row = self._rows.get((model.kind, entity_id))
        if row is None:
            raise NotFoundError(model.kind.value, entity_id)
        return row.model_copy(deep=True)

    def _all(self, model: type[E]) -> list[E]:
        return [
            row.model_copy(deep=True)
            for (kind, _), row in self._rows.items()
            if kind == model.kind
        ]

    def _version_of(self, kind: EntityKind, entity_id: UUID) -> Optional[int]:
        row = self._rows.get((kind, entity_id))
        return row.version if row is not None else None

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_wallet(self, wallet_id: UUID) -> Wallet:
        return self._get(Wallet, wallet_id)

    async def get_budget(self, budget_id: UUID) -> Budget:
        return self._get(Budget, budget_id)

    async def get_category(self, category_id: UUID) -> Category:
        return self._get(Category, category_id)

    async def get_goal(self, goal_id: UUID) -> Goal:
        return self._get(Goal, goal_id)

    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        return self._get(Transaction, transaction_id)

    async def get_transfer(self, transfer_id: UUID) -> TransferTransaction:
        return self._get(TransferTransaction, transfer_id)

    async def get_goals_by_category(self, category_id: UUID) -> list[Goal]:
        return [g for g in self._all(Goal) if category_id in g.category_ids]

    async def get_transactions_matching(
        self,
        category_id: UUID,
        type: TransactionType,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        return filter_transactions_matching(
            self._all(Transaction), category_id, type, date_from, date_to
        )

    async def list_wallets(self) -> list[Wallet]:
        return self._all(Wallet)

    async def list_budgets(self) -> list[Budget]:
        return self._all(Budget)

    async def list_goals(self) -> list[Goal]:
        return self._all(Goal)

    async def list_wallets_by_budget(self, budget_id: UUID) -> list[Wallet]:
        return [w for w in self._all(Wallet) if w.budget_id == budget_id]

    async def list_transactions_by_wallet(self, wallet_id: UUID) -> list[Transaction]:
        return [t for t in self._all(Transaction) if t.wallet_id == wallet_id]

    async def list_transactions_by_category(self, category_id: UUID) -> list[Transaction]:
        return [t for t in self._all(Transaction) if t.category_id == category_id]

    async def list_transfers_by_wallet(self, wallet_id: UUID) -> list[TransferTransaction]:
        return [
            t for t in self._all(TransferTransaction)
            if wallet_id in (t.source_wallet_id, t.target_wallet_id)
        ]

    async def list_child_categories(self, parent_category_id: UUID) -> list[Category]:
        return [
            c for c in self._all(Category)
            if c.parent_category_id == parent_category_id
        ]

    # =========================================================================
    # Writes
    # =========================================================================

    async def save_atomic(self, changes: ChangeSet) -> None:
        async with self._lock:
            check_versions(changes, self._version_of)

            for entity in changes.deletes:
                del self._rows[(entity.kind, entity.id)]

            for entity in changes.upserts:
                entity.version += 1
                self._rows[(entity.kind, entity.id)] = entity.model_copy(deep=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed append-only audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
