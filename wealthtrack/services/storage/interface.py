"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the in-memory store for SQLite (or a real server database) later
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from storage implementation

The interface is intentionally small - we're not building a full ORM.
Just the lookups the ledger needs plus one atomic write.

Entities returned by a store are always independent copies. Mutating them
changes nothing until they come back through save_atomic().
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from wealthtrack.models.audit import AuditEvent
from wealthtrack.models.entities import (
    Budget,
    Category,
    Entity,
    Goal,
    Transaction,
    TransactionType,
    TransferTransaction,
    Wallet,
)


class ChangeSet(BaseModel):
    """
    A heterogeneous batch of writes committed as one unit.

    Both lists hold entities as they were loaded (or freshly built); the
    store compares each entity's `version` against the stored row.
    A new entity has version 0 and must not exist yet.
    """
    upserts: list[Entity] = Field(default_factory=list)
    deletes: list[Entity] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.upserts and not self.deletes


class EntityStoreInterface(ABC):
    """
    Abstract interface for ledger entity storage.

    Any storage implementation (in-memory, SQLite, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Single-entity lookups (raise NotFoundError)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_wallet(self, wallet_id: UUID) -> Wallet:
        """
        Retrieve a wallet by its ID.

        Raises:
            NotFoundError: If the wallet doesn't exist
        """
        pass

    @abstractmethod
    async def get_budget(self, budget_id: UUID) -> Budget:
        """
        Retrieve a budget by its ID.

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        pass

    @abstractmethod
    async def get_category(self, category_id: UUID) -> Category:
        pass

    @abstractmethod
    async def get_goal(self, goal_id: UUID) -> Goal:
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: UUID) -> Transaction:
        pass

    @abstractmethod
    async def get_transfer(self, transfer_id: UUID) -> TransferTransaction:
        pass

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_goals_by_category(self, category_id: UUID) -> list[Goal]:
        """
        Get every goal whose category set includes `category_id`.

        Args:
            category_id: The category to look for

        Returns:
            Matching goals (possibly empty)
        """
        pass

    @abstractmethod
    async def get_transactions_matching(
        self,
        category_id: UUID,
        type: TransactionType,
        date_from: date,
        date_to: date,
    ) -> list[Transaction]:
        """
        Get regular transactions by category, type and date range.

        Args:
            category_id: Category the transactions must carry
            type: Transaction type to match
            date_from: Inclusive lower bound on transaction_date.date()
            date_to: Inclusive upper bound on transaction_date.date()

        Returns:
            Matching transactions
        """
        pass

    @abstractmethod
    async def list_wallets(self) -> list[Wallet]:
        pass

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def list_goals(self) -> list[Goal]:
        pass

    @abstractmethod
    async def list_wallets_by_budget(self, budget_id: UUID) -> list[Wallet]:
        pass

    @abstractmethod
    async def list_transactions_by_wallet(self, wallet_id: UUID) -> list[Transaction]:
        pass

    @abstractmethod
    async def list_transactions_by_category(self, category_id: UUID) -> list[Transaction]:
        pass

    @abstractmethod
    async def list_transfers_by_wallet(self, wallet_id: UUID) -> list[TransferTransaction]:
        """Transfers where the wallet is source or target."""
        pass

    @abstractmethod
    async def list_child_categories(self, parent_category_id: UUID) -> list[Category]:
        pass

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_atomic(self, changes: ChangeSet) -> None:
        """
        Commit a batch of upserts and deletes as one unit.

        Every entity's version is checked against storage first. On success
        each written entity's version is bumped (the passed instances are
        updated in place). On any failure nothing is written.

        Raises:
            ConflictError: If any entity was modified concurrently
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one cascade delete).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'wallet', 'goal')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""

    code = "not_found"

    def __init__(self, kind: str, entity_id: Optional[UUID] = None):
        self.kind = kind
        self.entity_id = entity_id
        message = f"{kind.capitalize()} not found"
        if entity_id is not None:
            message = f"{message}: {entity_id}"
        super().__init__(message)


class ConflictError(StorageError):
    """An entity was modified concurrently; the whole batch was rejected."""

    code = "conflict"


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


def _matches_window(transaction: Transaction, date_from: date, date_to: date) -> bool:
    return date_from <= transaction.transaction_date.date() <= date_to


def filter_transactions_matching(
    transactions: list[Transaction],
    category_id: UUID,
    type: TransactionType,
    date_from: date,
    date_to: date,
) -> list[Transaction]:
    """Shared Python-side filter used by stores that can't query natively."""
    return [
        t for t in transactions
        if t.category_id == category_id
        and t.type == type
        and _matches_window(t, date_from, date_to)
    ]


def check_versions(changes: ChangeSet, current_version) -> None:
    """
    Verify every entity in the change set against stored versions.

    Args:
        changes: The batch about to be committed
        current_version: Callable (kind, id) -> stored version or None

    Raises:
        ConflictError: On the first mismatch
    """
    for entity in changes.upserts:
        stored = current_version(entity.kind, entity.id)
        if entity.version == 0 and stored is not None:
            raise ConflictError(f"{entity.kind.value} {entity.id} already exists")
        if entity.version > 0 and stored != entity.version:
            raise ConflictError(
                f"{entity.kind.value} {entity.id} was modified concurrently "
                f"(expected version {entity.version}, found {stored})"
            )

    for entity in changes.deletes:
        stored = current_version(entity.kind, entity.id)
        if stored != entity.version:
            raise ConflictError(
                f"{entity.kind.value} {entity.id} was modified or removed concurrently"
            )
