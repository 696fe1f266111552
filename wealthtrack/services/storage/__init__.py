"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory store and a SQLite store; both honour the same
optimistic-concurrency contract.
"""

from wealthtrack.services.storage.interface import (
    AuditStorageInterface,
    ChangeSet,
    ConflictError,
    ConnectionError,
    EntityStoreInterface,
    NotFoundError,
    StorageError,
)
from wealthtrack.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryEntityStore,
)
from wealthtrack.services.storage.sqlite import (
    SqliteAuditStorage,
    SqliteDatabase,
    SqliteEntityStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ChangeSet",
    "EntityStoreInterface",
    # Exceptions
    "ConflictError",
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    # SQLite implementation
    "SqliteAuditStorage",
    "SqliteDatabase",
    "SqliteEntityStore",
]
