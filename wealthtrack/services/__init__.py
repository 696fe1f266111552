"""Services package."""

from wealthtrack.services.storage import (
    AuditStorageInterface,
    ChangeSet,
    ConflictError,
    ConnectionError,
    EntityStoreInterface,
    InMemoryAuditStorage,
    InMemoryEntityStore,
    NotFoundError,
    SqliteAuditStorage,
    SqliteDatabase,
    SqliteEntityStore,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ChangeSet",
    "ConflictError",
    "ConnectionError",
    "EntityStoreInterface",
    "InMemoryAuditStorage",
    "InMemoryEntityStore",
    "NotFoundError",
    "SqliteAuditStorage",
    "SqliteDatabase",
    "SqliteEntityStore",
    "StorageError",
]
