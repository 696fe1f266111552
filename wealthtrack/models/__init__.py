"""
Data Models Package

This package contains all Pydantic models used by WealthTrack.
All data flowing through the ledger must conform to these schemas.
"""

from wealthtrack.models.entities import (
    ENTITY_MODELS,
    Budget,
    Category,
    CategoryType,
    Entity,
    EntityKind,
    EntityStatus,
    Goal,
    Transaction,
    TransactionType,
    TransferTransaction,
    Wallet,
    WalletType,
    utc_now,
)
from wealthtrack.models.commands import (
    Command,
    CreateBudget,
    CreateCategory,
    CreateGoal,
    CreateTransaction,
    CreateTransfer,
    CreateWallet,
    UpdateBudget,
    UpdateCategory,
    UpdateGoal,
    UpdateTransaction,
    UpdateTransfer,
    UpdateWallet,
)
from wealthtrack.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "ENTITY_MODELS",
    "Budget",
    "Category",
    "CategoryType",
    "Entity",
    "EntityKind",
    "EntityStatus",
    "Goal",
    "Transaction",
    "TransactionType",
    "TransferTransaction",
    "Wallet",
    "WalletType",
    "utc_now",
    # Commands
    "Command",
    "CreateBudget",
    "CreateCategory",
    "CreateGoal",
    "CreateTransaction",
    "CreateTransfer",
    "CreateWallet",
    "UpdateBudget",
    "UpdateCategory",
    "UpdateGoal",
    "UpdateTransaction",
    "UpdateTransfer",
    "UpdateWallet",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
