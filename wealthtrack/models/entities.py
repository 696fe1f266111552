"""
Core Data Models for WealthTrack

These models define the stored shape of every entity the ledger engine
touches: wallets, budgets, categories, goals, regular transactions and
transfers.

Three fields are AGGREGATES and are never set by callers directly:
- Wallet.balance
- Budget.overall_balance
- Goal.actual_money_amount
They are kept consistent by the services in wealthtrack.ledger.

DESIGN DECISION: Every entity carries a storage `version`.
Stores use it for optimistic concurrency: a write is only accepted
if the row still has the version the entity was loaded with.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a regular transaction.

    Goals reuse this enum: an income goal tracks income transactions,
    an expense goal tracks expense transactions.
    """
    INCOME = "income"
    EXPENSE = "expense"


class CategoryType(str, Enum):
    """
    Category kinds.

    SYSTEM categories are seeded by the application (e.g. balance
    correction) and are never created or deleted by users.
    """
    INCOME = "income"
    EXPENSE = "expense"
    SYSTEM = "system"


class EntityStatus(str, Enum):
    """Lifecycle status shared by wallets, budgets, categories and transfers."""
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


class WalletType(str, Enum):
    """What kind of money container a wallet is."""
    CASH = "cash"
    CARD = "card"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    OTHER = "other"


class EntityKind(str, Enum):
    """Storage discriminator for every persisted entity."""
    WALLET = "wallet"
    BUDGET = "budget"
    CATEGORY = "category"
    GOAL = "goal"
    TRANSACTION = "transaction"
    TRANSFER = "transfer"


# =============================================================================
# BASE
# =============================================================================

class Entity(BaseModel):
    """Base for all persisted entities."""
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: ClassVar[EntityKind]

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique entity ID"
    )
    version: int = Field(
        default=0,
        ge=0,
        description="Storage version, bumped on every committed write"
    )


# =============================================================================
# BUDGETS AND WALLETS
# =============================================================================

class Budget(Entity):
    """
    A collection of wallets with an aggregate overall balance.

    INVARIANT: overall_balance equals the sum of balance over this
    budget's wallets with is_part_of_general_balance == True.
    """
    kind: ClassVar[EntityKind] = EntityKind.BUDGET

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Budget name"
    )
    overall_balance: Decimal = Field(
        default=Decimal("0"),
        description="Derived sum of flagged wallet balances"
    )
    currency_id: Optional[UUID] = None
    status: EntityStatus = EntityStatus.ACTIVE
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)


class Wallet(Entity):
    """
    A container of money belonging to exactly one budget.

    INVARIANT: balance equals the net effect of every regular transaction
    on this wallet plus every transfer it is source or target of.
    """
    kind: ClassVar[EntityKind] = EntityKind.WALLET

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Wallet name"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Derived net effect of the wallet's transactions"
    )
    is_part_of_general_balance: bool = Field(
        default=True,
        description="Does this wallet count towards its budget's overall balance?"
    )
    budget_id: UUID
    currency_id: Optional[UUID] = None
    status: EntityStatus = EntityStatus.ACTIVE
    type: WalletType = WalletType.CASH
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)


# =============================================================================
# CATEGORIES AND GOALS
# =============================================================================

class Category(Entity):
    """Transaction category, optionally nested under a parent of the same type."""
    kind: ClassVar[EntityKind] = EntityKind.CATEGORY

    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    icon_name: Optional[str] = Field(default=None, max_length=100)
    type: CategoryType
    parent_category_id: Optional[UUID] = None
    status: EntityStatus = EntityStatus.ACTIVE
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)

    @property
    def is_system(self) -> bool:
        return self.type == CategoryType.SYSTEM


class Goal(Entity):
    """
    A target amount tracked against a type/category/date-range filter.

    INVARIANT: actual_money_amount equals the sum of amount over all
    regular transactions whose type equals the goal's type, whose
    category is in category_ids and whose date falls within
    [start_date, end_date] (inclusive).
    """
    kind: ClassVar[EntityKind] = EntityKind.GOAL

    name: str = Field(
        ...,
        min_length=1,
        max_length=100
    )
    planned_money_amount: Decimal = Field(
        ...,
        ge=0,
        description="Target amount"
    )
    actual_money_amount: Decimal = Field(
        default=Decimal("0"),
        description="Derived sum of applicable transactions"
    )
    type: TransactionType
    start_date: date
    end_date: date
    category_ids: set[UUID] = Field(default_factory=set)
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Goal':
        """Validate the date range."""
        if self.end_date < self.start_date:
            raise ValueError("Goal end date cannot be before start date")
        return self


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(Entity):
    """A single-wallet income or expense movement."""
    kind: ClassVar[EntityKind] = EntityKind.TRANSACTION

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Always positive; direction comes from type"
    )
    description: Optional[str] = Field(default=None, max_length=500)
    transaction_date: datetime
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)
    type: TransactionType
    category_id: Optional[UUID] = None
    wallet_id: UUID


class TransferTransaction(Entity):
    """A movement of funds between two wallets of the same budget."""
    kind: ClassVar[EntityKind] = EntityKind.TRANSFER

    amount: Decimal = Field(
        ...,
        gt=0
    )
    description: Optional[str] = Field(default=None, max_length=500)
    transaction_date: datetime
    created_date: datetime = Field(default_factory=utc_now)
    modified_date: datetime = Field(default_factory=utc_now)
    status: EntityStatus = EntityStatus.ACTIVE
    source_wallet_id: UUID
    target_wallet_id: UUID

    @model_validator(mode='after')
    def validate_wallets(self) -> 'TransferTransaction':
        """Source and target must differ."""
        if self.source_wallet_id == self.target_wallet_id:
            raise ValueError("Transfer source and target wallets must differ")
        return self


ENTITY_MODELS: dict[EntityKind, type[Entity]] = {
    EntityKind.WALLET: Wallet,
    EntityKind.BUDGET: Budget,
    EntityKind.CATEGORY: Category,
    EntityKind.GOAL: Goal,
    EntityKind.TRANSACTION: Transaction,
    EntityKind.TRANSFER: TransferTransaction,
}
