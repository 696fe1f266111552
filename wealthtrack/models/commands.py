"""
Command Models

Caller input for every ledger mutation.

DESIGN DECISION: Commands are deliberately loose. Amount signs, date
ordering and cross-entity rules are checked by the ledger services, which
raise InvalidArgumentError before anything is persisted. That keeps every
domain rejection on one error path instead of splitting it between
pydantic and the engine.

For Update* commands every field is optional: None means
"keep the previous value".
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from wealthtrack.models.entities import (
    CategoryType,
    EntityStatus,
    TransactionType,
    WalletType,
)


class Command(BaseModel):
    """Base for all commands."""
    model_config = ConfigDict(str_strip_whitespace=True)

    def provided(self) -> dict[str, Any]:
        """Fields the caller actually specified."""
        return self.model_dump(exclude_none=True)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class CreateTransaction(Command):
    wallet_id: UUID
    amount: Decimal
    type: TransactionType
    transaction_date: datetime
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)


class UpdateTransaction(Command):
    wallet_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    transaction_date: Optional[datetime] = None
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)


class CreateTransfer(Command):
    source_wallet_id: UUID
    target_wallet_id: UUID
    amount: Decimal
    transaction_date: datetime
    description: Optional[str] = Field(default=None, max_length=500)


class UpdateTransfer(Command):
    source_wallet_id: Optional[UUID] = None
    target_wallet_id: Optional[UUID] = None
    amount: Optional[Decimal] = None
    transaction_date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# WALLETS AND BUDGETS
# =============================================================================

class CreateWallet(Command):
    name: str
    budget_id: UUID
    balance: Decimal = Decimal("0")
    is_part_of_general_balance: bool = True
    currency_id: Optional[UUID] = None
    type: WalletType = WalletType.CASH


class UpdateWallet(Command):
    name: Optional[str] = None
    balance: Optional[Decimal] = None
    is_part_of_general_balance: Optional[bool] = None
    budget_id: Optional[UUID] = None
    currency_id: Optional[UUID] = None
    status: Optional[EntityStatus] = None
    type: Optional[WalletType] = None


class CreateBudget(Command):
    name: str
    currency_id: Optional[UUID] = None


class UpdateBudget(Command):
    name: Optional[str] = None
    currency_id: Optional[UUID] = None
    status: Optional[EntityStatus] = None


# =============================================================================
# CATEGORIES AND GOALS
# =============================================================================

class CreateCategory(Command):
    name: str
    type: CategoryType
    parent_category_id: Optional[UUID] = None
    icon_name: Optional[str] = None


class UpdateCategory(Command):
    name: Optional[str] = None
    type: Optional[CategoryType] = None
    parent_category_id: Optional[UUID] = None
    # True moves the category back to the top level
    clear_parent: Optional[bool] = None
    icon_name: Optional[str] = None
    status: Optional[EntityStatus] = None


class CreateGoal(Command):
    name: str
    planned_money_amount: Decimal
    type: TransactionType
    start_date: date
    end_date: date
    category_ids: list[UUID] = Field(default_factory=list)


class UpdateGoal(Command):
    name: Optional[str] = None
    planned_money_amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_ids: Optional[list[UUID]] = None
