"""
Aggregate Rules

Pure functions: given a transaction (or its effect snapshot), how much does
each aggregate move? Nothing here touches storage.

`sign` is +1 when an effect is being added and -1 when it is being removed.
An update is always "forward(new) - forward(old)", i.e. the old effect with
sign -1 plus the new effect with sign +1.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from wealthtrack.models.entities import Goal, Transaction, TransactionType, Wallet


ZERO = Decimal("0")


class TransactionEffect(BaseModel):
    """Snapshot of the aggregate-relevant fields of a regular transaction."""
    model_config = ConfigDict(frozen=True)

    wallet_id: UUID
    category_id: Optional[UUID]
    type: TransactionType
    amount: Decimal
    transaction_date: datetime

    @classmethod
    def of(cls, transaction: Transaction) -> "TransactionEffect":
        return cls(
            wallet_id=transaction.wallet_id,
            category_id=transaction.category_id,
            type=transaction.type,
            amount=transaction.amount,
            transaction_date=transaction.transaction_date,
        )


Effect = Union[Transaction, TransactionEffect]


def wallet_delta(type: TransactionType, amount: Decimal, sign: int = 1) -> Decimal:
    """Income adds to the wallet, expense takes from it."""
    if type == TransactionType.INCOME:
        return amount * sign
    return -amount * sign


def transfer_deltas(amount: Decimal, sign: int = 1) -> tuple[Decimal, Decimal]:
    """(source_delta, target_delta) for a transfer of `amount`."""
    return -amount * sign, amount * sign


def budget_delta(wallet: Wallet, delta: Decimal) -> Decimal:
    """
    The share of a wallet delta that reaches the wallet's budget.

    Only regular transactions go through here. Transfers never change
    a budget's overall balance, whatever the flags of the two wallets.
    """
    return delta if wallet.is_part_of_general_balance else ZERO


def is_goal_applicable(goal: Goal, effect: Effect) -> bool:
    """
    Does this transaction count towards the goal?

    Type must match, the category must be in the goal's set and the
    transaction's calendar date must fall inside [start_date, end_date].
    """
    if effect.category_id is None:
        return False
    if effect.type != goal.type:
        return False
    if effect.category_id not in goal.category_ids:
        return False
    return goal.start_date <= effect.transaction_date.date() <= goal.end_date


def goal_delta(goal: Goal, effect: Effect, sign: int = 1) -> Decimal:
    if is_goal_applicable(goal, effect):
        return effect.amount * sign
    return ZERO
