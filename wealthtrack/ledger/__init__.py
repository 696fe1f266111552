"""
Ledger Engine Package

Keeps wallet balances, budget overall balances and goal progress
consistent with the transactions underneath them.
"""

from wealthtrack.ledger.budgets import BudgetService
from wealthtrack.ledger.cascade import CascadeResult, CascadeService
from wealthtrack.ledger.categories import CategoryService
from wealthtrack.ledger.errors import (
    ConflictError,
    InvalidArgumentError,
    LedgerError,
    NotFoundError,
)
from wealthtrack.ledger.goals import GoalService
from wealthtrack.ledger.rules import (
    TransactionEffect,
    budget_delta,
    goal_delta,
    is_goal_applicable,
    transfer_deltas,
    wallet_delta,
)
from wealthtrack.ledger.transactions import TransactionService
from wealthtrack.ledger.transfers import TransferService
from wealthtrack.ledger.unit_of_work import UnitOfWork
from wealthtrack.ledger.wallets import WalletService

__all__ = [
    # Services
    "BudgetService",
    "CascadeService",
    "CategoryService",
    "GoalService",
    "TransactionService",
    "TransferService",
    "WalletService",
    "CascadeResult",
    "UnitOfWork",
    # Rules
    "TransactionEffect",
    "budget_delta",
    "goal_delta",
    "is_goal_applicable",
    "transfer_deltas",
    "wallet_delta",
    # Errors
    "ConflictError",
    "InvalidArgumentError",
    "LedgerError",
    "NotFoundError",
]
