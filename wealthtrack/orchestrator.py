"""
Main Orchestrator for WealthTrack

This module ties together all the components:
1. Picks and opens the configured entity store
2. Wires the ledger services to it with one shared audit logger
3. Wraps every mutation in the caller-side conflict retry

DESIGN DECISION: The ledger services never retry. A ConflictError means
"someone else committed first"; only the caller knows whether redoing the
whole mutation from fresh state is the right answer. LedgerApp is that
caller for embedded use. Each attempt builds a new unit of work, so a
retry always re-reads current balances.
"""

from typing import Any, Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from wealthtrack.audit import AuditLogger, configure_logging
from wealthtrack.config import LedgerSettings, Settings, get_settings
from wealthtrack.ledger import (
    BudgetService,
    CascadeResult,
    CascadeService,
    CategoryService,
    ConflictError,
    GoalService,
    LedgerError,
    NotFoundError,
    TransactionService,
    TransferService,
    WalletService,
)
from wealthtrack.models.commands import (
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
from wealthtrack.models.entities import (
    Budget,
    Category,
    Goal,
    Transaction,
    TransferTransaction,
    Wallet,
)
from wealthtrack.services.storage import (
    AuditStorageInterface,
    EntityStoreInterface,
    InMemoryAuditStorage,
    InMemoryEntityStore,
    SqliteAuditStorage,
    SqliteDatabase,
    SqliteEntityStore,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _log_conflict_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "conflict_retry",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


def retry_on_conflict(settings: Optional[LedgerSettings] = None):
    """
    Build the tenacity policy that re-runs a whole mutation on ConflictError.

    Any other exception propagates immediately.
    """
    settings = settings or LedgerSettings()
    return retry(
        retry=retry_if_exception_type(ConflictError),
        stop=stop_after_attempt(settings.conflict_retry_attempts),
        wait=wait_exponential(
            multiplier=0.05,
            max=settings.conflict_retry_max_wait_seconds,
        ),
        before_sleep=_log_conflict_retry,
        reraise=True,
    )


class LedgerApp:
    """
    Facade over the ledger services.

    Every mutation runs under retry_on_conflict. Failures other than domain
    rejections and conflicts are recorded as system_error audit events
    before they propagate. The services themselves stay available as
    attributes for callers that want their own policy.
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.store = store
        self.settings = settings or LedgerSettings()
        self.audit_logger = audit_logger or AuditLogger()

        args = (store, self.settings, self.audit_logger)
        self.transactions = TransactionService(*args)
        self.transfers = TransferService(*args)
        self.goals = GoalService(*args)
        self.wallets = WalletService(*args)
        self.budgets = BudgetService(*args)
        self.categories = CategoryService(*args)
        self.cascade = CascadeService(*args)

        self._retry = retry_on_conflict(self.settings)

    async def _run(self, operation: Callable[..., Awaitable[T]], *args: Any) -> T:
        attempts = 0

        @self._retry
        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            try:
                return await operation(*args)
            except ConflictError as e:
                await self.audit_logger.log_conflict(attempts, str(e))
                raise
            except (LedgerError, NotFoundError):
                raise
            except Exception as e:
                await self.audit_logger.log_error(
                    type(e).__name__, str(e), details={"operation": operation.__name__}
                )
                raise

        return await attempt()

    async def startup(self) -> None:
        """Seed the system categories. Safe to call on every start."""
        await self._run(self.categories.seed_system_categories)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def create_transaction(self, command: CreateTransaction) -> Transaction:
        return await self._run(self.transactions.create, command)

    async def update_transaction(self, transaction_id: UUID, command: UpdateTransaction) -> Transaction:
        return await self._run(self.transactions.update, transaction_id, command)

    async def unassign_category(self, transaction_id: UUID) -> Transaction:
        return await self._run(self.transactions.unassign_category, transaction_id)

    async def delete_transaction(self, transaction_id: UUID) -> None:
        await self._run(self.transactions.delete, transaction_id)

    # =========================================================================
    # Transfers
    # =========================================================================

    async def create_transfer(self, command: CreateTransfer) -> TransferTransaction:
        return await self._run(self.transfers.create, command)

    async def update_transfer(self, transfer_id: UUID, command: UpdateTransfer) -> TransferTransaction:
        return await self._run(self.transfers.update, transfer_id, command)

    async def delete_transfer(self, transfer_id: UUID) -> None:
        await self._run(self.transfers.delete, transfer_id)

    # =========================================================================
    # Wallets and budgets
    # =========================================================================

    async def create_wallet(self, command: CreateWallet) -> Wallet:
        return await self._run(self.wallets.create, command)

    async def update_wallet(self, wallet_id: UUID, command: UpdateWallet) -> Wallet:
        return await self._run(self.wallets.update, wallet_id, command)

    async def delete_wallet(self, wallet_id: UUID) -> CascadeResult:
        return await self._run(self.cascade.delete_wallet, wallet_id)

    async def create_budget(self, command: CreateBudget) -> Budget:
        return await self._run(self.budgets.create, command)

    async def update_budget(self, budget_id: UUID, command: UpdateBudget) -> Budget:
        return await self._run(self.budgets.update, budget_id, command)

    async def delete_budget(self, budget_id: UUID) -> CascadeResult:
        return await self._run(self.cascade.delete_budget, budget_id)

    # =========================================================================
    # Categories and goals
    # =========================================================================

    async def create_category(self, command: CreateCategory) -> Category:
        return await self._run(self.categories.create, command)

    async def update_category(self, category_id: UUID, command: UpdateCategory) -> Category:
        return await self._run(self.categories.update, category_id, command)

    async def delete_category(self, category_id: UUID) -> CascadeResult:
        return await self._run(self.cascade.delete_category, category_id)

    async def create_goal(self, command: CreateGoal) -> Goal:
        return await self._run(self.goals.create, command)

    async def update_goal(self, goal_id: UUID, command: UpdateGoal) -> Goal:
        return await self._run(self.goals.update, goal_id, command)

    async def refresh_goal(self, goal_id: UUID) -> Goal:
        return await self._run(self.goals.refresh, goal_id)

    async def delete_goal(self, goal_id: UUID) -> None:
        await self._run(self.goals.delete, goal_id)


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[LedgerApp, Optional[SqliteDatabase]]:
    """
    Factory function to create all application components.

    Args:
        settings: Root settings. Defaults to get_settings().

    Returns:
        (ledger_app, sqlite_database) - the database is None for the
        in-memory backend
    """
    settings = settings or get_settings()
    configure_logging(settings.app)

    storage_settings = settings.storage
    database: Optional[SqliteDatabase] = None
    store: EntityStoreInterface
    audit_storage: AuditStorageInterface

    if storage_settings.backend == "sqlite":
        database = SqliteDatabase(storage_settings)
        store = SqliteEntityStore(database)
        audit_storage = SqliteAuditStorage(database)
    else:
        store = InMemoryEntityStore()
        audit_storage = InMemoryAuditStorage()

    logger.info(
        "app_components_created",
        backend=storage_settings.backend,
        environment=settings.app.app_environment,
    )

    app = LedgerApp(store, settings.ledger, AuditLogger(audit_storage))
    return app, database
