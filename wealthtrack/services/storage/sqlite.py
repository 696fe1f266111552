"""
SQLite Storage Implementation

DESIGN DECISION: One `entities` table keyed by (kind, id), holding the
storage version and the entity as a JSON payload.
1. No migrations when an entity grows a field
2. Every kind shares one optimistic-concurrency check
3. The whole file is easy to inspect with the sqlite3 shell

TRADEOFFS:
- Queries filter in Python after loading a kind (fine for personal use)
- Aggregate columns can't be summed in SQL

save_atomic() runs inside one BEGIN IMMEDIATE transaction, so the version
check and the writes can't interleave with another writer. Any failure
rolls the whole batch back.
"""

import json
import sqlite3
from datetime import date, datetime
from typing import Optional, TypeVar
from uuid import UUID

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from wealthtrack.config import StorageSettings
from wealthtrack.models.audit import AuditEvent, AuditEventType, AuditSeverity
from wealthtrack.models.entities import (
    ENTITY_MODELS,
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
    ConflictError,
    ConnectionError,
    EntityStoreInterface,
    NotFoundError,
    StorageError,
    check_versions,
    filter_transactions_matching,
)


logger = structlog.get_logger(__name__)

E = TypeVar("E", bound=Entity)

# Column order for the audit table
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

SCHEMA = """
    CREATE TABLE IF NOT EXISTS entities (
        kind     TEXT    NOT NULL,
        id       TEXT    NOT NULL,
        version  INTEGER NOT NULL CHECK(version > 0),
        payload  TEXT    NOT NULL,
        PRIMARY KEY (kind, id)
    );

    CREATE TABLE IF NOT EXISTS audit_events (
        event_id        TEXT PRIMARY KEY,
        timestamp       TEXT NOT NULL,
        event_type      TEXT NOT NULL,
        severity        TEXT NOT NULL,
        entity_type     TEXT NOT NULL DEFAULT '',
        entity_id       TEXT NOT NULL DEFAULT '',
        correlation_id  TEXT NOT NULL DEFAULT '',
        description     TEXT NOT NULL,
        details_json    TEXT NOT NULL DEFAULT '',
        error_message   TEXT NOT NULL DEFAULT '',
        is_user_action  INTEGER NOT NULL DEFAULT 0
    );

    CREATE INDEX IF NOT EXISTS idx_audit_correlation ON audit_events(correlation_id);
    CREATE INDEX IF NOT EXISTS idx_audit_entity      ON audit_events(entity_type, entity_id);
"""


class SqliteDatabase:
    """
    Low-level SQLite connection wrapper.

    Opens lazily, retries transient open failures, and creates the schema.
    Shared by the entity store and the audit store.
    """

    def __init__(self, settings: Optional[StorageSettings] = None):
        self._settings = settings or StorageSettings()
        self._conn: Optional[sqlite3.Connection] = None

    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are managed explicitly
        conn = sqlite3.connect(
            self._settings.sqlite_path,
            check_same_thread=False,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.executescript(SCHEMA)
        return conn

    def connect(self) -> sqlite3.Connection:
        """Get the open connection, opening it on first use."""
        if self._conn is None:
            opener = retry(
                stop=stop_after_attempt(self._settings.connect_attempts),
                wait=wait_exponential(multiplier=0.1, max=2),
                retry=retry_if_exception_type(sqlite3.OperationalError),
                reraise=True,
            )(self._open)
            try:
                self._conn = opener()
            except sqlite3.Error as e:
                raise ConnectionError(
                    f"Failed to open SQLite database {self._settings.sqlite_path}: {e}"
                )
            logger.info("sqlite_connected", path=self._settings.sqlite_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


class SqliteEntityStore(EntityStoreInterface):
    """Entity store over a single SQLite table."""

    def __init__(self, database: SqliteDatabase):
        self._db = database

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @staticmethod
    def _decode(row: sqlite3.Row) -> Entity:
        """Rebuild an entity from its row, picking the model by the stored kind."""
        return ENTITY_MODELS[EntityKind(row["kind"])].model_validate_json(row["payload"])

    def _get(self, model: type[E], entity_id: UUID) -> E:
        row = self._db.connect().execute(
            "SELECT kind, payload FROM entities WHERE kind = ? AND id = ?",
            (model.kind.value, str(entity_id)),
        ).fetchone()
        if row is None:
            raise NotFoundError(model.kind.value, entity_id)
        return self._decode(row)

    def _all(self, model: type[E]) -> list[E]:
        rows = self._db.connect().execute(
            "SELECT kind, payload FROM entities WHERE kind = ?",
            (model.kind.value,),
        ).fetchall()
        return [self._decode(row) for row in rows]

    @staticmethod
    def _version_of(conn: sqlite3.Connection, kind: EntityKind, entity_id: UUID) -> Optional[int]:
        row = conn.execute(
            "SELECT version FROM entities WHERE kind = ? AND id = ?",
            (kind.value, str(entity_id)),
        ).fetchone()
        return row["version"] if row is not None else None

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
        if changes.is_empty():
            return

        conn = self._db.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            check_versions(
                changes,
                lambda kind, entity_id: self._version_of(conn, kind, entity_id),
            )

            for entity in changes.deletes:
                conn.execute(
                    "DELETE FROM entities WHERE kind = ? AND id = ?",
                    (entity.kind.value, str(entity.id)),
                )

            for entity in changes.upserts:
                new_version = entity.version + 1
                payload = entity.model_copy(update={"version": new_version}).model_dump_json()
                conn.execute(
                    """
                    INSERT INTO entities (kind, id, version, payload)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(kind, id) DO UPDATE SET
                        version = excluded.version,
                        payload = excluded.payload
                    """,
                    (entity.kind.value, str(entity.id), new_version, payload),
                )

            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise StorageError(f"Atomic save failed: {e}")
        except Exception:
            # ConflictError and anything raised while building payloads
            self._rollback(conn)
            raise

        for entity in changes.upserts:
            entity.version += 1

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")


class SqliteAuditStorage(AuditStorageInterface):
    """Append-only audit log in the same SQLite file."""

    def __init__(self, database: SqliteDatabase):
        self._db = database

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> AuditEvent:
        """Convert a table row to AuditEvent."""
        return AuditEvent(
            event_id=UUID(row["event_id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            event_type=AuditEventType(row["event_type"]),
            severity=AuditSeverity(row["severity"]),
            entity_type=row["entity_type"] or None,
            entity_id=UUID(row["entity_id"]) if row["entity_id"] else None,
            correlation_id=UUID(row["correlation_id"]) if row["correlation_id"] else None,
            description=row["description"],
            details=json.loads(row["details_json"]) if row["details_json"] else {},
            error_message=row["error_message"] or None,
            is_user_action=bool(row["is_user_action"]),
        )

    def _select(self, where: str, params: tuple, order: str = "ASC", limit: int = -1) -> list[AuditEvent]:
        try:
            rows = self._db.connect().execute(
                f"SELECT * FROM audit_events {where} ORDER BY timestamp {order} LIMIT ?",
                (*params, limit),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to get audit events: {e}")
        return [self._row_to_event(row) for row in rows]

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        placeholders = ", ".join("?" for _ in AUDIT_COLUMNS)
        try:
            self._db.connect().execute(
                f"INSERT INTO audit_events ({', '.join(AUDIT_COLUMNS)}) VALUES ({placeholders})",
                event.to_row(),
            )
            return True
        except (sqlite3.Error, StorageError) as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return self._select("WHERE correlation_id = ?", (str(correlation_id),))

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        return self._select(
            "WHERE entity_type = ? AND entity_id = ?",
            (entity_type, str(entity_id)),
        )

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return self._select("", (), order="DESC", limit=limit)
