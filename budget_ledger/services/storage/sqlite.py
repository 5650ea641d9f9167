"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is used as the ledger store because:
1. A household ledger is single-tenant and low-volume
2. It gives real transactions, foreign keys and partial unique indexes
3. No server to run; the database is one file

Concurrency rests on the store, not on the application:
- every transaction starts with BEGIN IMMEDIATE, so writers are serialized
- a partial unique index allows a single OPEN month
- a partial unique index allows a single CASH_WITHDRAWAL per week

Connections come from a bounded pool. Each request checks one out and
always returns it, whatever the outcome.
"""

import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
from uuid import uuid4

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budget_ledger.config import DatabaseSettings, get_settings
from budget_ledger.models.ledger import PiggyBankType
from budget_ledger.services.storage.interface import (
    ConflictError,
    ConnectionError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from budget_ledger.services.storage.repository import LedgerRepository

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 1

CREATE_TABLES_SQL = [
    """
    CREATE TABLE IF NOT EXISTS schema_meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS months (
        id TEXT PRIMARY KEY,
        period_key TEXT NOT NULL UNIQUE,     -- YYYY-MM
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        income_amount INTEGER NOT NULL CHECK (income_amount >= 0),
        weekly_budget_amount INTEGER NOT NULL CHECK (weekly_budget_amount >= 0),
        saving_goal_amount INTEGER NOT NULL CHECK (saving_goal_amount >= 0),
        status TEXT NOT NULL DEFAULT 'OPEN' CHECK (status IN ('OPEN', 'CLOSED')),
        closed_at TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_months_single_open
    ON months(status) WHERE status = 'OPEN';
    """,
    """
    CREATE TABLE IF NOT EXISTS weeks (
        id TEXT PRIMARY KEY,
        month_id TEXT NOT NULL,
        week_index INTEGER NOT NULL CHECK (week_index >= 1),
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        cash_withdraw_amount INTEGER NOT NULL CHECK (cash_withdraw_amount >= 0),
        cash_returned_to_bank_amount INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'OPEN' CHECK (status IN ('OPEN', 'CLOSED')),
        closed_at TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')),
        UNIQUE (month_id, week_index),
        FOREIGN KEY (month_id) REFERENCES months(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS planned_expenses (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        amount INTEGER NOT NULL CHECK (amount > 0),
        frequency TEXT NOT NULL CHECK (frequency IN ('YEARLY', 'QUARTERLY', 'CUSTOM')),
        next_due_date TEXT NOT NULL,
        attribution TEXT NOT NULL CHECK (attribution IN ('MINE', 'PARTNER', 'HOUSE')),
        category_id TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')),
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS piggy_banks (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL UNIQUE CHECK (type IN ('TWO_EURO', 'NORMAL')),
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS piggy_bank_entries (
        id TEXT PRIMARY KEY,
        piggy_bank_id TEXT NOT NULL,
        date_time TEXT NOT NULL,
        amount INTEGER NOT NULL CHECK (amount > 0),
        note TEXT,
        month_id TEXT,
        FOREIGN KEY (piggy_bank_id) REFERENCES piggy_banks(id) ON DELETE CASCADE,
        FOREIGN KEY (month_id) REFERENCES months(id) ON DELETE SET NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id TEXT PRIMARY KEY,
        date_time TEXT NOT NULL,             -- local ISO timestamp
        amount INTEGER NOT NULL CHECK (amount > 0),
        direction TEXT NOT NULL CHECK (direction IN ('OUT', 'IN')),
        type TEXT NOT NULL CHECK (type IN (
            'EXPENSE', 'EXTRA_INCOME', 'CASH_WITHDRAWAL', 'CASH_RETURN',
            'CONSOLIDATE_TO_SAFETY', 'EMERGENCY_FROM_SAFETY', 'PIGGYBANK_DEPOSIT'
        )),
        month_id TEXT NOT NULL,
        week_id TEXT,
        category_id TEXT,
        attribution TEXT NOT NULL CHECK (attribution IN ('MINE', 'PARTNER', 'HOUSE')),
        payment_method TEXT NOT NULL CHECK (payment_method IN ('CARD', 'CASH', 'TRANSFER')),
        concept TEXT,
        note TEXT,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now', 'localtime')),
        FOREIGN KEY (month_id) REFERENCES months(id) ON DELETE CASCADE,
        FOREIGN KEY (week_id) REFERENCES weeks(id) ON DELETE SET NULL,
        FOREIGN KEY (category_id) REFERENCES categories(id) ON DELETE SET NULL
    );
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS ux_transactions_week_withdrawal
    ON transactions(week_id) WHERE type = 'CASH_WITHDRAWAL';
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_transactions_month_date
    ON transactions(month_id, date_time);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_transactions_type
    ON transactions(type);
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_transactions_category
    ON transactions(category_id);
    """,
]

DEFAULT_CATEGORIES = [
    "Rent",
    "Studies",
    "Coffee",
    "Tobacco",
    "Pharmacy",
    "Groceries",
    "Bars",
    "Leisure",
    "Food delivery",
    "Baby",
    "Padel",
    "Fuel",
    "Extra",
]

DEFAULT_PIGGY_BANKS = [
    ("2€ coin jar", PiggyBankType.TWO_EURO),
    ("General jar", PiggyBankType.NORMAL),
]


def _translate_integrity_error(error: sqlite3.IntegrityError) -> Exception:
    message = str(error)
    if "ux_months_single_open" in message or "months.status" in message:
        return ConflictError("another month is already open")
    if "months.period_key" in message:
        return ConflictError("a month for this period already exists")
    if "ux_transactions_week_withdrawal" in message or "transactions.week_id" in message:
        return ConflictError("the cash withdrawal for this week is already recorded")
    if "UNIQUE constraint failed" in message:
        return ConflictError(f"duplicate record: {message}")
    if "FOREIGN KEY constraint failed" in message:
        return NotFoundError("a referenced record does not exist")
    return StorageError(f"constraint violated: {message}")


class SQLiteLedgerStore(LedgerStoreInterface):
    """
    SQLite implementation of the ledger store.

    Connections run in autocommit mode; multi-statement work is wrapped
    explicitly in BEGIN IMMEDIATE / COMMIT / ROLLBACK by transaction().
    """

    def __init__(self, settings: Optional[DatabaseSettings] = None):
        self._settings = settings or get_settings().database
        self._pool: "queue.LifoQueue[sqlite3.Connection]" = queue.LifoQueue(
            maxsize=self._settings.pool_size
        )
        self._opened = 0
        self._opened_lock = threading.Lock()
        self._all: list[sqlite3.Connection] = []

    @property
    def path(self) -> Path:
        return Path(self._settings.path)

    def _connect(self) -> sqlite3.Connection:
        """Open a connection, retrying transient failures (locked file, slow disk)."""
        attempt = retry(
            stop=stop_after_attempt(self._settings.connect_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(sqlite3.OperationalError),
            reraise=True,
        )(self._open_connection)
        try:
            return attempt()
        except sqlite3.Error as e:
            raise ConnectionError(f"Failed to open ledger database {self.path}: {e}") from e

    def _open_connection(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self.path),
            timeout=self._settings.timeout_seconds,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _acquire(self) -> sqlite3.Connection:
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            pass

        with self._opened_lock:
            can_open = self._opened < self._settings.pool_size
            if can_open:
                self._opened += 1
        if can_open:
            try:
                conn = self._connect()
            except ConnectionError:
                with self._opened_lock:
                    self._opened -= 1
                raise
            self._all.append(conn)
            return conn

        try:
            return self._pool.get(timeout=self._settings.acquire_timeout_seconds)
        except queue.Empty:
            raise ConnectionError(
                f"No database connection available after "
                f"{self._settings.acquire_timeout_seconds}s"
            ) from None

    def _release(self, conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.rollback()
        self._pool.put_nowait(conn)

    @contextmanager
    def connection(self) -> Iterator[LedgerRepository]:
        conn = self._acquire()
        try:
            yield LedgerRepository(conn)
        except sqlite3.IntegrityError as e:
            raise _translate_integrity_error(e) from e
        except sqlite3.Error as e:
            raise StorageError(f"Ledger database error: {e}") from e
        except OverflowError as e:
            raise StorageError(f"Value out of range for the ledger database: {e}") from e
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self) -> Iterator[LedgerRepository]:
        conn = self._acquire()
        try:
            try:
                conn.execute("BEGIN IMMEDIATE;")
            except sqlite3.Error as e:
                raise StorageError(f"Could not start a transaction: {e}") from e

            try:
                yield LedgerRepository(conn)
            except BaseException:
                # SQLite may already have rolled back on its own
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")
        except sqlite3.IntegrityError as e:
            raise _translate_integrity_error(e) from e
        except sqlite3.Error as e:
            raise StorageError(f"Ledger database error: {e}") from e
        except OverflowError as e:
            raise StorageError(f"Value out of range for the ledger database: {e}") from e
        finally:
            self._release(conn)

    def initialize(self) -> None:
        with self.transaction() as repo:
            for stmt in CREATE_TABLES_SQL:
                repo.execute_ddl(stmt)
            repo.set_meta("schema_version", str(SCHEMA_VERSION))
            added_categories = repo.seed_categories(
                [(str(uuid4()), name) for name in DEFAULT_CATEGORIES]
            )
            added_banks = repo.seed_piggy_banks(
                [(str(uuid4()), name, kind) for name, kind in DEFAULT_PIGGY_BANKS]
            )

        logger.info(
            "ledger_store_initialized",
            path=str(self.path),
            schema_version=SCHEMA_VERSION,
            categories_added=added_categories,
            piggy_banks_added=added_banks,
        )

    def close(self) -> None:
        while True:
            try:
                self._pool.get_nowait()
            except queue.Empty:
                break
        for conn in self._all:
            conn.close()
        self._all.clear()
        with self._opened_lock:
            self._opened = 0
