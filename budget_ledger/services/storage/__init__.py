"""
Storage Services Package

Provides the abstract store interface, the SQL repository and the
SQLite implementation. Designed to be swappable.
"""

from budget_ledger.services.storage.interface import (
    ConflictError,
    ConnectionError,
    InsufficientCashError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
)
from budget_ledger.services.storage.repository import LedgerRepository
from budget_ledger.services.storage.sqlite import (
    DEFAULT_CATEGORIES,
    SQLiteLedgerStore,
)

__all__ = [
    # Interfaces
    "LedgerStoreInterface",
    "LedgerRepository",
    # Exceptions
    "ConflictError",
    "ConnectionError",
    "InsufficientCashError",
    "NotFoundError",
    "StorageError",
    # SQLite implementation
    "DEFAULT_CATEGORIES",
    "SQLiteLedgerStore",
]
