"""Services package."""

from budget_ledger.services.storage import (
    ConflictError,
    ConnectionError,
    InsufficientCashError,
    LedgerRepository,
    LedgerStoreInterface,
    NotFoundError,
    SQLiteLedgerStore,
    StorageError,
)
from budget_ledger.services.reconciliation import CashReconciler
from budget_ledger.services.lifecycle import LifecycleManager
from budget_ledger.services.entries import EntryService

__all__ = [
    # Ledger services
    "CashReconciler",
    "EntryService",
    "LifecycleManager",
    # Storage services
    "LedgerRepository",
    "LedgerStoreInterface",
    "SQLiteLedgerStore",
    # Exceptions
    "ConflictError",
    "ConnectionError",
    "InsufficientCashError",
    "NotFoundError",
    "StorageError",
]
