"""
Abstract Storage Interface

DESIGN DECISION: The ledger services never talk to a database driver
directly. They receive a LedgerRepository from a store, inside a scope
the store opened for them:

- store.connection()  -> single-statement reads and writes, no explicit transaction
- store.transaction() -> begin, statements, commit; rollback on any error

Either scope always returns its connection to the pool, on every exit path.
This keeps business logic decoupled from the storage implementation and
lets tests run the full stack against a throwaway database file.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from budget_ledger.services.storage.repository import LedgerRepository


class LedgerStoreInterface(ABC):
    """
    Abstract interface for a transactional ledger store.

    Any implementation (SQLite, PostgreSQL, etc.) must provide scoped
    acquisition of a repository and enforce the schema invariants
    (uniqueness, foreign keys with cascade / set-null, check constraints).
    """

    @abstractmethod
    def initialize(self) -> None:
        """
        Create the schema and seed reference data.

        Safe to call more than once.
        """
        pass

    @abstractmethod
    def connection(self) -> AbstractContextManager["LedgerRepository"]:
        """
        Scope for reads and single-row writes.

        Raises:
            ConnectionError: If no connection can be acquired
            StorageError: If a statement fails
        """
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager["LedgerRepository"]:
        """
        Scope for multi-statement writes.

        Commits when the block exits normally and rolls back before any
        exception propagates. Uniqueness violations surface as ConflictError.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close every pooled connection."""
        pass


class StorageError(Exception):
    """The store failed for infrastructure reasons. Never swallowed."""
    pass


class ConnectionError(StorageError):
    """Could not open or acquire a connection to the store."""
    pass


class NotFoundError(Exception):
    """A referenced month, week, transaction, category or piggy bank does not exist."""
    pass


class ConflictError(Exception):
    """The operation would break a state invariant."""
    pass


class InsufficientCashError(ConflictError):
    """More cash was requested than the pocket-cash balance holds."""

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"insufficient pocket cash: requested {requested} cents, "
            f"available {available} cents"
        )
