"""
Shared fixtures.

Every test gets its own SQLite file under tmp_path and a clock frozen on
Wednesday 13 March 2024, 10:30. March 2024 starts on a Friday, so a month
started on the 1st has five weeks and the 13th falls in week 3 (11-17).
"""

from datetime import datetime, timedelta

import pytest

from budget_ledger.audit import AuditLogger
from budget_ledger.config import DatabaseSettings, Settings
from budget_ledger.orchestrator import BudgetLedger
from budget_ledger.services import SQLiteLedgerStore

FIXED_NOW = datetime(2024, 3, 13, 10, 30)


class FixedClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db_settings(tmp_path):
    return DatabaseSettings(
        path=str(tmp_path / "ledger.db"),
        pool_size=2,
        acquire_timeout_seconds=0.2,
    )


@pytest.fixture
def store(db_settings):
    store = SQLiteLedgerStore(db_settings)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def clock():
    return FixedClock(FIXED_NOW)


@pytest.fixture
def ledger(store, clock):
    return BudgetLedger(store, audit_logger=AuditLogger(), clock=clock, settings=Settings())


@pytest.fixture
def open_month(ledger):
    """March 2024: income 2000, saving goal 200, weekly cash 100."""
    month, weeks = ledger.start_month("2000", "200", "100", start_date="2024-03-01")
    return month, weeks


@pytest.fixture
def groceries(ledger):
    return next(c for c in ledger.list_categories() if c.name == "Groceries")
