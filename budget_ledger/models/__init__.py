"""
Data Models Package

This package contains all Pydantic models used in the Budget Ledger.
All data flowing through the system must conform to these schemas.
"""

from budget_ledger.models.ledger import (
    CANONICAL_DIRECTION,
    Attribution,
    Category,
    Direction,
    Month,
    MonthStatus,
    PaymentMethod,
    PiggyBank,
    PiggyBankEntry,
    PiggyBankType,
    PlannedExpense,
    PlannedExpenseFrequency,
    Transaction,
    TransactionType,
    Week,
    WeekStatus,
)
from budget_ledger.models.views import (
    CashReturnResult,
    CurrentSummary,
    MonthCloseResult,
    PiggyBankBalance,
    PiggyBankSummary,
    SafetyWithdrawalResult,
    WeekCloseResult,
)
from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CANONICAL_DIRECTION",
    "Attribution",
    "Category",
    "Direction",
    "Month",
    "MonthStatus",
    "PaymentMethod",
    "PiggyBank",
    "PiggyBankEntry",
    "PiggyBankType",
    "PlannedExpense",
    "PlannedExpenseFrequency",
    "Transaction",
    "TransactionType",
    "Week",
    "WeekStatus",
    # Result views
    "CashReturnResult",
    "CurrentSummary",
    "MonthCloseResult",
    "PiggyBankBalance",
    "PiggyBankSummary",
    "SafetyWithdrawalResult",
    "WeekCloseResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
