"""
Core Ledger Models for Budget Ledger

These models define the schemas for every entity stored in the ledger.
They are designed to:
1. Enforce the domain constraints at the boundary (positive amounts, enums)
2. Keep all money in integer cents
3. Be built directly from database rows

DESIGN DECISION: Transactions are the single source of truth.
Bank, pocket-cash and safety-fund balances are never stored; they are
always aggregated from the transaction log on demand.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class MonthStatus(str, Enum):
    """Month lifecycle. CLOSED is terminal."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class WeekStatus(str, Enum):
    """Week lifecycle. CLOSED is terminal."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class Attribution(str, Enum):
    """
    Which party an expense or income belongs to.

    The attribution split always reports exactly these three members,
    zero-filled when there is no activity.
    """
    MINE = "MINE"
    PARTNER = "PARTNER"
    HOUSE = "HOUSE"


class PaymentMethod(str, Enum):
    """How money moved."""
    CARD = "CARD"
    CASH = "CASH"
    TRANSFER = "TRANSFER"


class Direction(str, Enum):
    """Direction of a transaction, independent of its always-positive amount."""
    OUT = "OUT"
    IN = "IN"


class TransactionType(str, Enum):
    """
    Closed set of ledger entry types.

    Each type has exactly one canonical direction (see CANONICAL_DIRECTION).
    """
    EXPENSE = "EXPENSE"                              # spend against a category
    EXTRA_INCOME = "EXTRA_INCOME"                    # unplanned income
    CASH_WITHDRAWAL = "CASH_WITHDRAWAL"              # bank -> pocket cash
    CASH_RETURN = "CASH_RETURN"                      # pocket cash -> bank
    CONSOLIDATE_TO_SAFETY = "CONSOLIDATE_TO_SAFETY"  # month leftover -> safety fund
    EMERGENCY_FROM_SAFETY = "EMERGENCY_FROM_SAFETY"  # safety fund spent
    PIGGYBANK_DEPOSIT = "PIGGYBANK_DEPOSIT"          # pocket cash -> piggy bank


CANONICAL_DIRECTION: dict[TransactionType, Direction] = {
    TransactionType.EXPENSE: Direction.OUT,
    TransactionType.EXTRA_INCOME: Direction.IN,
    TransactionType.CASH_WITHDRAWAL: Direction.OUT,
    TransactionType.CASH_RETURN: Direction.IN,
    TransactionType.CONSOLIDATE_TO_SAFETY: Direction.IN,
    TransactionType.EMERGENCY_FROM_SAFETY: Direction.OUT,
    TransactionType.PIGGYBANK_DEPOSIT: Direction.OUT,
}


class PiggyBankType(str, Enum):
    """The two fixed savings jars."""
    TWO_EURO = "TWO_EURO"  # small-coin jar
    NORMAL = "NORMAL"      # general jar


class PlannedExpenseFrequency(str, Enum):
    """How often a planned expense falls due."""
    YEARLY = "YEARLY"
    QUARTERLY = "QUARTERLY"
    CUSTOM = "CUSTOM"


# =============================================================================
# BUDGETING PERIODS
# =============================================================================

class Month(BaseModel):
    """
    One budgeting period.

    At most one Month is OPEN at any time. Owns its Weeks and Transactions.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique month ID"
    )
    period_key: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="YYYY-MM key derived from the start date"
    )
    start_date: date
    end_date: date
    income_amount: int = Field(
        ...,
        ge=0,
        description="Planned income in cents"
    )
    weekly_budget_amount: int = Field(
        ...,
        ge=0,
        description="Pocket cash allotted to each week, in cents"
    )
    saving_goal_amount: int = Field(
        ...,
        ge=0,
        description="Saving goal in cents"
    )
    status: MonthStatus = MonthStatus.OPEN
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_range(self) -> 'Month':
        if self.end_date < self.start_date:
            raise ValueError("Month end date cannot be before start date")
        return self

    @property
    def is_open(self) -> bool:
        return self.status == MonthStatus.OPEN


class Week(BaseModel):
    """A Monday-to-Sunday slice of a Month, clipped to the month's range."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    month_id: UUID
    week_index: int = Field(
        ...,
        ge=1,
        description="1-based position inside the month"
    )
    start_date: date
    end_date: date
    cash_withdraw_amount: int = Field(
        ...,
        ge=0,
        description="Pocket cash allotted to this week, in cents"
    )
    cash_returned_to_bank_amount: int = Field(
        default=0,
        ge=0,
        description="Pocket cash returned to the bank so far, in cents"
    )
    status: WeekStatus = WeekStatus.OPEN
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_range(self) -> 'Week':
        if self.end_date < self.start_date:
            raise ValueError("Week end date cannot be before start date")
        return self

    @property
    def is_open(self) -> bool:
        return self.status == WeekStatus.OPEN

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """A named expense bucket. Soft-deleted through is_active."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True
    created_at: Optional[datetime] = None


class PiggyBank(BaseModel):
    """One of the two fixed savings jars. Never created or deleted by users."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    type: PiggyBankType
    created_at: Optional[datetime] = None


class PiggyBankEntry(BaseModel):
    """An immutable deposit into a piggy bank."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    piggy_bank_id: UUID
    date_time: datetime
    amount: int = Field(..., gt=0, description="Deposited amount in cents")
    note: Optional[str] = None
    month_id: Optional[UUID] = Field(
        default=None,
        description="Owning month, nulled when the month is deleted"
    )


class PlannedExpense(BaseModel):
    """A known recurring cost (insurance, yearly fees) planned ahead."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    amount: int = Field(..., gt=0, description="Amount in cents")
    frequency: PlannedExpenseFrequency
    next_due_date: date
    attribution: Attribution
    category_id: Optional[UUID] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


# =============================================================================
# THE LEDGER
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry.

    Amount is always positive; the direction is carried separately and
    always matches the canonical direction of the type.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date_time: datetime
    amount: int = Field(..., gt=0, description="Amount in cents, always positive")
    direction: Direction
    type: TransactionType
    month_id: UUID
    week_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    attribution: Attribution
    payment_method: PaymentMethod
    concept: Optional[str] = Field(default=None, max_length=200)
    note: Optional[str] = Field(default=None, max_length=1000)
    created_at: Optional[datetime] = None

    # Joined for listings, not stored
    category_name: Optional[str] = None

    @field_validator('concept', 'note')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @model_validator(mode='after')
    def validate_type_rules(self) -> 'Transaction':
        if self.direction != CANONICAL_DIRECTION[self.type]:
            raise ValueError(
                f"{self.type.value} transactions must have direction "
                f"{CANONICAL_DIRECTION[self.type].value}"
            )
        return self
