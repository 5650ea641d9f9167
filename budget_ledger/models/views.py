"""
Result Views

Aggregates returned by ledger operations. Amounts are carried in cents;
the major-unit equivalents are computed fields so they show up in
model_dump() / model_dump_json() without ever being stored.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from budget_ledger.models.ledger import (
    Attribution,
    Month,
    PiggyBank,
    PiggyBankEntry,
    Transaction,
    Week,
)
from budget_ledger.validation.money import format_to_major_units


class MonthCloseResult(BaseModel):
    """Outcome of closing a month."""

    month: Month
    total_expenses_cents: int
    extra_income_cents: int
    total_income_cents: int
    remainder_cents: int = Field(
        ...,
        description="Total income minus expenses; may be negative"
    )
    consolidated_cents: int = Field(
        ...,
        ge=0,
        description="Amount moved to the safety fund"
    )
    consolidation: Optional[Transaction] = None

    @computed_field
    @property
    def remainder(self) -> Optional[Decimal]:
        return format_to_major_units(self.remainder_cents)

    @computed_field
    @property
    def consolidated(self) -> Optional[Decimal]:
        return format_to_major_units(self.consolidated_cents)


class WeekCloseResult(BaseModel):
    """Outcome of closing a week: where its pocket cash went."""

    week: Week
    piggy_two_cents: int = 0
    piggy_normal_cents: int = 0
    returned_to_bank_cents: int = 0
    total_moved_cents: int
    pocket_cash_before_cents: int
    pocket_cash_after_cents: int
    transactions: list[Transaction] = Field(default_factory=list)
    piggy_bank_entries: list[PiggyBankEntry] = Field(default_factory=list)

    @computed_field
    @property
    def total_moved(self) -> Optional[Decimal]:
        return format_to_major_units(self.total_moved_cents)

    @computed_field
    @property
    def pocket_cash_after(self) -> Optional[Decimal]:
        return format_to_major_units(self.pocket_cash_after_cents)


class CashReturnResult(BaseModel):
    """Outcome of returning pocket cash to the bank mid-week."""

    week: Week
    transaction: Transaction
    pocket_cash_before_cents: int
    pocket_cash_after_cents: int


class SafetyWithdrawalResult(BaseModel):
    transaction: Transaction
    safety_balance_cents: int

    @computed_field
    @property
    def safety_balance(self) -> Optional[Decimal]:
        return format_to_major_units(self.safety_balance_cents)


class PiggyBankBalance(BaseModel):
    piggy_bank: PiggyBank
    total_cents: int = 0
    entry_count: int = 0

    @computed_field
    @property
    def total(self) -> Optional[Decimal]:
        return format_to_major_units(self.total_cents)


class PiggyBankSummary(BaseModel):
    piggy_banks: list[PiggyBankBalance]
    total_cents: int

    @computed_field
    @property
    def total(self) -> Optional[Decimal]:
        return format_to_major_units(self.total_cents)


class CurrentSummary(BaseModel):
    """
    Point-in-time dashboard for the OPEN month.

    remaining_month = income + extra income - expenses.
    daily_pace = remaining_month / days_left, unrounded and possibly negative.
    """

    month: Month
    week: Optional[Week] = None
    today: date
    days_left: int = Field(..., ge=1)

    total_expenses_cents: int
    extra_income_cents: int
    total_income_cents: int
    remaining_month_cents: int
    daily_pace_cents: float

    week_spent_cash_cents: int = 0
    week_remaining_cash_cents: int = 0

    attribution_split_cents: dict[Attribution, int]

    bank_balance_cents: int
    pocket_cash_cents: int
    safety_balance_cents: int

    @computed_field
    @property
    def total_expenses(self) -> Optional[Decimal]:
        return format_to_major_units(self.total_expenses_cents)

    @computed_field
    @property
    def extra_income(self) -> Optional[Decimal]:
        return format_to_major_units(self.extra_income_cents)

    @computed_field
    @property
    def total_income(self) -> Optional[Decimal]:
        return format_to_major_units(self.total_income_cents)

    @computed_field
    @property
    def remaining_month(self) -> Optional[Decimal]:
        return format_to_major_units(self.remaining_month_cents)

    @computed_field
    @property
    def daily_pace(self) -> float:
        return self.daily_pace_cents / 100

    @computed_field
    @property
    def week_spent_cash(self) -> Optional[Decimal]:
        return format_to_major_units(self.week_spent_cash_cents)

    @computed_field
    @property
    def week_remaining_cash(self) -> Optional[Decimal]:
        return format_to_major_units(self.week_remaining_cash_cents)

    @computed_field
    @property
    def attribution_split(self) -> dict[Attribution, Optional[Decimal]]:
        return {
            attribution: format_to_major_units(cents)
            for attribution, cents in self.attribution_split_cents.items()
        }

    @computed_field
    @property
    def bank_balance(self) -> Optional[Decimal]:
        return format_to_major_units(self.bank_balance_cents)

    @computed_field
    @property
    def pocket_cash(self) -> Optional[Decimal]:
        return format_to_major_units(self.pocket_cash_cents)

    @computed_field
    @property
    def safety_balance(self) -> Optional[Decimal]:
        return format_to_major_units(self.safety_balance_cents)
