"""
Summary Aggregator

Builds the dashboard view of the OPEN month from the live ledger.

This is a read, with one exception: resolving the current week records
that week's cash withdrawal if it is missing. The caller must therefore
run it inside a store transaction.
"""

from datetime import date
from typing import Optional

from budget_ledger.models.ledger import Month, PaymentMethod, Transaction, TransactionType, Week
from budget_ledger.models.views import CurrentSummary
from budget_ledger.services.reconciliation import CashReconciler
from budget_ledger.services.storage import LedgerRepository


class SummaryAggregator:
    """
    Composes balances, spend pace and attribution split.

    GUARANTEES:
    - Every figure is aggregated from transactions, nothing is cached
    - The attribution split always has MINE, PARTNER and HOUSE
    - days_left is never below 1
    """

    def __init__(self, reconciler: Optional[CashReconciler] = None):
        self._reconciler = reconciler or CashReconciler()

    def current_week(
        self,
        repo: LedgerRepository,
        today: date,
    ) -> tuple[Optional[Month], Optional[Week], Optional[Transaction]]:
        """
        Resolve (month, week, new_withdrawal) for today.

        The week is the one containing today, or the highest-index week of
        the month when none does. new_withdrawal is set only when this call
        recorded the week's cash withdrawal.
        """
        month = repo.get_open_month()
        if month is None:
            return None, None, None

        weeks = repo.list_weeks(month.id)
        if not weeks:
            return month, None, None
        week = next((w for w in weeks if w.contains(today)), weeks[-1])

        withdrawal = self._reconciler.ensure_weekly_cash_withdrawal(repo, week)
        return month, week, withdrawal

    def summarize(
        self,
        repo: LedgerRepository,
        month: Month,
        week: Optional[Week],
        today: date,
    ) -> CurrentSummary:
        total_expenses = repo.sum_amounts([TransactionType.EXPENSE], month.id)
        extra_income = repo.sum_amounts([TransactionType.EXTRA_INCOME], month.id)
        total_income = month.income_amount + extra_income
        remaining = total_income - total_expenses

        days_left = max(1, (month.end_date - today).days + 1)

        week_spent_cash = 0
        week_remaining_cash = 0
        if week is not None:
            week_spent_cash = repo.sum_amounts(
                [TransactionType.EXPENSE],
                month.id,
                payment_methods=[PaymentMethod.CASH],
                date_from=week.start_date,
                date_to=week.end_date,
            )
            week_remaining_cash = week.cash_withdraw_amount - week_spent_cash

        return CurrentSummary(
            month=month,
            week=week,
            today=today,
            days_left=days_left,
            total_expenses_cents=total_expenses,
            extra_income_cents=extra_income,
            total_income_cents=total_income,
            remaining_month_cents=remaining,
            daily_pace_cents=remaining / days_left,
            week_spent_cash_cents=week_spent_cash,
            week_remaining_cash_cents=week_remaining_cash,
            attribution_split_cents=repo.sum_by_attribution(month.id),
            bank_balance_cents=self._reconciler.bank_balance(repo, month),
            pocket_cash_cents=self._reconciler.pocket_cash_balance(repo, month.id),
            safety_balance_cents=self._reconciler.safety_balance(repo),
        )
