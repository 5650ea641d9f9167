"""
Month / Week Lifecycle Manager

State machines:
    Month: OPEN --close--> CLOSED   (terminal, no reopening)
    Week:  OPEN --close--> CLOSED   (terminal)

Every method here expects to run inside ONE store transaction, opened by
the caller. Any exception raised here therefore leaves the ledger as it
was: a month with only part of its weeks, or a week close with only part
of its cash moves, can never be committed.
"""

from datetime import date, datetime
from typing import Optional

from budget_ledger.models.ledger import (
    Month,
    MonthStatus,
    PaymentMethod,
    PiggyBankEntry,
    PiggyBankType,
    Transaction,
    TransactionType,
    Week,
    WeekStatus,
)
from budget_ledger.models.views import (
    CashReturnResult,
    MonthCloseResult,
    WeekCloseResult,
)
from budget_ledger.periods import month_end, partition_weeks, period_key
from budget_ledger.services.reconciliation import (
    CashReconciler,
    ledger_entry,
    require_month,
)
from budget_ledger.services.storage import (
    ConflictError,
    InsufficientCashError,
    LedgerRepository,
    NotFoundError,
)
from budget_ledger.validation import (
    ValidationError,
    clean_text,
    parse_date,
    parse_non_negative_amount,
    parse_optional_amount,
    parse_positive_amount,
    parse_uuid,
)


def require_week(repo: LedgerRepository, week_id) -> Week:
    week = repo.get_week(parse_uuid(week_id, "week_id"))
    if week is None:
        raise NotFoundError("no such week")
    return week


class LifecycleManager:
    """Opens, updates, closes and deletes months; closes weeks."""

    def __init__(self, reconciler: Optional[CashReconciler] = None):
        self._reconciler = reconciler or CashReconciler()

    # ------------------------------------------------------------------
    # Months
    # ------------------------------------------------------------------

    def start_month(
        self,
        repo: LedgerRepository,
        income,
        saving_goal,
        weekly_budget,
        today: date,
        start_date=None,
    ) -> tuple[Month, list[Week]]:
        """
        Open a month and create all of its weeks.

        Raises:
            ValidationError: unparseable amounts, negative amounts, income <= 0
            ConflictError: a month is already OPEN (or one exists for the period)
        """
        income_cents = parse_positive_amount(income, "income")
        saving_cents = parse_non_negative_amount(saving_goal, "saving_goal")
        weekly_cents = parse_non_negative_amount(weekly_budget, "weekly_budget")
        start = parse_date(start_date, "start_date") if start_date is not None else today

        if repo.get_open_month() is not None:
            raise ConflictError("a month is already open; close it first")

        end = month_end(start)
        month = Month(
            period_key=period_key(start),
            start_date=start,
            end_date=end,
            income_amount=income_cents,
            weekly_budget_amount=weekly_cents,
            saving_goal_amount=saving_cents,
            status=MonthStatus.OPEN,
        )
        repo.insert_month(month)

        weeks = [
            Week(
                month_id=month.id,
                week_index=span.index,
                start_date=span.start_date,
                end_date=span.end_date,
                cash_withdraw_amount=weekly_cents,
            )
            for span in partition_weeks(start, end)
        ]
        repo.insert_weeks(weeks)

        return repo.get_month(month.id), repo.list_weeks(month.id)

    def update_month(
        self,
        repo: LedgerRepository,
        month_id,
        income=None,
        saving_goal=None,
        weekly_budget=None,
    ) -> tuple[Month, dict[str, int], int]:
        """
        Change any of the month's amounts.

        A new weekly budget is copied to OPEN weeks only; CLOSED weeks keep
        the allotment they had. Returns (month, changes, open_weeks_updated).
        """
        if income is None and saving_goal is None and weekly_budget is None:
            raise ValidationError("nothing to update: provide income, saving_goal or weekly_budget")

        changes: dict[str, int] = {}
        if income is not None:
            changes["income_amount"] = parse_non_negative_amount(income, "income")
        if saving_goal is not None:
            changes["saving_goal_amount"] = parse_non_negative_amount(saving_goal, "saving_goal")
        if weekly_budget is not None:
            changes["weekly_budget_amount"] = parse_non_negative_amount(weekly_budget, "weekly_budget")

        month = require_month(repo, month_id)

        repo.update_month_amounts(
            month.id,
            income_amount=changes.get("income_amount", month.income_amount),
            saving_goal_amount=changes.get("saving_goal_amount", month.saving_goal_amount),
            weekly_budget_amount=changes.get("weekly_budget_amount", month.weekly_budget_amount),
        )

        open_weeks_updated = 0
        new_weekly = changes.get("weekly_budget_amount")
        if new_weekly is not None and new_weekly != month.weekly_budget_amount:
            open_weeks_updated = repo.set_open_weeks_cash_withdraw(month.id, new_weekly)

        return repo.get_month(month.id), changes, open_weeks_updated

    def close_month(
        self,
        repo: LedgerRepository,
        month_id,
        now: datetime,
    ) -> MonthCloseResult:
        """
        Close an OPEN month and move any leftover to the safety fund.

        remainder = income + extra income - expenses
        consolidated = max(0, remainder)
        """
        month = require_month(repo, month_id)
        if month.status != MonthStatus.OPEN:
            raise ConflictError("month is not open")

        total_expenses = repo.sum_amounts([TransactionType.EXPENSE], month.id)
        extra_income = repo.sum_amounts([TransactionType.EXTRA_INCOME], month.id)
        total_income = month.income_amount + extra_income
        remainder = total_income - total_expenses
        to_consolidate = max(0, remainder)

        consolidation: Optional[Transaction] = None
        if to_consolidate > 0:
            consolidation = ledger_entry(
                TransactionType.CONSOLIDATE_TO_SAFETY,
                amount=to_consolidate,
                month_id=month.id,
                date_time=now,
                payment_method=PaymentMethod.TRANSFER,
                concept=f"Month {month.period_key} leftover",
            )
            repo.insert_transaction(consolidation)

        repo.close_month(month.id, now)

        return MonthCloseResult(
            month=repo.get_month(month.id),
            total_expenses_cents=total_expenses,
            extra_income_cents=extra_income,
            total_income_cents=total_income,
            remainder_cents=remainder,
            consolidated_cents=to_consolidate,
            consolidation=consolidation,
        )

    def delete_month(self, repo: LedgerRepository, month_id) -> Month:
        """Delete a month; weeks and transactions cascade, piggy entries are detached."""
        month = require_month(repo, month_id)
        repo.delete_month(month.id)
        return month

    # ------------------------------------------------------------------
    # Weeks
    # ------------------------------------------------------------------

    def close_week(
        self,
        repo: LedgerRepository,
        week_id,
        now: datetime,
        piggy_two=None,
        piggy_normal=None,
        return_to_bank=None,
        note: Optional[str] = None,
    ) -> WeekCloseResult:
        """
        Distribute the week's leftover pocket cash and close it.

        Raises:
            ValidationError: nothing to move, or a negative amount
            NotFoundError: unknown week or missing piggy bank
            ConflictError: week not OPEN
            InsufficientCashError: more requested than the pocket cash holds
        """
        two_cents = parse_optional_amount(piggy_two)
        normal_cents = parse_optional_amount(piggy_normal)
        bank_cents = parse_optional_amount(return_to_bank)
        text = clean_text(note, 1000, "note")
        total = two_cents + normal_cents + bank_cents
        if total <= 0:
            raise ValidationError("nothing to move: at least one amount must be greater than zero")

        week = require_week(repo, week_id)
        if week.status != WeekStatus.OPEN:
            raise ConflictError("week is not open")

        before = self._reconciler.pocket_cash_balance(repo, week.month_id)
        if total > before:
            raise InsufficientCashError(requested=total, available=before)

        transactions: list[Transaction] = []
        entries: list[PiggyBankEntry] = []

        for kind, cents in (
            (PiggyBankType.TWO_EURO, two_cents),
            (PiggyBankType.NORMAL, normal_cents),
        ):
            if cents <= 0:
                continue
            bank = repo.get_piggy_bank_by_type(kind)
            if bank is None:
                raise NotFoundError(f"piggy bank {kind.value} is not set up")

            entry = PiggyBankEntry(
                piggy_bank_id=bank.id,
                date_time=now,
                amount=cents,
                note=text,
                month_id=week.month_id,
            )
            repo.insert_piggy_bank_entry(entry)
            entries.append(entry)

            deposit = ledger_entry(
                TransactionType.PIGGYBANK_DEPOSIT,
                amount=cents,
                month_id=week.month_id,
                week_id=week.id,
                date_time=now,
                payment_method=PaymentMethod.CASH,
                concept=bank.name,
                note=text,
            )
            repo.insert_transaction(deposit)
            transactions.append(deposit)

        if bank_cents > 0:
            transactions.append(self._return_cash(repo, week, bank_cents, now, text))

        repo.close_week(week.id, now)

        return WeekCloseResult(
            week=repo.get_week(week.id),
            piggy_two_cents=two_cents,
            piggy_normal_cents=normal_cents,
            returned_to_bank_cents=bank_cents,
            total_moved_cents=total,
            pocket_cash_before_cents=before,
            pocket_cash_after_cents=before - total,
            transactions=transactions,
            piggy_bank_entries=entries,
        )

    def cash_return(
        self,
        repo: LedgerRepository,
        week_id,
        amount,
        now: datetime,
        note: Optional[str] = None,
    ) -> CashReturnResult:
        """Return pocket cash to the bank without closing the week."""
        cents = parse_positive_amount(amount)
        text = clean_text(note, 1000, "note")

        week = require_week(repo, week_id)
        if week.status != WeekStatus.OPEN:
            raise ConflictError("week is not open")

        before = self._reconciler.pocket_cash_balance(repo, week.month_id)
        if cents > before:
            raise InsufficientCashError(requested=cents, available=before)

        tx = self._return_cash(repo, week, cents, now, text)
        return CashReturnResult(
            week=repo.get_week(week.id),
            transaction=tx,
            pocket_cash_before_cents=before,
            pocket_cash_after_cents=before - cents,
        )

    def _return_cash(
        self,
        repo: LedgerRepository,
        week: Week,
        cents: int,
        now: datetime,
        note: Optional[str],
    ) -> Transaction:
        repo.add_cash_returned(week.id, cents)
        tx = ledger_entry(
            TransactionType.CASH_RETURN,
            amount=cents,
            month_id=week.month_id,
            week_id=week.id,
            date_time=now,
            payment_method=PaymentMethod.CASH,
            concept="Cash returned to bank",
            note=note,
        )
        repo.insert_transaction(tx)
        return tx
