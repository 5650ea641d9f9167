"""
Cash Reconciliation Engine

Derives the three balances that are never stored:

    pocket cash = withdrawals - (cash expenses + cash returns + cash piggy deposits)
    bank        = income + extra income + cash returns
                  - (card/transfer expenses + withdrawals)
    safety fund = consolidations - emergency withdrawals     (global, all months)

Pocket cash and bank are scoped to one month. Every call aggregates the
live transaction log, so edits and deletions are reflected immediately.

It also records the weekly cash withdrawal lazily: the first time a week
is resolved as "current", exactly one CASH_WITHDRAWAL is written for it.
"""

from datetime import datetime, time
from typing import Optional
from uuid import UUID

from budget_ledger.models.ledger import (
    CANONICAL_DIRECTION,
    Attribution,
    Month,
    PaymentMethod,
    Transaction,
    TransactionType,
    Week,
)
from budget_ledger.models.views import SafetyWithdrawalResult
from budget_ledger.services.storage import LedgerRepository, NotFoundError
from budget_ledger.validation import (
    clean_text,
    parse_enum,
    parse_positive_amount,
    parse_uuid,
    require_text,
)

SAFETY_TYPES = (
    TransactionType.CONSOLIDATE_TO_SAFETY,
    TransactionType.EMERGENCY_FROM_SAFETY,
)


def require_month(repo: LedgerRepository, month_id) -> Month:
    month = repo.get_month(parse_uuid(month_id, "month_id"))
    if month is None:
        raise NotFoundError("no such month")
    return month


def ledger_entry(
    tx_type: TransactionType,
    amount: int,
    month_id: UUID,
    date_time: datetime,
    payment_method: PaymentMethod,
    attribution: Attribution = Attribution.HOUSE,
    week_id: Optional[UUID] = None,
    category_id: Optional[UUID] = None,
    concept: Optional[str] = None,
    note: Optional[str] = None,
) -> Transaction:
    """Build a transaction whose direction follows its type."""
    return Transaction(
        date_time=date_time,
        amount=amount,
        direction=CANONICAL_DIRECTION[tx_type],
        type=tx_type,
        month_id=month_id,
        week_id=week_id,
        category_id=category_id,
        attribution=attribution,
        payment_method=payment_method,
        concept=concept,
        note=note,
    )


class CashReconciler:
    """Balance derivation and the idempotent weekly withdrawal."""

    def pocket_cash_balance(self, repo: LedgerRepository, month_id: UUID) -> int:
        withdrawn = repo.sum_amounts([TransactionType.CASH_WITHDRAWAL], month_id)
        spent_cash = repo.sum_amounts(
            [TransactionType.EXPENSE], month_id, payment_methods=[PaymentMethod.CASH]
        )
        returned = repo.sum_amounts([TransactionType.CASH_RETURN], month_id)
        saved_cash = repo.sum_amounts(
            [TransactionType.PIGGYBANK_DEPOSIT], month_id, payment_methods=[PaymentMethod.CASH]
        )
        return withdrawn - (spent_cash + returned + saved_cash)

    def bank_balance(self, repo: LedgerRepository, month: Month) -> int:
        extra_income = repo.sum_amounts([TransactionType.EXTRA_INCOME], month.id)
        returned = repo.sum_amounts([TransactionType.CASH_RETURN], month.id)
        spent_bank = repo.sum_amounts(
            [TransactionType.EXPENSE],
            month.id,
            payment_methods=[PaymentMethod.CARD, PaymentMethod.TRANSFER],
        )
        withdrawn = repo.sum_amounts([TransactionType.CASH_WITHDRAWAL], month.id)
        return month.income_amount + extra_income + returned - (spent_bank + withdrawn)

    def safety_balance(self, repo: LedgerRepository) -> int:
        consolidated = repo.sum_amounts([TransactionType.CONSOLIDATE_TO_SAFETY])
        spent = repo.sum_amounts([TransactionType.EMERGENCY_FROM_SAFETY])
        return consolidated - spent

    def safety_history(self, repo: LedgerRepository, limit: int) -> list[Transaction]:
        return repo.list_transactions_by_type(SAFETY_TYPES, limit)

    def ensure_weekly_cash_withdrawal(
        self,
        repo: LedgerRepository,
        week: Week,
    ) -> Optional[Transaction]:
        """
        Record the week's CASH_WITHDRAWAL if it is not there yet.

        Must run inside a store transaction. The existence check and the
        insert share that transaction, and the partial unique index on
        (week_id) for withdrawals turns a concurrent duplicate into a no-op.
        Returns the new transaction, or None when nothing was written.
        """
        if week.cash_withdraw_amount <= 0:
            return None
        if repo.has_transaction(week.id, TransactionType.CASH_WITHDRAWAL):
            return None

        withdrawal = ledger_entry(
            TransactionType.CASH_WITHDRAWAL,
            amount=week.cash_withdraw_amount,
            month_id=week.month_id,
            week_id=week.id,
            date_time=datetime.combine(week.start_date, time.min),
            payment_method=PaymentMethod.CASH,
            concept=f"Week {week.week_index} cash",
        )
        if not repo.insert_transaction_if_absent(withdrawal):
            return None
        return withdrawal

    def record_emergency_withdrawal(
        self,
        repo: LedgerRepository,
        month_id,
        amount,
        note: Optional[str],
        now: datetime,
    ) -> SafetyWithdrawalResult:
        """
        Spend from the safety fund.

        The balance is allowed to go negative; nothing here checks it.
        """
        cents = parse_positive_amount(amount)
        reason = require_text(note, 1000, "note")
        month = require_month(repo, month_id)

        tx = ledger_entry(
            TransactionType.EMERGENCY_FROM_SAFETY,
            amount=cents,
            month_id=month.id,
            date_time=now,
            payment_method=PaymentMethod.TRANSFER,
            concept="Emergency",
            note=reason,
        )
        repo.insert_transaction(tx)
        return SafetyWithdrawalResult(
            transaction=tx,
            safety_balance_cents=self.safety_balance(repo),
        )

    def record_extra_income(
        self,
        repo: LedgerRepository,
        month_id,
        amount,
        now: datetime,
        attribution=None,
        concept: Optional[str] = None,
        note: Optional[str] = None,
        default_concept: str = "Extra income",
    ) -> Transaction:
        cents = parse_positive_amount(amount)
        owner = parse_enum(Attribution, attribution, "attribution", default=Attribution.HOUSE)
        label = clean_text(concept, 200, "concept") or default_concept
        text = clean_text(note, 1000, "note")
        month = require_month(repo, month_id)

        tx = ledger_entry(
            TransactionType.EXTRA_INCOME,
            amount=cents,
            month_id=month.id,
            date_time=now,
            payment_method=PaymentMethod.TRANSFER,
            attribution=owner,
            concept=label,
            note=text,
        )
        repo.insert_transaction(tx)
        return tx
