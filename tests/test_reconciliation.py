"""Tests for derived balances, the weekly withdrawal and the safety fund."""

from datetime import datetime, time
from uuid import uuid4

import pytest

from budget_ledger.models.ledger import (
    Attribution,
    Direction,
    PaymentMethod,
    TransactionType,
)
from budget_ledger.services import CashReconciler, ConflictError, NotFoundError
from budget_ledger.services.reconciliation import ledger_entry
from budget_ledger.validation import ValidationError


def withdrawals(ledger, month_id):
    return [
        tx for tx in ledger.list_transactions(month_id)
        if tx.type == TransactionType.CASH_WITHDRAWAL
    ]


class TestWeeklyCashWithdrawal:
    """Tests for the lazily recorded weekly withdrawal."""

    def test_recorded_once_per_week(self, ledger, open_month):
        month, _ = open_month

        ledger.get_current_summary()
        ledger.get_current_summary()
        ledger.get_current_week()

        recorded = withdrawals(ledger, month.id)
        assert len(recorded) == 1
        tx = recorded[0]
        assert tx.amount == 10000
        assert tx.direction == Direction.OUT
        assert tx.payment_method == PaymentMethod.CASH
        assert tx.date_time.date() == ledger.get_current_week().start_date

    def test_service_is_idempotent(self, store, open_month):
        _, weeks = open_month
        reconciler = CashReconciler()

        with store.transaction() as repo:
            first = reconciler.ensure_weekly_cash_withdrawal(repo, weeks[0])
            second = reconciler.ensure_weekly_cash_withdrawal(repo, weeks[0])

        assert first is not None
        assert second is None
        with store.connection() as repo:
            assert repo.sum_amounts([TransactionType.CASH_WITHDRAWAL], weeks[0].month_id) == 10000

    def test_storage_rejects_duplicate_withdrawal(self, store, open_month):
        """Test that the unique index holds even when the existence check is skipped."""
        _, weeks = open_month
        week = weeks[0]

        def withdrawal():
            return ledger_entry(
                TransactionType.CASH_WITHDRAWAL,
                amount=week.cash_withdraw_amount,
                month_id=week.month_id,
                week_id=week.id,
                date_time=datetime.combine(week.start_date, time.min),
                payment_method=PaymentMethod.CASH,
            )

        with store.transaction() as repo:
            repo.insert_transaction(withdrawal())

        with pytest.raises(ConflictError):
            with store.transaction() as repo:
                repo.insert_transaction(withdrawal())

        with store.transaction() as repo:
            assert repo.insert_transaction_if_absent(withdrawal()) is False

    def test_zero_budget_withdraws_nothing(self, ledger):
        month, _ = ledger.start_month("2000", "0", "0", start_date="2024-03-01")

        ledger.get_current_summary()

        assert withdrawals(ledger, month.id) == []

    def test_each_week_gets_its_own(self, ledger, open_month, clock):
        month, _ = open_month

        ledger.get_current_summary()
        clock.advance(days=7)
        ledger.get_current_summary()

        assert len(withdrawals(ledger, month.id)) == 2
        assert ledger.get_current_summary().pocket_cash_cents == 20000


class TestBalances:
    """Tests for pocket cash, bank and their conservation."""

    def test_conservation_of_money(self, ledger, open_month, groceries):
        """Test that pocket cash plus bank accounts for every euro."""
        month, _ = open_month
        week = ledger.get_current_week()

        ledger.create_transaction("50", category_id=groceries.id, payment_method="CARD")
        ledger.create_transaction("20", category_id=groceries.id, payment_method="CASH")
        ledger.create_transaction("30", category_id=groceries.id, payment_method="TRANSFER")
        ledger.record_extra_income(month.id, "100")
        ledger.cash_return(week.id, "10")
        ledger.close_week(week.id, piggy_two="5", piggy_normal="5")

        summary = ledger.get_current_summary()

        assert summary.pocket_cash_cents == 10000 - 2000 - 1000 - 1000
        assert summary.bank_balance_cents == 200000 + 10000 + 1000 - (5000 + 3000) - 10000
        assert summary.pocket_cash_cents + summary.bank_balance_cents == (
            200000 + 10000 - (5000 + 2000 + 3000) - 1000
        )

    def test_balances_follow_edits_and_deletes(self, ledger, open_month, groceries):
        ledger.get_current_week()
        tx = ledger.create_transaction("20", category_id=groceries.id, payment_method="CASH")
        assert ledger.get_current_summary().pocket_cash_cents == 8000

        ledger.update_transaction(tx.id, amount="25")
        assert ledger.get_current_summary().pocket_cash_cents == 7500

        ledger.update_transaction(tx.id, payment_method="CARD")
        summary = ledger.get_current_summary()
        assert summary.pocket_cash_cents == 10000
        assert summary.bank_balance_cents == 200000 - 10000 - 2500

        ledger.delete_transaction(tx.id)
        assert ledger.get_current_summary().bank_balance_cents == 200000 - 10000


class TestSafetyFund:
    """Tests for the global safety fund."""

    def test_emergency_withdrawal(self, ledger):
        month, _ = ledger.start_month("1000", "0", "0", start_date="2024-03-01")
        ledger.close_month(month.id)

        result = ledger.safety_emergency_withdrawal(month.id, "250", "boiler repair")

        assert result.transaction.type == TransactionType.EMERGENCY_FROM_SAFETY
        assert result.transaction.direction == Direction.OUT
        assert result.transaction.note == "boiler repair"
        assert result.safety_balance_cents == 75000
        assert ledger.safety_balance() == 75000

    def test_balance_may_go_negative(self, ledger, open_month):
        month, _ = open_month

        result = ledger.safety_emergency_withdrawal(month.id, "10", "car")

        assert result.safety_balance_cents == -1000

    def test_note_is_required(self, ledger, open_month):
        month, _ = open_month
        with pytest.raises(ValidationError):
            ledger.safety_emergency_withdrawal(month.id, "10", "   ")

    def test_amount_must_be_positive(self, ledger, open_month):
        month, _ = open_month
        with pytest.raises(ValidationError):
            ledger.safety_emergency_withdrawal(month.id, "0", "car")

    def test_unknown_month(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.safety_emergency_withdrawal(uuid4(), "10", "car")

    def test_extra_income_is_not_safety(self, ledger, open_month):
        month, _ = open_month
        ledger.record_extra_income(month.id, "500")
        assert ledger.safety_balance() == 0

    def test_history_is_newest_first_and_bounded(self, ledger, clock):
        march, _ = ledger.start_month("1000", "0", "0", start_date="2024-03-01")
        ledger.close_month(march.id)
        clock.advance(days=1)
        ledger.safety_emergency_withdrawal(march.id, "1", "first")
        clock.advance(days=1)
        ledger.safety_emergency_withdrawal(march.id, "2", "second")

        history = ledger.safety_history()
        assert [tx.amount for tx in history] == [200, 100, 100000]

        assert [tx.note for tx in ledger.safety_history(limit=1)] == ["second"]
        assert len(ledger.safety_history(limit=0)) == 1

    def test_history_limit_must_be_integer(self, ledger):
        with pytest.raises(ValidationError):
            ledger.safety_history(limit="many")


class TestExtraIncome:
    """Tests for recording extra income."""

    def test_defaults(self, ledger, open_month):
        month, _ = open_month

        tx = ledger.record_extra_income(month.id, "75,5")

        assert tx.type == TransactionType.EXTRA_INCOME
        assert tx.direction == Direction.IN
        assert tx.amount == 7550
        assert tx.attribution == Attribution.HOUSE
        assert tx.concept == "Extra income"

    def test_explicit_fields(self, ledger, open_month):
        month, _ = open_month

        tx = ledger.record_extra_income(
            month.id, "30", attribution="partner", concept="Refund", note="insurance"
        )

        assert tx.attribution == Attribution.PARTNER
        assert tx.concept == "Refund"
        assert tx.note == "insurance"

    def test_rejects_bad_amount(self, ledger, open_month):
        month, _ = open_month
        with pytest.raises(ValidationError):
            ledger.record_extra_income(month.id, "nothing")
