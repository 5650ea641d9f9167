"""Tests for transactions, categories, piggy banks and planned expenses."""

from datetime import date, datetime
from uuid import uuid4

import pytest

from budget_ledger.models.ledger import (
    Attribution,
    Direction,
    PaymentMethod,
    PiggyBankType,
    PlannedExpenseFrequency,
    TransactionType,
)
from budget_ledger.services import ConflictError, NotFoundError
from budget_ledger.services.storage import DEFAULT_CATEGORIES
from budget_ledger.validation import ValidationError


class TestCreateTransaction:
    """Tests for appending expenses and other entries."""

    def test_expense_defaults(self, ledger, open_month, groceries):
        month, weeks = open_month

        tx = ledger.create_transaction("12,30", category_id=str(groceries.id), concept="Market")

        assert tx.type == TransactionType.EXPENSE
        assert tx.direction == Direction.OUT
        assert tx.amount == 1230
        assert tx.month_id == month.id
        assert tx.week_id == weeks[2].id
        assert tx.attribution == Attribution.HOUSE
        assert tx.payment_method == PaymentMethod.CARD
        assert tx.date_time == datetime(2024, 3, 13, 10, 30)
        assert tx.category_name == "Groceries"
        assert tx.created_at is not None

    def test_explicit_date_picks_its_week(self, ledger, open_month, groceries):
        _, weeks = open_month

        tx = ledger.create_transaction(
            "3", category_id=groceries.id, date_time="2024-03-02T09:00:00"
        )

        assert tx.week_id == weeks[0].id

    def test_expense_requires_category(self, ledger, open_month):
        with pytest.raises(ValidationError):
            ledger.create_transaction("10")

    def test_unknown_category(self, ledger, open_month):
        with pytest.raises(NotFoundError):
            ledger.create_transaction("10", category_id=uuid4())

    @pytest.mark.parametrize("amount", ["abc", "0", -4, None])
    def test_rejects_bad_amounts(self, ledger, open_month, groceries, amount):
        with pytest.raises(ValidationError):
            ledger.create_transaction(amount, category_id=groceries.id)

    def test_rejects_amount_too_large_to_store(self, ledger, open_month, groceries):
        month, _ = open_month

        with pytest.raises(ValidationError, match="too large"):
            ledger.create_transaction("99999999999999999999999", category_id=groceries.id)

        assert ledger.list_transactions(month.id) == []

    def test_rejects_unknown_enum_values(self, ledger, open_month, groceries):
        with pytest.raises(ValidationError):
            ledger.create_transaction("1", category_id=groceries.id, payment_method="CHEQUE")
        with pytest.raises(ValidationError):
            ledger.create_transaction("1", type="GIFT")

    def test_needs_open_month(self, ledger, groceries):
        with pytest.raises(ConflictError):
            ledger.create_transaction("10", category_id=groceries.id)

    def test_direction_follows_type(self, ledger, open_month):
        tx = ledger.create_transaction("15", type="extra_income")
        assert tx.direction == Direction.IN
        assert tx.category_id is None

    def test_week_must_belong_to_month(self, ledger, open_month, groceries):
        month, _ = open_month
        ledger.close_month(month.id)
        _, april_weeks = ledger.start_month("1000", "0", "0", start_date="2024-04-01")

        with pytest.raises(ValidationError):
            ledger.create_transaction(
                "5", category_id=groceries.id, month_id=month.id, week_id=april_weeks[0].id
            )


class TestEditTransaction:
    """Tests for reading, updating and deleting transactions."""

    def test_update_fields(self, ledger, open_month, groceries):
        tx = ledger.create_transaction("10", category_id=groceries.id, note="first")
        pharmacy = next(c for c in ledger.list_categories() if c.name == "Pharmacy")

        updated = ledger.update_transaction(
            tx.id,
            amount="11",
            category_id=pharmacy.id,
            attribution="PARTNER",
            note="",
        )

        assert updated.amount == 1100
        assert updated.category_name == "Pharmacy"
        assert updated.attribution == Attribution.PARTNER
        assert updated.note is None
        assert ledger.get_transaction(tx.id) == updated

    def test_new_date_moves_week(self, ledger, open_month, groceries):
        _, weeks = open_month
        tx = ledger.create_transaction("10", category_id=groceries.id)

        updated = ledger.update_transaction(tx.id, date_time=datetime(2024, 3, 26, 12, 0))

        assert updated.week_id == weeks[4].id

    def test_system_entries_keep_their_week(self, ledger, open_month):
        week = ledger.get_current_week()
        result = ledger.cash_return(week.id, "5")

        updated = ledger.update_transaction(result.transaction.id, date_time="2024-03-02")

        assert updated.week_id == week.id
        assert updated.date_time == datetime(2024, 3, 2)

    def test_update_requires_a_field(self, ledger, open_month, groceries):
        tx = ledger.create_transaction("10", category_id=groceries.id)
        with pytest.raises(ValidationError):
            ledger.update_transaction(tx.id)

    def test_delete(self, ledger, open_month, groceries):
        month, _ = open_month
        tx = ledger.create_transaction("10", category_id=groceries.id)

        deleted = ledger.delete_transaction(tx.id)

        assert deleted.id == tx.id
        assert ledger.list_transactions(month.id) == []
        with pytest.raises(NotFoundError):
            ledger.get_transaction(tx.id)
        with pytest.raises(NotFoundError):
            ledger.delete_transaction(tx.id)

    def test_bad_id(self, ledger):
        with pytest.raises(ValidationError):
            ledger.get_transaction("not-an-id")

    def test_list_is_newest_first(self, ledger, open_month, groceries, clock):
        month, _ = open_month
        first = ledger.create_transaction("1", category_id=groceries.id)
        clock.advance(hours=1)
        second = ledger.create_transaction("2", category_id=groceries.id)

        assert [tx.id for tx in ledger.list_transactions(month.id)] == [second.id, first.id]

    def test_list_unknown_month(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.list_transactions(uuid4())


class TestCategories:
    """Tests for category management."""

    def test_seeded(self, ledger):
        names = {c.name for c in ledger.list_categories()}
        assert names == set(DEFAULT_CATEGORIES)

    def test_create_rename_deactivate(self, ledger):
        category = ledger.create_category("  Gifts ")
        assert category.name == "Gifts"

        renamed = ledger.rename_category(category.id, "Presents")
        assert renamed.name == "Presents"

        ledger.deactivate_category(category.id)
        assert "Presents" not in {c.name for c in ledger.list_categories()}
        hidden = {c.name: c for c in ledger.list_categories(include_inactive=True)}
        assert hidden["Presents"].is_active is False

    def test_duplicate_name_conflicts(self, ledger):
        with pytest.raises(ConflictError):
            ledger.create_category("Groceries")

    def test_blank_name(self, ledger):
        with pytest.raises(ValidationError):
            ledger.create_category("   ")

    def test_deactivated_category_keeps_history(self, ledger, open_month, groceries):
        tx = ledger.create_transaction("10", category_id=groceries.id)

        ledger.deactivate_category(groceries.id)

        assert ledger.get_transaction(tx.id).category_name == "Groceries"


class TestPiggyBanks:
    """Tests for the two savings jars."""

    def test_seeded_jars(self, ledger):
        banks = ledger.list_piggy_banks()
        assert {b.type for b in banks} == {PiggyBankType.TWO_EURO, PiggyBankType.NORMAL}

    def test_direct_deposit_writes_no_transaction(self, ledger, open_month):
        month, _ = open_month
        jar = next(b for b in ledger.list_piggy_banks() if b.type == PiggyBankType.NORMAL)

        entry = ledger.deposit_to_piggy_bank(jar.id, "7,5", note="coins", month_id=month.id)

        assert entry.amount == 750
        assert entry.month_id == month.id
        assert ledger.list_transactions(month.id) == []
        assert ledger.list_piggy_bank_entries(jar.id) == [entry]

        summary = ledger.piggy_bank_summary()
        assert summary.total_cents == 750
        by_type = {b.piggy_bank.type: b for b in summary.piggy_banks}
        assert by_type[PiggyBankType.NORMAL].entry_count == 1
        assert by_type[PiggyBankType.TWO_EURO].total_cents == 0

    def test_deposit_without_month(self, ledger):
        jar = ledger.list_piggy_banks()[0]
        entry = ledger.deposit_to_piggy_bank(jar.id, 2)
        assert entry.month_id is None

    def test_unknown_jar(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.deposit_to_piggy_bank(uuid4(), "1")
        with pytest.raises(NotFoundError):
            ledger.list_piggy_bank_entries(uuid4())

    def test_bad_amount(self, ledger):
        jar = ledger.list_piggy_banks()[0]
        with pytest.raises(ValidationError):
            ledger.deposit_to_piggy_bank(jar.id, "0")


class TestPlannedExpenses:
    """Tests for recurring planned costs."""

    def test_create_list_deactivate(self, ledger, groceries):
        planned = ledger.create_planned_expense(
            "Car insurance", "480", "yearly", "2024-09-01", attribution="MINE"
        )

        assert planned.amount == 48000
        assert planned.frequency == PlannedExpenseFrequency.YEARLY
        assert planned.next_due_date == date(2024, 9, 1)
        assert planned.attribution == Attribution.MINE
        assert ledger.list_planned_expenses() == [planned]

        ledger.deactivate_planned_expense(planned.id)

        assert ledger.list_planned_expenses() == []
        assert len(ledger.list_planned_expenses(include_inactive=True)) == 1

    def test_rejects_bad_frequency(self, ledger):
        with pytest.raises(ValidationError):
            ledger.create_planned_expense("Gym", "30", "weekly", "2024-04-01")

    def test_unknown(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.deactivate_planned_expense(uuid4())


class TestHealth:
    def test_ok(self, ledger):
        assert ledger.health() == {"ok": True}
