"""Tests for the current-month summary."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from budget_ledger.models.ledger import Attribution


class TestCurrentSummary:
    """Tests for the dashboard aggregate."""

    def test_no_open_month(self, ledger):
        assert ledger.get_current_summary() is None
        assert ledger.get_current_week() is None

    def test_totals_and_pace(self, ledger, open_month, groceries):
        month, _ = open_month
        ledger.create_transaction("100", category_id=groceries.id)
        ledger.record_extra_income(month.id, "50")

        summary = ledger.get_current_summary()

        assert summary.today == date(2024, 3, 13)
        assert summary.days_left == 19
        assert summary.total_expenses_cents == 10000
        assert summary.extra_income_cents == 5000
        assert summary.total_income_cents == 205000
        assert summary.remaining_month_cents == 195000
        assert summary.daily_pace_cents == pytest.approx(195000 / 19)
        assert summary.remaining_month == Decimal("1950.00")
        assert summary.safety_balance_cents == 0

    def test_current_week_contains_today(self, ledger, open_month):
        summary = ledger.get_current_summary()

        assert summary.week.week_index == 3
        assert summary.week.start_date == date(2024, 3, 11)
        assert summary.week.end_date == date(2024, 3, 17)

    @pytest.mark.parametrize(
        "now, week_index",
        [
            (datetime(2024, 3, 1, 8, 0), 1),
            (datetime(2024, 3, 3, 23, 59), 1),
            (datetime(2024, 3, 4, 0, 0), 2),
            (datetime(2024, 3, 17, 21, 0), 3),
            (datetime(2024, 3, 18, 7, 0), 4),
        ],
    )
    def test_week_boundaries_are_inclusive(self, ledger, open_month, clock, now, week_index):
        clock.now = now

        assert ledger.get_current_week().week_index == week_index

    def test_week_cash_spend(self, ledger, open_month, groceries):
        """Test that only this week's cash expenses count against the allotment."""
        ledger.create_transaction("12", category_id=groceries.id, payment_method="CASH")
        ledger.create_transaction("8,50", category_id=groceries.id, payment_method="cash")
        ledger.create_transaction("40", category_id=groceries.id, payment_method="CARD")
        ledger.create_transaction(
            "5", category_id=groceries.id, payment_method="CASH",
            date_time=datetime(2024, 3, 5, 18, 0),
        )

        summary = ledger.get_current_summary()

        assert summary.week_spent_cash_cents == 2050
        assert summary.week_remaining_cash_cents == 10000 - 2050
        assert summary.week_remaining_cash == Decimal("79.50")

    def test_attribution_split_is_zero_filled(self, ledger, open_month, groceries):
        ledger.create_transaction("30", category_id=groceries.id, attribution="MINE")
        ledger.create_transaction("20", category_id=groceries.id)

        split = ledger.get_current_summary().attribution_split_cents

        assert split == {
            Attribution.MINE: 3000,
            Attribution.PARTNER: 0,
            Attribution.HOUSE: 2000,
        }

    def test_negative_pace_is_kept(self, ledger, open_month, groceries):
        ledger.create_transaction("2019", category_id=groceries.id)

        summary = ledger.get_current_summary()

        assert summary.remaining_month_cents == -1900
        assert summary.daily_pace_cents == pytest.approx(-100.0)
        assert summary.daily_pace == pytest.approx(-1.0)

    def test_falls_back_to_last_week(self, ledger):
        """Test a today outside the month's range (February month, March clock)."""
        ledger.start_month("1000", "0", "20", start_date="2024-02-01")

        summary = ledger.get_current_summary()

        assert summary.week.week_index == 5
        assert summary.week.start_date == date(2024, 2, 26)
        assert summary.week.end_date == date(2024, 2, 29)
        assert summary.days_left == 1
        assert summary.pocket_cash_cents == 2000

    def test_last_day_of_month(self, ledger, open_month, clock):
        clock.now = datetime(2024, 3, 31, 23, 0)

        summary = ledger.get_current_summary()

        assert summary.days_left == 1
        assert summary.week.week_index == 5

    def test_serializes_major_units(self, ledger, open_month):
        dumped = ledger.get_current_summary().model_dump(mode="json")

        assert dumped["bank_balance"] == "1900.00"
        assert dumped["pocket_cash"] == "100.00"
        assert set(dumped["attribution_split"]) == {"MINE", "PARTNER", "HOUSE"}
