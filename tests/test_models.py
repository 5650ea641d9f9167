"""
Tests for Budget Ledger

Test strategy:
1. Unit tests for individual components (models, validators, settings)
2. Integration tests for flows against a throwaway SQLite file
3. No shared database between tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from budget_ledger.config import AppSettings, DatabaseSettings
from budget_ledger.models.ledger import (
    Attribution,
    Direction,
    Month,
    PaymentMethod,
    PiggyBankEntry,
    Transaction,
    TransactionType,
    Week,
)
from budget_ledger.models.views import CurrentSummary, MonthCloseResult
from budget_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budget_ledger.validation import (
    MAX_AMOUNT_CENTS,
    ValidationError,
    clean_text,
    parse_date,
    parse_datetime,
    parse_enum,
    parse_non_negative_amount,
    parse_optional_amount,
    parse_positive_amount,
    parse_uuid,
)


def make_month(**overrides) -> Month:
    fields = dict(
        period_key="2024-03",
        start_date=date(2024, 3, 1),
        end_date=date(2024, 3, 31),
        income_amount=200000,
        weekly_budget_amount=10000,
        saving_goal_amount=0,
    )
    fields.update(overrides)
    return Month(**fields)


class TestLedgerModels:
    """Tests for ledger Pydantic models."""

    def test_month_creation(self):
        """Test Month model creation."""
        month = make_month()
        assert month.is_open
        assert month.period_key == "2024-03"

    def test_month_date_validation(self):
        """Test that the end date cannot be before the start date."""
        with pytest.raises(ValueError, match="Month end date cannot be before start date"):
            make_month(end_date=date(2024, 2, 1))

    def test_month_period_key_format(self):
        with pytest.raises(ValueError):
            make_month(period_key="March")

    def test_week_contains(self):
        week = Week(
            month_id=uuid4(),
            week_index=3,
            start_date=date(2024, 3, 11),
            end_date=date(2024, 3, 17),
            cash_withdraw_amount=10000,
        )
        assert week.contains(date(2024, 3, 11))
        assert week.contains(date(2024, 3, 17))
        assert not week.contains(date(2024, 3, 18))

    def test_transaction_direction_must_match_type(self):
        """Test that an EXPENSE cannot be recorded as money coming in."""
        with pytest.raises(ValueError, match="must have direction OUT"):
            Transaction(
                date_time=datetime(2024, 3, 13),
                amount=100,
                direction=Direction.IN,
                type=TransactionType.EXPENSE,
                month_id=uuid4(),
                attribution=Attribution.HOUSE,
                payment_method=PaymentMethod.CARD,
            )

    def test_transaction_rejects_non_positive_amount(self):
        """Test that amounts are always positive."""
        with pytest.raises(ValueError):
            Transaction(
                date_time=datetime(2024, 3, 13),
                amount=0,
                direction=Direction.IN,
                type=TransactionType.EXTRA_INCOME,
                month_id=uuid4(),
                attribution=Attribution.HOUSE,
                payment_method=PaymentMethod.TRANSFER,
            )

    def test_transaction_blank_text_becomes_none(self):
        tx = Transaction(
            date_time=datetime(2024, 3, 13),
            amount=100,
            direction=Direction.IN,
            type=TransactionType.CASH_RETURN,
            month_id=uuid4(),
            attribution=Attribution.HOUSE,
            payment_method=PaymentMethod.CASH,
            concept="   ",
        )
        assert tx.concept is None

    def test_piggy_bank_entry_rejects_negative(self):
        with pytest.raises(ValueError):
            PiggyBankEntry(piggy_bank_id=uuid4(), date_time=datetime(2024, 3, 13), amount=-5)


class TestViewModels:
    """Tests for result views and their major-unit fields."""

    def test_month_close_result_major_units(self):
        result = MonthCloseResult(
            month=make_month(),
            total_expenses_cents=50050,
            extra_income_cents=0,
            total_income_cents=200000,
            remainder_cents=149950,
            consolidated_cents=149950,
        )
        assert result.remainder == Decimal("1499.50")
        assert result.model_dump()["consolidated"] == Decimal("1499.50")

    def test_current_summary_requires_positive_days_left(self):
        with pytest.raises(ValueError):
            CurrentSummary(
                month=make_month(),
                today=date(2024, 4, 2),
                days_left=0,
                total_expenses_cents=0,
                extra_income_cents=0,
                total_income_cents=0,
                remaining_month_cents=0,
                daily_pace_cents=0.0,
                attribution_split_cents={a: 0 for a in Attribution},
                bank_balance_cents=0,
                pocket_cash_cents=0,
                safety_balance_cents=0,
            )


class TestValidators:
    """Tests for input validators."""

    def test_parse_optional_amount(self):
        assert parse_optional_amount(None) == 0
        assert parse_optional_amount("garbage") == 0
        assert parse_optional_amount("2,5") == 250
        with pytest.raises(ValidationError):
            parse_optional_amount(-1)

    def test_amount_upper_bound(self):
        assert parse_positive_amount(MAX_AMOUNT_CENTS // 100) == MAX_AMOUNT_CENTS
        with pytest.raises(ValidationError, match="amount is too large"):
            parse_positive_amount("99999999999999999999999")
        with pytest.raises(ValidationError, match="income is too large"):
            parse_non_negative_amount(10**14, "income")
        with pytest.raises(ValidationError):
            parse_optional_amount("99999999999999999999999")

    def test_parse_enum_is_case_insensitive(self):
        assert parse_enum(PaymentMethod, "cash", "payment_method") == PaymentMethod.CASH
        assert parse_enum(PaymentMethod, None, "payment_method", default=PaymentMethod.CARD) == PaymentMethod.CARD

    def test_parse_enum_names_the_field(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_enum(Attribution, "NEIGHBOUR", "attribution")
        assert exc_info.value.field == "attribution"
        assert "MINE, PARTNER, HOUSE" in str(exc_info.value)

    def test_parse_uuid(self):
        value = uuid4()
        assert parse_uuid(str(value), "id") == value
        with pytest.raises(ValidationError):
            parse_uuid("123", "id")

    def test_parse_date(self):
        assert parse_date("2024-03-01", "start_date") == date(2024, 3, 1)
        assert parse_date(datetime(2024, 3, 1, 12), "start_date") == date(2024, 3, 1)
        with pytest.raises(ValidationError):
            parse_date("01/03/2024", "start_date")

    def test_parse_datetime(self):
        assert parse_datetime("2024-03-01T08:15:00", "date_time") == datetime(2024, 3, 1, 8, 15)
        assert parse_datetime(date(2024, 3, 1), "date_time") == datetime(2024, 3, 1)
        assert parse_datetime("2024-03-01T08:15:00Z", "date_time").tzinfo is None
        with pytest.raises(ValidationError):
            parse_datetime("yesterday", "date_time")

    def test_clean_text(self):
        assert clean_text("  hi  ", 10, "note") == "hi"
        assert clean_text("   ", 10, "note") is None
        with pytest.raises(ValidationError):
            clean_text("x" * 11, 10, "note")


class TestSettings:
    """Tests for configuration validation."""

    def test_database_defaults(self):
        settings = DatabaseSettings(path="data/test.db")
        assert settings.pool_size == 10
        assert settings.acquire_timeout_seconds == 5.0

    def test_rejects_memory_database(self):
        with pytest.raises(ValueError):
            DatabaseSettings(path=":memory:")

    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValueError):
            AppSettings(log_level="verbose")

    def test_normalizes_log_level(self):
        assert AppSettings(log_level="debug").log_level == "DEBUG"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.MONTH_STARTED,
            description="Month started",
        )
        assert event.event_type == AuditEventType.MONTH_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.CASH_RETURNED,
            description="Cash returned",
            details={"amount_cents": 500},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "cash_returned"
        assert log_dict["details"]["amount_cents"] == 500

    def test_audit_event_builder_month_started(self):
        """Test AuditEventBuilder.month_started."""
        correlation_id = uuid4()
        month_id = uuid4()

        event = AuditEventBuilder.month_started(
            month_id=month_id,
            period_key="2024-03",
            week_count=5,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MONTH_STARTED
        assert event.entity_id == month_id
        assert event.correlation_id == correlation_id
        assert event.details["week_count"] == 5

    def test_audit_event_builder_transaction_changed(self):
        """Test AuditEventBuilder.transaction_changed."""
        event = AuditEventBuilder.transaction_changed(
            AuditEventType.TRANSACTION_DELETED,
            transaction_id=uuid4(),
            tx_type="EXPENSE",
            amount=1250,
            correlation_id=uuid4(),
        )

        assert event.entity_type == "transaction"
        assert event.description == "EXPENSE transaction deleted"

    def test_audit_event_builder_operation_rejected(self):
        """Test that rejections are warnings carrying the error text."""
        event = AuditEventBuilder.operation_rejected(
            operation="close_week",
            error_type="InsufficientCashError",
            error_message="insufficient pocket cash",
            correlation_id=uuid4(),
        )

        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "insufficient pocket cash"
