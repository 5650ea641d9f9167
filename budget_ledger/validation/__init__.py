"""Validation package: money codec and input validators."""

from budget_ledger.validation.money import (
    format_to_major_units,
    parse_to_minor_units,
)
from budget_ledger.validation.validator import (
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
    require_text,
)

__all__ = [
    "MAX_AMOUNT_CENTS",
    "ValidationError",
    "clean_text",
    "format_to_major_units",
    "parse_date",
    "parse_datetime",
    "parse_enum",
    "parse_non_negative_amount",
    "parse_optional_amount",
    "parse_positive_amount",
    "parse_to_minor_units",
    "parse_uuid",
    "require_text",
]
