"""
Input Validation

Every amount, enum and reference that enters the ledger from a caller
passes through here before anything is written.

IMPORTANT: Validation NEVER silently fixes issues. A value that cannot be
parsed, or that breaks its domain constraint, raises ValidationError with
a short message naming the offending field.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, TypeVar
from uuid import UUID

from budget_ledger.validation.money import AmountInput, parse_to_minor_units

E = TypeVar("E", bound=Enum)

# Month totals of such amounts stay inside SQLite's 64-bit INTEGER
MAX_AMOUNT_CENTS = 10**15


class ValidationError(Exception):
    """Malformed, missing or out-of-range input. Fixable by the caller."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


def _check_upper_bound(cents: int, field: str) -> int:
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large", field)
    return cents


def parse_positive_amount(value: AmountInput, field: str = "amount") -> int:
    """Parse an amount that must be strictly positive."""
    cents = parse_to_minor_units(value)
    if cents is None:
        raise ValidationError(f"{field} is not a valid amount", field)
    if cents <= 0:
        raise ValidationError(f"{field} must be greater than zero", field)
    return _check_upper_bound(cents, field)


def parse_non_negative_amount(value: AmountInput, field: str = "amount") -> int:
    """Parse an amount that may be zero but not negative."""
    cents = parse_to_minor_units(value)
    if cents is None:
        raise ValidationError(f"{field} is not a valid amount", field)
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative", field)
    return _check_upper_bound(cents, field)


def parse_optional_amount(value: AmountInput) -> int:
    """
    Lenient parse used by week close: missing or unparseable becomes 0.

    Negative results are still rejected.
    """
    cents = parse_to_minor_units(value)
    if cents is None:
        return 0
    if cents < 0:
        raise ValidationError("amounts to move cannot be negative")
    return _check_upper_bound(cents, "amount")


def parse_enum(enum_cls: type[E], value, field: str, default: Optional[E] = None) -> E:
    """Resolve a member by value (case-insensitive for strings)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is None:
            raise ValidationError(f"{field} is required", field)
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", field) from None


def parse_uuid(value, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is not a valid id", field) from None


def parse_date(value, field: str) -> date:
    """Accept a date, a datetime (its date part) or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", field) from None


def parse_datetime(value, field: str) -> datetime:
    """Accept a datetime, a date (midnight) or an ISO string."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    else:
        text = str(value).strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO date or datetime", field) from None
    if parsed.tzinfo is not None:
        # Stored timestamps are naive local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def clean_text(value: Optional[str], max_length: int, field: str) -> Optional[str]:
    """Strip free text; blank becomes None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} cannot be longer than {max_length} characters", field)
    return text


def require_text(value: Optional[str], max_length: int, field: str) -> str:
    text = clean_text(value, max_length, field)
    if text is None:
        raise ValidationError(f"{field} is required", field)
    return text
