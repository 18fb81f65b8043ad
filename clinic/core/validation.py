# clinic/core/validation.py
"""
Parsing and sanity checks shared by the scheduling and billing services.

All helpers raise `clinic.core.errors` exceptions so the caller can let
them bubble up to the router untouched.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

from clinic.core.errors import InvalidFormat, InvalidValue, MissingFields

DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIME_RE = re.compile(r"[0-9]{2}:[0-9]{2}")

INVALID_DATE_MSG = "Invalid date, format must be yyyy-mm-dd"
INVALID_TIME_MSG = "Invalid time, format must be hh:mm"

CENT = Decimal("0.01")
# Money columns are Numeric(12, 2): ten integer digits at most.
MONEY_LIMIT = Decimal("1e10")


def parse_calendar_date(value: Any) -> date:
    """Strict YYYY-MM-DD; rejects 2024-02-30 and friends."""
    if not isinstance(value, str) or not DATE_RE.fullmatch(value):
        raise InvalidFormat(INVALID_DATE_MSG)
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidFormat(INVALID_DATE_MSG) from exc


def parse_clock_time(value: Any) -> time:
    if not isinstance(value, str) or not TIME_RE.fullmatch(value):
        raise InvalidFormat(INVALID_TIME_MSG)
    hours, minutes = (int(part) for part in value.split(":"))
    if hours > 23 or minutes > 59:
        raise InvalidFormat(INVALID_TIME_MSG)
    return time(hours, minutes)


def combine_date_and_time(day: date, clock_time: time) -> datetime:
    return datetime.combine(day, clock_time, tzinfo=timezone.utc)


def as_utc(instant: datetime) -> datetime:
    """
    SQLite hands back naive datetimes; every instant we store is UTC,
    so a missing tzinfo means UTC.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def require_positive_number(value: Any, field: str) -> Decimal:
    """JSON numbers only: strings, bools and null are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidValue(field)
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidValue(field) from exc
    if not number.is_finite() or number <= 0:
        raise InvalidValue(field)
    return number


def require_positive_int(value: Any, field: str) -> int:
    number = require_positive_number(value, field)
    if number != number.to_integral_value():
        raise InvalidValue(field, f"{field} must be a positive integer")
    return int(number)


def require_fields(values: Mapping[str, Any], names: Iterable[str]) -> None:
    missing = [n for n in names if values.get(n) in (None, "")]
    if missing:
        raise MissingFields(missing)


def to_money(value: Any, field: str = "montant") -> Decimal:
    if value is None:
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidValue(field) from exc


def require_positive_money(value: Any, field: str) -> Decimal:
    """
    Positive JSON number that survives rounding to cents and fits a
    Money column; 0.004 and 1e30 are both rejected here, not at flush.
    """
    number = require_positive_number(value, field)
    if number >= MONEY_LIMIT:
        raise InvalidValue(field, f"{field} must be less than {MONEY_LIMIT:,.0f}")
    amount = to_money(number, field)
    if amount <= 0:
        raise InvalidValue(field)
    return amount
