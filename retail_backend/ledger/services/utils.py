# ledger/services/utils.py

"""
Shared money / day helpers for ledger services.

Days are local days in settings.TIME_ZONE:
[D 00:00:00, D+1 00:00:00) in the current timezone.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ledger.services.exceptions import InvalidAmount, LedgerError

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise InvalidAmount(f"Invalid money value: {value!r}") from exc

    if not amt.is_finite():
        raise InvalidAmount(f"Invalid money value: {value!r}")

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def positive_amount(value) -> Decimal:
    if value is None or value == "":
        raise InvalidAmount("Amount is required")

    amt = money(value)
    if amt <= ZERO:
        raise InvalidAmount("Amount must be greater than zero")
    return amt


def as_aware_dt(dt: datetime | str | None) -> datetime:
    """
    Aware datetime from a datetime or an ISO 8601 string (None -> now).
    Naive values are taken as local time.
    """
    if dt is None or dt == "":
        return timezone.now()
    if isinstance(dt, str):
        try:
            parsed = parse_datetime(dt.strip())
        except ValueError as exc:
            raise LedgerError(f"Invalid datetime: {dt!r}") from exc
        if parsed is None:
            raise LedgerError(f"Invalid datetime: {dt!r}")
        dt = parsed
    elif not isinstance(dt, datetime):
        raise LedgerError(f"Invalid datetime: {dt!r}")
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


def local_day(dt: datetime) -> date:
    return timezone.localtime(as_aware_dt(dt)).date()


def today() -> date:
    return timezone.localdate()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    Half-open aware bounds [start, end) for a local day.
    """
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    end = timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min), tz)
    return start, end


def range_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    return day_bounds(start)[0], day_bounds(end)[1]


def opening_reference(day: date) -> str:
    """source_document_id linking opening-balance adjustments to their day."""
    return f"opening:{day.isoformat()}"
