# ledger/services/confirmation.py

"""
======================================================
PATH: ledger/services/confirmation.py
======================================================
DAILY CONFIRMATION GATE (ADVISORY)

- A day's row is created as "unconfirmed" the first time it is queried
- confirm_day() moves it to "confirmed" once; repeating is a no-op
- There is no transition back
- Posting is NEVER blocked by this gate

Scope:
- LEDGER_CONFIRMATION_PER_USER=False -> one row per date (user NULL)
- LEDGER_CONFIRMATION_PER_USER=True  -> one row per (date, user)
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from ledger.models import DailyConfirmation
from ledger.services.channels import active_channels
from ledger.services.posting import get_current_balance
from ledger.services.utils import as_aware_dt, today

logger = logging.getLogger(__name__)


def _per_user() -> bool:
    return bool(getattr(settings, "LEDGER_CONFIRMATION_PER_USER", False))


def _prompt_hour() -> int:
    return int(getattr(settings, "LEDGER_CONFIRMATION_PROMPT_HOUR", 12))


def _scope_user(user):
    if not _per_user():
        return None
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return user


def _get_or_create_day(day: date, user) -> DailyConfirmation:
    scope = _scope_user(user)
    try:
        with transaction.atomic():
            row, _ = DailyConfirmation.objects.get_or_create(date=day, user=scope)
    except IntegrityError:
        row = DailyConfirmation.objects.get(date=day, user=scope)
    return row


def _current_balances() -> tuple[str, list[dict]]:
    cash = "0.00"
    banks: list[dict] = []
    for channel in active_channels():
        balance = str(get_current_balance(channel))
        if channel.is_cash:
            cash = balance
            continue
        banks.append(
            {
                "channel_id": channel.pk,
                "kind": channel.kind,
                "name": channel.label,
                "account_number": channel.account_number,
                "balance": balance,
            }
        )
    return cash, banks


def get_confirmation_status(
    *,
    day: date | None = None,
    user=None,
    now: datetime | None = None,
    include_balances: bool = True,
) -> dict:
    """
    Confirmation state for `day` (default: today).

    needs_confirmation = unconfirmed and the local time is past the
    prompt hour (only meaningful for today).
    """
    day = day or today()
    row = _get_or_create_day(day, user)

    local_now = timezone.localtime(as_aware_dt(now))
    if day < local_now.date():
        past_prompt = True
    elif day > local_now.date():
        past_prompt = False
    else:
        past_prompt = local_now.hour >= _prompt_hour()

    status = {
        "date": day,
        "confirmed": row.confirmed,
        "confirmed_at": row.confirmed_at,
        "confirmed_by": row.confirmed_by_id,
        "needs_confirmation": (not row.confirmed) and past_prompt,
    }

    if include_balances:
        cash, banks = _current_balances()
        status["cash_balance"] = cash
        status["bank_balances"] = banks

    return status


def confirm_day(*, user, day: date | None = None) -> DailyConfirmation:
    """
    Mark `day` (default: today) as confirmed. Idempotent.
    """
    day = day or today()

    with transaction.atomic():
        row = _get_or_create_day(day, user)
        row = DailyConfirmation.objects.select_for_update().get(pk=row.pk)

        if row.confirmed:
            return row

        row.confirmed = True
        row.confirmed_at = timezone.now()
        row.confirmed_by = user if getattr(user, "is_authenticated", False) else None
        row.save(update_fields=["confirmed", "confirmed_at", "confirmed_by"])

    logger.info(
        "Day confirmed",
        extra={"day": day.isoformat(), "user_id": str(getattr(user, "pk", "")) or None},
    )
    return row
