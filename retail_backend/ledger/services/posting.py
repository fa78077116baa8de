# ledger/services/posting.py

"""
======================================================
PATH: ledger/services/posting.py
======================================================
BALANCE POSTER

This module is the ONLY place allowed to:
- Create LedgerEntry rows
- Read-then-write a channel's running balance
- Capture before_balance / after_balance

Every sale payment, refund, purchase payment, expense and opening
balance adjustment passes through post_ledger_entry().

Running balance (as of "now", not as of occurred_at):
1) an opening snapshot for the entry's day recorded after the channel's
   latest entry (matching entry_watermark), provided that entry is not
   on a later local day -> rebase onto the snapshot
2) otherwise the latest entry's after_balance (insertion order)
3) no entries at all -> resolved opening balance for the entry's day

The read and the insert happen under the per-channel lock in one
transaction, so two concurrent posts never share a before_balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError

from ledger.models import Channel, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import resolve_channel
from ledger.services.exceptions import (
    AlreadyReversed,
    InsufficientBalance,
    InvalidAmount,
    LedgerError,
)
from ledger.services.locking import channel_lock
from ledger.services.opening_balance import resolve_opening_balance
from ledger.services.utils import ZERO, as_aware_dt, local_day, money, positive_amount, today

logger = logging.getLogger(__name__)

PAYMENT_SOURCES = {
    LedgerEntry.Source.SALE.value,
    LedgerEntry.Source.PURCHASE_PAYMENT.value,
}

REFUND_SOURCE_FOR = {
    LedgerEntry.Source.SALE.value: LedgerEntry.Source.SALE_REFUND.value,
    LedgerEntry.Source.PURCHASE_PAYMENT.value: LedgerEntry.Source.PURCHASE_REFUND.value,
}


@dataclass(frozen=True)
class BalanceBasis:
    balance: Decimal
    rebased: bool
    last_entry_id: int | None


def _normalize_direction(direction) -> str:
    value = str(direction or "").strip().lower()
    if value not in (LedgerEntry.INCOME, LedgerEntry.EXPENSE):
        raise LedgerError(f"Invalid direction: {direction!r}")
    return value


def _normalize_source(source) -> str:
    value = str(source or "").strip().lower()
    if value not in LedgerEntry.Source.values:
        raise LedgerError(f"Invalid source: {source!r}")
    return value


def _latest_entry(channel: Channel) -> LedgerEntry | None:
    return (
        LedgerEntry.objects.filter(channel=channel)
        .only("id", "after_balance", "occurred_at")
        .order_by("-id")
        .first()
    )


def balance_basis(channel: Channel, *, day: date) -> BalanceBasis:
    """
    Running balance a new entry on `day` would start from.

    Call under channel_lock() when the result is about to be written.
    """
    last = _latest_entry(channel)
    last_id = last.id if last is not None else None

    snapshot = OpeningBalanceSnapshot.objects.filter(date=day, channel=channel).first()
    if (
        snapshot is not None
        and snapshot.entry_watermark == last_id
        and (last is None or local_day(last.occurred_at) <= day)
    ):
        return BalanceBasis(balance=money(snapshot.balance), rebased=True, last_entry_id=last_id)

    if last is not None:
        return BalanceBasis(balance=money(last.after_balance), rebased=False, last_entry_id=last_id)

    opening = resolve_opening_balance(day=day, channel=channel)
    return BalanceBasis(balance=opening.amount, rebased=True, last_entry_id=None)


def get_current_balance(channel) -> Decimal:
    """
    Current running balance of a channel (read-only, no lock).
    """
    channel = resolve_channel(channel, active_only=False)
    return balance_basis(channel, day=today()).balance


def _allow_negative() -> bool:
    return bool(getattr(settings, "LEDGER_ALLOW_NEGATIVE_BALANCES", True))


def post_ledger_entry(
    *,
    channel,
    direction: str,
    amount,
    source: str,
    source_document_id: str | None = None,
    occurred_at: datetime | None = None,
    recorded_by=None,
    description: str = "",
    reverses: LedgerEntry | None = None,
) -> LedgerEntry:
    """
    Record one balance-affecting event on one channel.

    Raises:
        InvalidAmount, UnknownChannel, ConcurrentModification,
        InsufficientBalance (negative balances disabled),
        AlreadyReversed (when `reverses` already has a reversal)
    """
    amount = positive_amount(amount)
    direction = _normalize_direction(direction)
    source = _normalize_source(source)
    channel = resolve_channel(channel)

    occurred_at_dt = as_aware_dt(occurred_at)
    day = local_day(occurred_at_dt)

    if source_document_id is not None:
        source_document_id = str(source_document_id).strip() or None

    with channel_lock(channel.pk) as locked:
        basis = balance_basis(locked, day=day)

        before = basis.balance
        after = before + amount if direction == LedgerEntry.INCOME else before - amount

        if direction == LedgerEntry.EXPENSE and after < ZERO and not _allow_negative():
            raise InsufficientBalance(
                f"Insufficient balance on {locked.label}: available {before}, required {amount}"
            )

        if reverses is not None and LedgerEntry.objects.filter(reverses_id=reverses.pk).exists():
            raise AlreadyReversed(f"Ledger entry {reverses.pk} is already reversed")

        try:
            entry = LedgerEntry.objects.create(
                channel=locked,
                direction=direction,
                source=source,
                source_document_id=source_document_id,
                amount=amount,
                occurred_at=occurred_at_dt,
                before_balance=before,
                after_balance=after,
                rebased=basis.rebased,
                reverses=reverses,
                recorded_by=recorded_by,
                description=(description or "").strip(),
            )
        except IntegrityError as exc:
            if reverses is not None:
                raise AlreadyReversed(f"Ledger entry {reverses.pk} is already reversed") from exc
            raise LedgerError(f"Failed to create ledger entry: {exc}") from exc
        except ValidationError as exc:
            if reverses is not None and "reverses" in getattr(exc, "error_dict", {}):
                raise AlreadyReversed(f"Ledger entry {reverses.pk} is already reversed") from exc
            raise InvalidAmount(f"Ledger entry rejected: {exc}") from exc

    logger.info(
        "Ledger entry posted",
        extra={
            "entry_id": entry.id,
            "channel_id": locked.pk,
            "direction": direction,
            "source": source,
            "amount": str(amount),
            "before_balance": str(before),
            "after_balance": str(after),
            "rebased": basis.rebased,
        },
    )
    return entry
