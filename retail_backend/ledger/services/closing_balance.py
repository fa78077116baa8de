# ledger/services/closing_balance.py

"""
======================================================
PATH: ledger/services/closing_balance.py
======================================================
CLOSING BALANCE CALCULATOR

closing(D, channel) = opening(D, channel) + income(D) - expense(D)

Rules:
- Channels: cash, every active channel, and any channel that has
  entries or an opening snapshot on or before D
- Entries are folded in (occurred_at, id) order
- Every folded entry is checked against the stored chain:
    * after_balance == before_balance +/- amount
    * before_balance == previous entry's after_balance (insertion order)
      unless the entry was rebased onto an opening balance
  A mismatch raises LedgerInconsistency. Nothing is ever corrected here.
- compute_closing() replaces the stored snapshot (idempotent)
- preview_closing() runs the same calculation without persisting
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db import transaction

from ledger.models import Channel, ClosingBalanceSnapshot, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import active_channels, resolve_channel
from ledger.services.exceptions import LedgerInconsistency
from ledger.services.opening_balance import day_entries, day_fold_watermark, resolve_opening_balance
from ledger.services.utils import ZERO, day_bounds, money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelClosing:
    channel: Channel
    opening: Decimal
    income: Decimal
    expense: Decimal
    balance: Decimal
    entry_count: int

    def as_line(self) -> dict:
        return {
            "channel_id": self.channel.pk,
            "name": self.channel.label,
            "account_number": self.channel.account_number,
            "opening": str(self.opening),
            "income": str(self.income),
            "expense": str(self.expense),
            "balance": str(self.balance),
        }


# ---------------------------------------------------------------------
# Consistency checks
# ---------------------------------------------------------------------

def _inconsistency(message: str, *, entry: LedgerEntry, expected, stored) -> LedgerInconsistency:
    logger.error(
        "Ledger inconsistency detected",
        extra={
            "channel_id": entry.channel_id,
            "entry_id": entry.pk,
            "expected": str(expected),
            "stored": str(stored),
        },
    )
    return LedgerInconsistency(
        message,
        channel_id=entry.channel_id,
        entry_id=entry.pk,
        expected=expected,
        stored=stored,
    )


def _check_arithmetic(entry: LedgerEntry) -> None:
    expected = entry.expected_after_balance()
    if money(entry.after_balance) != expected:
        raise _inconsistency(
            f"Entry {entry.pk}: after_balance {entry.after_balance} != expected {expected}",
            entry=entry,
            expected=expected,
            stored=entry.after_balance,
        )


def _check_chain(ordered: list[LedgerEntry], previous: LedgerEntry | None = None) -> int:
    """
    Walk entries in insertion order; return how many were checked.
    """
    for entry in ordered:
        _check_arithmetic(entry)

        if previous is not None and not entry.rebased:
            if money(entry.before_balance) != money(previous.after_balance):
                raise _inconsistency(
                    f"Entry {entry.pk}: before_balance {entry.before_balance} does not "
                    f"continue entry {previous.pk} after_balance {previous.after_balance}",
                    entry=entry,
                    expected=previous.after_balance,
                    stored=entry.before_balance,
                )
        previous = entry
    return len(ordered)


def _check_day_entries(channel: Channel, entries: list[LedgerEntry]) -> None:
    if not entries:
        return

    ids = sorted(e.pk for e in entries)
    predecessor_id = (
        LedgerEntry.objects.filter(channel=channel, id__lt=ids[0])
        .order_by("-id")
        .values_list("id", flat=True)
        .first()
    )
    lower = predecessor_id if predecessor_id is not None else ids[0]

    # includes entries of other days inserted in between (backdated posts)
    window = list(
        LedgerEntry.objects.filter(channel=channel, id__gte=lower, id__lte=ids[-1]).order_by("id")
    )
    _check_chain(window)


def verify_channel_chain(channel, *, start: date | None = None, end: date | None = None) -> int:
    """
    Verify a channel's stored chain in insertion order.

    Optional start/end restrict the check to entries occurring in that
    local date range (each still linked to its true predecessor).

    Returns:
        number of entries checked
    Raises:
        LedgerInconsistency on the first broken link
    """
    channel = resolve_channel(channel, active_only=False)

    qs = LedgerEntry.objects.filter(channel=channel)
    if start is not None:
        qs = qs.filter(occurred_at__gte=day_bounds(start)[0])
    if end is not None:
        qs = qs.filter(occurred_at__lt=day_bounds(end)[1])

    entries = list(qs.order_by("id"))
    if start is None and end is None:
        return _check_chain(entries)

    _check_day_entries(channel, entries)
    return len(entries)


# ---------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------

def _channels_for_day(day: date) -> list[Channel]:
    channels = {c.pk: c for c in active_channels()}

    # inactive channels keep their history in the closing
    end = day_bounds(day)[1]
    touched_ids = set(
        LedgerEntry.objects.filter(occurred_at__lt=end)
        .order_by()
        .values_list("channel_id", flat=True)
        .distinct()
    )
    touched_ids |= set(
        OpeningBalanceSnapshot.objects.filter(date__lte=day)
        .order_by()
        .values_list("channel_id", flat=True)
        .distinct()
    )
    missing = touched_ids - set(channels)
    if missing:
        for channel in Channel.objects.filter(pk__in=missing):
            channels[channel.pk] = channel

    return sorted(channels.values(), key=lambda c: (c.kind != Channel.CASH, c.kind, c.name, c.pk))


def close_channel(channel: Channel, day: date) -> ChannelClosing:
    opening = resolve_opening_balance(day=day, channel=channel).amount

    all_entries = list(day_entries(channel, day).order_by("occurred_at", "id"))
    _check_day_entries(channel, all_entries)

    watermark = day_fold_watermark(channel, day)
    folded = [e for e in all_entries if watermark is None or e.pk > watermark]

    running = opening
    income = ZERO
    expense = ZERO
    for entry in folded:
        if entry.direction == LedgerEntry.INCOME:
            running += entry.amount
            income += entry.amount
        else:
            running -= entry.amount
            expense += entry.amount

    return ChannelClosing(
        channel=channel,
        opening=money(opening),
        income=money(income),
        expense=money(expense),
        balance=money(running),
        entry_count=len(folded),
    )


def preview_closing(day: date) -> ClosingBalanceSnapshot:
    """
    Pure closing calculation: returns an UNSAVED snapshot.
    """
    cash = ZERO
    bank_lines: list[dict] = []
    card_lines: list[dict] = []
    total = ZERO
    entry_count = 0

    for channel in _channels_for_day(day):
        result = close_channel(channel, day)
        total += result.balance
        entry_count += result.entry_count

        if channel.is_cash:
            cash = result.balance
        elif channel.kind == Channel.CARD:
            card_lines.append(result.as_line())
        else:
            bank_lines.append(result.as_line())

    return ClosingBalanceSnapshot(
        date=day,
        cash_balance=money(cash),
        bank_balances=bank_lines,
        card_balances=card_lines,
        total=money(total),
        entry_count=entry_count,
    )


@transaction.atomic
def compute_closing(day: date) -> ClosingBalanceSnapshot:
    """
    Compute and persist the closing balance for `day`, replacing any prior one.
    """
    preview = preview_closing(day)

    snapshot, created = ClosingBalanceSnapshot.objects.update_or_create(
        date=day,
        defaults={
            "cash_balance": preview.cash_balance,
            "bank_balances": preview.bank_balances,
            "card_balances": preview.card_balances,
            "total": preview.total,
            "entry_count": preview.entry_count,
        },
    )

    logger.info(
        "Closing balance computed",
        extra={
            "day": day.isoformat(),
            "total": str(snapshot.total),
            "entry_count": snapshot.entry_count,
            "replaced": not created,
        },
    )
    return snapshot


def get_closing_balance(day: date) -> ClosingBalanceSnapshot:
    """Stored closing balance, computed and stored on first request."""
    snapshot = ClosingBalanceSnapshot.objects.filter(date=day).first()
    if snapshot is not None:
        return snapshot
    return compute_closing(day)


def list_closing_balances(start: date, end: date):
    return ClosingBalanceSnapshot.objects.filter(date__gte=start, date__lte=end).order_by("date")
