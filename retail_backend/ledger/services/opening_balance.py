# ledger/services/opening_balance.py

"""
======================================================
PATH: ledger/services/opening_balance.py
======================================================
OPENING BALANCE RESOLVER + OPERATOR SNAPSHOTS

Resolver (pure, no caching):
1) OpeningBalanceSnapshot for (day, channel) -> authoritative
2) otherwise closing(day - 1):
   - a stored ClosingBalanceSnapshot for day - 1, or
   - opening(day - 1) + net of day - 1 entries (walk further back)
3) bounded by LEDGER_OPENING_LOOKBACK_DAYS; nothing found -> zero
   (flagged as lookback_exceeded when older data exists beyond the bound)

A day whose opening is a snapshot only folds entries recorded after the
snapshot (entry id > entry_watermark); earlier same-day entries are
superseded by the operator's figure.

Operator actions:
- record_opening_balance(): create the day's snapshots (baseline, no entries)
- adjust_opening_balance(): post the difference as addition/deduction entries
- add_to_opening_balance(): manual_add income

ANTI-CIRCULAR-IMPORT RULE:
- posting imports this module at import time.
- Import posting lazily inside operator actions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError
from django.db.models import Case, DecimalField, F, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from ledger.models import Channel, ClosingBalanceSnapshot, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import active_channels, get_cash_channel, resolve_channel
from ledger.services.exceptions import (
    InvalidAmount,
    LookbackExceeded,
    OpeningBalanceExists,
    OpeningBalanceNotFound,
)
from ledger.services.locking import channel_lock
from ledger.services.utils import ZERO, day_bounds, money, opening_reference, range_bounds, today

logger = logging.getLogger(__name__)

SOURCE_SNAPSHOT = "snapshot"
SOURCE_CLOSING = "closing"
SOURCE_COMPUTED = "computed"
SOURCE_EMPTY = "empty"
SOURCE_LOOKBACK_EXCEEDED = "lookback_exceeded"

DEC_FIELD = DecimalField(max_digits=14, decimal_places=2)


@dataclass(frozen=True)
class OpeningBalance:
    channel_id: int
    day: date
    amount: Decimal
    source: str
    source_date: date | None = None
    lookback_exceeded: bool = False


def lookback_days() -> int:
    return int(getattr(settings, "LEDGER_OPENING_LOOKBACK_DAYS", 366))


# ---------------------------------------------------------------------
# Net movement helpers
# ---------------------------------------------------------------------

def _signed_sum(qs) -> Decimal:
    agg = qs.aggregate(
        net=Coalesce(
            Sum(
                Case(
                    When(direction=LedgerEntry.INCOME, then=F("amount")),
                    When(direction=LedgerEntry.EXPENSE, then=-F("amount")),
                    default=Value(ZERO),
                    output_field=DEC_FIELD,
                )
            ),
            Value(ZERO),
            output_field=DEC_FIELD,
        )
    )
    return money(agg["net"])


def day_entries(channel: Channel, day: date, *, after_entry_id: int | None = None):
    """
    Entries that move the channel's balance for `day`.

    after_entry_id: only entries inserted after this id (snapshot watermark).
    """
    start, end = day_bounds(day)
    qs = LedgerEntry.objects.filter(channel=channel, occurred_at__gte=start, occurred_at__lt=end)
    if after_entry_id is not None:
        qs = qs.filter(id__gt=after_entry_id)
    return qs


def day_net(channel: Channel, day: date, *, after_entry_id: int | None = None) -> Decimal:
    return _signed_sum(day_entries(channel, day, after_entry_id=after_entry_id))


def range_net(channel: Channel, start: date, end: date) -> Decimal:
    """Net movement over the inclusive local date range (zero when start > end)."""
    if start > end:
        return ZERO
    lo, hi = range_bounds(start, end)
    return _signed_sum(
        LedgerEntry.objects.filter(channel=channel, occurred_at__gte=lo, occurred_at__lt=hi)
    )


def _has_history_before(channel: Channel, day: date) -> bool:
    """Anything recorded for the channel on or before `day`."""
    _, end = day_bounds(day)
    return (
        LedgerEntry.objects.filter(channel=channel, occurred_at__lt=end).exists()
        or OpeningBalanceSnapshot.objects.filter(channel=channel, date__lte=day).exists()
        or ClosingBalanceSnapshot.objects.filter(date__lte=day).exists()
    )


# ---------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------

def resolve_opening_balance(
    *,
    day: date,
    channel,
    max_lookback_days: int | None = None,
    strict: bool = False,
) -> OpeningBalance:
    """
    Opening balance of `channel` at the start of local `day`.

    Usage:
        resolve_opening_balance(day=date(2024, 1, 2), channel="cash").amount

    Raises:
        LookbackExceeded only when strict=True and the bound was hit.
    """
    channel = resolve_channel(channel, active_only=False)

    snapshot = OpeningBalanceSnapshot.objects.filter(date=day, channel=channel).first()
    if snapshot is not None:
        return OpeningBalance(
            channel_id=channel.pk,
            day=day,
            amount=money(snapshot.balance),
            source=SOURCE_SNAPSHOT,
            source_date=day,
        )

    bound = max(lookback_days() if max_lookback_days is None else int(max_lookback_days), 0)
    floor = day - timedelta(days=bound)
    last_day = day - timedelta(days=1)

    closing = (
        ClosingBalanceSnapshot.objects.filter(date__gte=floor, date__lte=last_day)
        .order_by("-date")
        .first()
    )
    opening = (
        OpeningBalanceSnapshot.objects.filter(channel=channel, date__gte=floor, date__lte=last_day)
        .order_by("-date")
        .first()
    )

    # a stored closing wins over an opening snapshot on the same day
    if opening is not None and (closing is None or opening.date > closing.date):
        net = day_net(channel, opening.date, after_entry_id=opening.entry_watermark)
        net += range_net(channel, opening.date + timedelta(days=1), last_day)
        return OpeningBalance(
            channel_id=channel.pk,
            day=day,
            amount=money(money(opening.balance) + net),
            source=SOURCE_COMPUTED,
            source_date=opening.date,
        )

    if closing is not None:
        net = range_net(channel, closing.date + timedelta(days=1), last_day)
        return OpeningBalance(
            channel_id=channel.pk,
            day=day,
            amount=money(money(closing.balance_for(channel)) + net),
            source=SOURCE_CLOSING if closing.date == last_day else SOURCE_COMPUTED,
            source_date=closing.date,
        )

    if _has_history_before(channel, floor - timedelta(days=1)):
        if strict:
            raise LookbackExceeded(
                f"No opening data for channel {channel.pk} within {bound} days before {day}"
            )
        logger.warning(
            "Opening balance lookback exceeded",
            extra={"channel_id": channel.pk, "day": day.isoformat(), "bound": bound},
        )
        return OpeningBalance(
            channel_id=channel.pk,
            day=day,
            amount=ZERO,
            source=SOURCE_LOOKBACK_EXCEEDED,
            lookback_exceeded=True,
        )

    # epoch reached: nothing before the window, start from zero
    window_net = range_net(channel, floor, last_day)
    return OpeningBalance(
        channel_id=channel.pk,
        day=day,
        amount=window_net,
        source=SOURCE_COMPUTED if window_net else SOURCE_EMPTY,
    )


def day_fold_watermark(channel: Channel, day: date) -> int | None:
    """
    Watermark bounding the entries folded into `day` (None = all of them).
    """
    snapshot = OpeningBalanceSnapshot.objects.filter(date=day, channel=channel).only("entry_watermark").first()
    return snapshot.entry_watermark if snapshot is not None else None


# ---------------------------------------------------------------------
# Operator snapshot management
# ---------------------------------------------------------------------

def _normalize_bank_balances(bank_balances) -> list[tuple[Channel, Decimal]]:
    """
    Accepts:
      - {channel_id: balance}
      - [{"channel": id, "balance": x}, ...] ("channel_id" / "bank_account_id" also accepted)
    """
    if not bank_balances:
        return []

    if isinstance(bank_balances, dict):
        raw = list(bank_balances.items())
    else:
        raw = []
        for line in bank_balances:
            if not isinstance(line, dict):
                raise InvalidAmount("Each bank balance must be an object/dict")
            ref = line.get("channel", line.get("channel_id", line.get("bank_account_id")))
            raw.append((ref, line.get("balance")))

    out: list[tuple[Channel, Decimal]] = []
    seen: set[int] = set()
    for ref, balance in raw:
        channel = resolve_channel(ref)
        if channel.kind == Channel.CASH:
            raise InvalidAmount("Cash balance must be given as cash_balance")
        if channel.pk in seen:
            raise InvalidAmount(f"Duplicate balance for channel {channel.pk}")
        seen.add(channel.pk)
        out.append((channel, _non_negative(balance)))
    return out


def _non_negative(value) -> Decimal:
    if value is None or value == "":
        raise InvalidAmount("Balance is required")
    amt = money(value)
    if amt < ZERO:
        raise InvalidAmount("Opening balance cannot be negative")
    return amt


def _requested_lines(cash_balance, bank_balances) -> list[tuple[Channel, Decimal]]:
    lines: list[tuple[Channel, Decimal]] = []
    if cash_balance is not None and cash_balance != "":
        lines.append((get_cash_channel(), _non_negative(cash_balance)))
    lines.extend(_normalize_bank_balances(bank_balances))
    return lines


def record_opening_balance(
    *,
    day: date,
    cash_balance=None,
    bank_balances=None,
    notes: str = "",
    user=None,
    is_system: bool = False,
) -> list[OpeningBalanceSnapshot]:
    """
    Create the stored opening balance for `day`.

    Each snapshot captures the channel's latest entry id, so the Balance
    Poster rebases onto it until the next entry is posted.
    """
    lines = _requested_lines(cash_balance, bank_balances)
    if not lines:
        raise InvalidAmount("At least one opening balance line is required")

    if OpeningBalanceSnapshot.objects.filter(date=day).exists():
        raise OpeningBalanceExists(f"Opening balance already exists for {day.isoformat()}")

    created: list[OpeningBalanceSnapshot] = []
    for channel, balance in lines:
        with channel_lock(channel.pk) as locked:
            last_id = (
                LedgerEntry.objects.filter(channel=locked)
                .order_by("-id")
                .values_list("id", flat=True)
                .first()
            )
            try:
                snapshot = OpeningBalanceSnapshot.objects.create(
                    date=day,
                    channel=locked,
                    balance=balance,
                    entry_watermark=last_id,
                    notes=(notes or "").strip(),
                    is_system=is_system,
                    recorded_by=user,
                )
            except IntegrityError as exc:
                raise OpeningBalanceExists(
                    f"Opening balance already exists for {day.isoformat()} / channel {locked.pk}"
                ) from exc
        created.append(snapshot)

    logger.info(
        "Opening balance recorded",
        extra={"day": day.isoformat(), "channels": [s.channel_id for s in created], "system": is_system},
    )
    return created


def effective_opening(day: date, channel) -> Decimal:
    """
    Opening balance including additions/deductions posted against it.
    """
    channel = resolve_channel(channel, active_only=False)
    baseline = resolve_opening_balance(day=day, channel=channel).amount
    adjustments = _signed_sum(
        LedgerEntry.objects.filter(
            channel=channel,
            source_document_id=opening_reference(day),
            source__in=[
                LedgerEntry.Source.OPENING_BALANCE_ADDITION,
                LedgerEntry.Source.OPENING_BALANCE_DEDUCTION,
            ],
        )
    )
    return money(baseline + adjustments)


def _adjustment_time(day: date) -> datetime:
    if day == today():
        return timezone.now()
    return day_bounds(day)[0]


def adjust_opening_balance(
    *,
    day: date,
    cash_balance=None,
    bank_balances=None,
    notes: str | None = None,
    user=None,
) -> list[LedgerEntry]:
    """
    Edit an existing day's opening balance.

    The stored baseline is kept; each per-channel difference is posted as
    an opening_balance_addition (up) or opening_balance_deduction (down).
    Re-submitting the same figures posts nothing.
    """
    from ledger.services.posting import post_ledger_entry

    snapshots = list(OpeningBalanceSnapshot.objects.filter(date=day))
    if not snapshots:
        raise OpeningBalanceNotFound(f"No opening balance recorded for {day.isoformat()}")

    lines = _requested_lines(cash_balance, bank_balances)
    occurred_at = _adjustment_time(day)
    reference = opening_reference(day)

    entries: list[LedgerEntry] = []
    for channel, new_balance in lines:
        diff = money(new_balance - effective_opening(day, channel))
        if diff == ZERO:
            continue

        if diff > ZERO:
            direction = LedgerEntry.INCOME
            source = LedgerEntry.Source.OPENING_BALANCE_ADDITION
        else:
            direction = LedgerEntry.EXPENSE
            source = LedgerEntry.Source.OPENING_BALANCE_DEDUCTION

        entries.append(
            post_ledger_entry(
                channel=channel,
                direction=direction,
                amount=abs(diff),
                source=source,
                source_document_id=reference,
                occurred_at=occurred_at,
                recorded_by=user,
                description=f"Opening balance adjustment for {day.isoformat()}",
            )
        )

    if notes is not None:
        for snapshot in snapshots:
            snapshot.notes = (notes or "").strip()
            snapshot.save(update_fields=["notes", "updated_at"])

    logger.info(
        "Opening balance adjusted",
        extra={"day": day.isoformat(), "entries": [e.id for e in entries]},
    )
    return entries


def add_to_opening_balance(
    *,
    channel,
    amount,
    user=None,
    description: str = "",
    occurred_at: datetime | None = None,
) -> LedgerEntry:
    """Manual cash/bank top-up (manual_add income)."""
    from ledger.services.posting import post_ledger_entry

    return post_ledger_entry(
        channel=channel,
        direction=LedgerEntry.INCOME,
        amount=amount,
        source=LedgerEntry.Source.MANUAL_ADD,
        occurred_at=occurred_at,
        recorded_by=user,
        description=description or "Added to opening balance",
    )


def get_opening_balance(day: date | None = None) -> dict:
    """
    Composite opening balance for the opening-balance page.

    Lines: cash first, then active bank channels (and any channel with a
    stored snapshot for the day).
    """
    day = day or today()

    channels = {c.pk: c for c in active_channels()}
    for snap in OpeningBalanceSnapshot.objects.filter(date=day).select_related("channel"):
        channels.setdefault(snap.channel_id, snap.channel)

    snapshots = {
        s.channel_id: s for s in OpeningBalanceSnapshot.objects.filter(date=day)
    }

    cash_line = None
    bank_lines: list[dict] = []
    card_lines: list[dict] = []
    total = ZERO

    for channel in channels.values():
        resolved = resolve_opening_balance(day=day, channel=channel)
        adjusted = effective_opening(day, channel)
        line = {
            "channel_id": channel.pk,
            "kind": channel.kind,
            "name": channel.label,
            "account_number": channel.account_number,
            "balance": resolved.amount,
            "adjusted_balance": adjusted,
            "source": resolved.source,
            "source_date": resolved.source_date,
            "lookback_exceeded": resolved.lookback_exceeded,
        }
        total += adjusted
        if channel.is_cash:
            cash_line = line
        elif channel.kind == Channel.CARD:
            card_lines.append(line)
        else:
            bank_lines.append(line)

    notes = next((s.notes for s in snapshots.values() if s.notes), "")

    return {
        "date": day,
        "is_stored": bool(snapshots),
        "notes": notes,
        "cash": cash_line,
        "banks": bank_lines,
        "cards": card_lines,
        "total": money(total),
    }

