# ledger/services/cutover.py

"""
======================================================
PATH: ledger/services/cutover.py
======================================================
DAILY CUTOVER (scheduled at local midnight, safe to re-run)

1) recompute + persist yesterday's closing balance (idempotent replace)
2) carry it into today's opening snapshots, per channel, unless
   - the channel already has a snapshot for today, or
   - the channel already has entries today (its running balance is live)

Never posts ledger entries.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from django.db import IntegrityError, transaction

from ledger.models import ClosingBalanceSnapshot, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import active_channels
from ledger.services.closing_balance import compute_closing
from ledger.services.locking import channel_lock
from ledger.services.opening_balance import day_entries
from ledger.services.utils import today as local_today

logger = logging.getLogger(__name__)


@dataclass
class CutoverResult:
    day: date
    closing: ClosingBalanceSnapshot
    created: list[OpeningBalanceSnapshot] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def _carry_forward(channel, day: date, balance) -> OpeningBalanceSnapshot | None:
    with channel_lock(channel.pk) as locked:
        if OpeningBalanceSnapshot.objects.filter(date=day, channel=locked).exists():
            return None
        if day_entries(locked, day).exists():
            return None

        last_id = (
            LedgerEntry.objects.filter(channel=locked)
            .order_by("-id")
            .values_list("id", flat=True)
            .first()
        )
        try:
            with transaction.atomic():
                return OpeningBalanceSnapshot.objects.create(
                    date=day,
                    channel=locked,
                    balance=balance,
                    entry_watermark=last_id,
                    notes="Carried forward from previous day closing",
                    is_system=True,
                )
        except IntegrityError:
            return None


def run_daily_cutover(*, today: date | None = None) -> CutoverResult:
    """
    Close yesterday and open `today` (default: local today).
    """
    day = today or local_today()
    yesterday = day - timedelta(days=1)

    closing = compute_closing(yesterday)
    result = CutoverResult(day=day, closing=closing)

    for channel in active_channels():
        snapshot = _carry_forward(channel, day, closing.balance_for(channel))
        if snapshot is None:
            result.skipped.append(channel.pk)
        else:
            result.created.append(snapshot)

    logger.info(
        "Daily cutover complete",
        extra={
            "day": day.isoformat(),
            "closing_total": str(closing.total),
            "opened": [s.channel_id for s in result.created],
            "skipped": result.skipped,
        },
    )
    return result
