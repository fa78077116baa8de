# ledger/services/queries.py

"""
======================================================
PATH: ledger/services/queries.py
======================================================
READ-ONLY QUERY SURFACE (Reporting Aggregator consumer interface)

- query_entries(): ordered entries for a local date range
- entries_grouped_by_day(): per day cash / per-bank income, expense, net

Ordering is always (occurred_at, id).
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta

from ledger.models import Channel, LedgerEntry
from ledger.services.channels import resolve_channel
from ledger.services.exceptions import LedgerError
from ledger.services.utils import ZERO, local_day, money, range_bounds

REFUND_SOURCES = (
    LedgerEntry.Source.SALE_REFUND.value,
    LedgerEntry.Source.PURCHASE_REFUND.value,
)


def _normalize_sources(source) -> list[str] | None:
    if source in (None, "", []):
        return None
    values = [source] if isinstance(source, str) else list(source)
    out = []
    for value in values:
        v = str(value).strip().lower()
        if v not in LedgerEntry.Source.values:
            raise LedgerError(f"Invalid source filter: {value!r}")
        out.append(v)
    return out


def query_entries(*, start: date, end: date, channel=None, source=None, exclude_refunds: bool = False):
    """
    Ledger entries with occurred_at in [start 00:00, end+1 00:00) local time.

    channel: a channel reference ("cash", id, Channel) or None for all
    source: one source value, a list of them, or None for all
    exclude_refunds: drop sale_refund / purchase_refund entries
    """
    if end < start:
        raise LedgerError("end date must not be before start date")

    lo, hi = range_bounds(start, end)
    qs = LedgerEntry.objects.select_related("channel", "recorded_by").filter(
        occurred_at__gte=lo,
        occurred_at__lt=hi,
    )

    if channel is not None:
        qs = qs.filter(channel=resolve_channel(channel, active_only=False))

    sources = _normalize_sources(source)
    if sources:
        qs = qs.filter(source__in=sources)

    if exclude_refunds:
        qs = qs.exclude(source__in=REFUND_SOURCES)

    return qs.order_by("occurred_at", "id")


def _empty_totals() -> dict:
    return {"income": ZERO, "expense": ZERO, "net": ZERO}


def _add(totals: dict, entry: LedgerEntry) -> None:
    if entry.direction == LedgerEntry.INCOME:
        totals["income"] += entry.amount
        totals["net"] += entry.amount
    else:
        totals["expense"] += entry.amount
        totals["net"] -= entry.amount


def _finish(totals: dict) -> dict:
    return {k: money(v) for k, v in totals.items()}


def entries_grouped_by_day(
    *,
    start: date,
    end: date,
    channel=None,
    include_entries: bool = True,
    exclude_refunds: bool = False,
) -> dict:
    """
    Group entries by local day.

    Returns:
        {
          "start", "end",
          "days": [
            {"date", "cash": {income, expense, net},
             "banks": [{channel_id, name, account_number, income, expense, net}],
             "totals": {income, expense, net},
             "entries": [...]}
          ],
          "totals": {"cash": {...}, "banks": {...}, "overall": {...}}
        }

    Days with no entries are included so the report has no gaps.
    """
    entries = list(
        query_entries(start=start, end=end, channel=channel, exclude_refunds=exclude_refunds)
    )

    days: "OrderedDict[date, dict]" = OrderedDict()
    cursor = start
    while cursor <= end:
        days[cursor] = {
            "cash": _empty_totals(),
            "banks": OrderedDict(),
            "totals": _empty_totals(),
            "entries": [],
        }
        cursor += timedelta(days=1)

    grand_cash = _empty_totals()
    grand_banks = _empty_totals()
    grand = _empty_totals()

    for entry in entries:
        bucket = days[local_day(entry.occurred_at)]
        ch = entry.channel

        if ch.kind == Channel.CASH:
            _add(bucket["cash"], entry)
            _add(grand_cash, entry)
        else:
            line = bucket["banks"].get(ch.pk)
            if line is None:
                line = {
                    "channel_id": ch.pk,
                    "kind": ch.kind,
                    "name": ch.label,
                    "account_number": ch.account_number,
                    **_empty_totals(),
                }
                bucket["banks"][ch.pk] = line
            _add(line, entry)
            _add(grand_banks, entry)

        _add(bucket["totals"], entry)
        _add(grand, entry)

        if include_entries:
            bucket["entries"].append(entry)

    day_rows = []
    for day, bucket in days.items():
        banks = []
        for line in bucket["banks"].values():
            line.update(_finish({k: line[k] for k in ("income", "expense", "net")}))
            banks.append(line)

        day_rows.append(
            {
                "date": day,
                "cash": _finish(bucket["cash"]),
                "banks": banks,
                "totals": _finish(bucket["totals"]),
                "entries": bucket["entries"],
            }
        )

    return {
        "start": start,
        "end": end,
        "days": day_rows,
        "totals": {
            "cash": _finish(grand_cash),
            "banks": _finish(grand_banks),
            "overall": _finish(grand),
        },
    }
