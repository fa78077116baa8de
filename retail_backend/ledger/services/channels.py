# ledger/services/channels.py

"""
======================================================
PATH: ledger/services/channels.py
======================================================
CHANNEL RESOLUTION

Accepted channel references:
- a Channel instance
- a primary key (int or numeric string)
- the literal "cash" (the single cash channel)

Rules:
- Unknown or inactive channels raise UnknownChannel (for posting)
- The cash channel is created on first use; bank/card rows never are
"""

from __future__ import annotations

from django.db import IntegrityError

from ledger.models import Channel
from ledger.services.exceptions import UnknownChannel


def get_cash_channel() -> Channel:
    try:
        channel, _ = Channel.objects.get_or_create(
            kind=Channel.CASH,
            defaults={"name": "", "is_active": True},
        )
    except IntegrityError:
        # lost the creation race to another worker
        channel = Channel.objects.get(kind=Channel.CASH)
    return channel


def resolve_channel(ref, *, active_only: bool = True) -> Channel:
    """
    Resolve a channel reference to a Channel row.

    Raises:
        UnknownChannel if the reference does not exist
        (or is inactive when active_only=True).
    """
    if ref is None or ref == "":
        raise UnknownChannel("Channel is required")

    if isinstance(ref, Channel):
        channel = ref
        if channel.pk is None:
            raise UnknownChannel("Channel has not been saved")
    elif isinstance(ref, str) and ref.strip().lower() == Channel.CASH:
        channel = get_cash_channel()
    else:
        try:
            pk = int(ref)
        except (TypeError, ValueError) as exc:
            raise UnknownChannel(f"Unknown channel: {ref!r}") from exc

        channel = Channel.objects.filter(pk=pk).first()
        if channel is None:
            raise UnknownChannel(f"Unknown channel: {ref!r}")

    if active_only and not channel.is_active:
        raise UnknownChannel(f"Channel {channel.pk} is inactive")

    return channel


def active_channels() -> list[Channel]:
    """Cash first, then active bank and card channels."""
    cash = get_cash_channel()
    others = list(
        Channel.objects.filter(is_active=True)
        .exclude(kind=Channel.CASH)
        .order_by("kind", "name", "id")
    )
    return [cash, *others]
