# ledger/models/snapshots.py

"""
======================================================
PATH: ledger/models/snapshots.py
======================================================
OPENING / CLOSING BALANCE SNAPSHOTS

OpeningBalanceSnapshot
- Stored opening balance for one (date, channel)
- Authoritative for that date: the resolver never merges it with computed values
- entry_watermark = id of the channel's latest ledger entry when the balance
  was set (NULL when the channel had no entries). The Balance Poster rebases
  onto the snapshot only while no newer entry exists.

ClosingBalanceSnapshot
- Derived, one row per date
- Replaced (never accumulated) by the Closing Balance Calculator
- Per-channel balances are stored as JSON lists with string amounts
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from ledger.models.channel import Channel


class OpeningBalanceSnapshot(models.Model):
    date = models.DateField()

    channel = models.ForeignKey(
        Channel,
        on_delete=models.PROTECT,
        related_name="opening_snapshots",
    )

    balance = models.DecimalField(max_digits=14, decimal_places=2)

    entry_watermark = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Latest ledger entry id on the channel when the balance was set",
    )

    notes = models.TextField(blank=True)

    is_system = models.BooleanField(
        default=False,
        help_text="Created by the daily cutover job rather than an operator",
    )

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opening_balance_snapshots",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date", "channel_id"]
        indexes = [
            models.Index(fields=["date"], name="ledger_opening_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["date", "channel"],
                name="uniq_opening_snapshot_date_channel",
            )
        ]
        verbose_name = "Opening Balance Snapshot"
        verbose_name_plural = "Opening Balance Snapshots"

    def __str__(self):
        return f"Opening {self.date} {self.channel}: {self.balance}"


class ClosingBalanceSnapshot(models.Model):
    date = models.DateField(unique=True)

    cash_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    bank_balances = models.JSONField(default=list, blank=True)
    card_balances = models.JSONField(default=list, blank=True)

    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    entry_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    computed_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-date"]
        verbose_name = "Closing Balance Snapshot"
        verbose_name_plural = "Closing Balance Snapshots"

    def __str__(self):
        return f"Closing {self.date}: {self.total}"

    def balance_for(self, channel: Channel) -> Decimal:
        """
        Stored closing balance for one channel.

        A channel missing from the stored lists had no balance on that date.
        """
        if channel.is_cash:
            return Decimal(self.cash_balance)

        lines = self.card_balances if channel.kind == Channel.CARD else self.bank_balances
        for line in lines or []:
            if str(line.get("channel_id")) == str(channel.pk):
                return Decimal(str(line.get("balance") or "0.00"))

        return Decimal("0.00")


class DailyConfirmation(models.Model):
    """
    Advisory "books reviewed" flag for one day.

    Keyed by date (user NULL) or by (date, user) when confirmations are per user.
    Unconfirmed -> Confirmed only; there is no way back.
    """

    date = models.DateField()

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="daily_confirmations",
        help_text="Set only when confirmations are tracked per user",
    )

    confirmed = models.BooleanField(default=False)
    confirmed_at = models.DateTimeField(null=True, blank=True)

    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date"]
        constraints = [
            models.UniqueConstraint(
                fields=["date"],
                condition=models.Q(user__isnull=True),
                name="uniq_daily_confirmation_date",
            ),
            models.UniqueConstraint(
                fields=["date", "user"],
                condition=models.Q(user__isnull=False),
                name="uniq_daily_confirmation_date_user",
            ),
        ]
        verbose_name = "Daily Confirmation"
        verbose_name_plural = "Daily Confirmations"

    def __str__(self):
        state = "confirmed" if self.confirmed else "unconfirmed"
        return f"{self.date} {state}"
