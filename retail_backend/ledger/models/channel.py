# ledger/models/channel.py

"""
======================================================
PATH: ledger/models/channel.py
======================================================
CHANNEL MODEL

A channel is a place where money lives:
- the single CASH drawer
- one row per BANK account
- legacy CARD settlement lines

Rules:
- Exactly one cash channel may exist (conditional unique constraint)
- Channels are referenced by id; the ledger never creates bank/card rows
- Deactivating a channel makes it unknown to the Balance Poster
- The channel row doubles as the per-channel lock row for posting
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Channel(models.Model):
    CASH = "cash"
    BANK = "bank"
    CARD = "card"

    KINDS = [
        (CASH, "Cash"),
        (BANK, "Bank account"),
        (CARD, "Card (legacy)"),
    ]

    kind = models.CharField(max_length=10, choices=KINDS)

    name = models.CharField(
        max_length=120,
        blank=True,
        help_text="Bank name or card label (blank for cash)",
    )

    account_number = models.CharField(max_length=64, blank=True)

    is_active = models.BooleanField(
        default=True,
        help_text="Inactive channels reject new postings",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["kind", "name", "id"]
        indexes = [
            models.Index(fields=["kind", "is_active"], name="ledger_channel_kind_act_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["kind"],
                condition=Q(kind="cash"),
                name="uniq_single_cash_channel",
            )
        ]
        verbose_name = "Channel"
        verbose_name_plural = "Channels"

    def __str__(self):
        return self.label

    @property
    def is_cash(self) -> bool:
        return self.kind == self.CASH

    @property
    def label(self) -> str:
        if self.is_cash:
            return "Cash"
        if self.account_number:
            return f"{self.name} ({self.account_number})"
        return self.name or f"{self.get_kind_display()} #{self.pk}"

    def clean(self):
        if self.kind not in (self.CASH, self.BANK, self.CARD):
            raise ValidationError({"kind": "Invalid channel kind"})

        self.name = (self.name or "").strip()
        self.account_number = (self.account_number or "").strip()

        if self.kind != self.CASH and not self.name:
            raise ValidationError({"name": "Bank and card channels require a name"})
