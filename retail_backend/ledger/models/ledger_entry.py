# ledger/models/ledger_entry.py

"""
======================================================
PATH: ledger/models/ledger_entry.py
======================================================
LEDGER ENTRY MODEL

One balance-affecting event on one channel.

Guarantees:
- Immutable once created (no updates, no deletes)
- Amount is always positive; direction is income or expense
- before_balance / after_balance are captured by the Balance Poster
  under the channel lock and must satisfy the direction arithmetic
- occurred_at buckets the entry into a local day; id is the insertion sequence
- A reversal points at the entry it compensates (one reversal per entry)
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from ledger.models.channel import Channel


class LedgerEntry(models.Model):
    INCOME = "income"
    EXPENSE = "expense"

    DIRECTIONS = [
        (INCOME, "Income"),
        (EXPENSE, "Expense"),
    ]

    class Source(models.TextChoices):
        SALE = "sale", "Sale payment"
        SALE_REFUND = "sale_refund", "Sale refund"
        PURCHASE_PAYMENT = "purchase_payment", "Purchase payment"
        PURCHASE_REFUND = "purchase_refund", "Purchase refund"
        EXPENSE = "expense", "Expense"
        OPENING_BALANCE_ADDITION = "opening_balance_addition", "Opening balance addition"
        OPENING_BALANCE_DEDUCTION = "opening_balance_deduction", "Opening balance deduction"
        MANUAL_ADD = "manual_add", "Manual addition"

    channel = models.ForeignKey(
        Channel,
        on_delete=models.PROTECT,
        related_name="entries",
    )

    direction = models.CharField(max_length=7, choices=DIRECTIONS)

    source = models.CharField(max_length=32, choices=Source.choices)

    source_document_id = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        help_text="Originating sale/purchase/expense/addition record",
    )

    amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Positive monetary value",
    )

    occurred_at = models.DateTimeField(
        help_text="When the money moved (day bucketing + chronological order)",
    )

    before_balance = models.DecimalField(max_digits=14, decimal_places=2)
    after_balance = models.DecimalField(max_digits=14, decimal_places=2)

    rebased = models.BooleanField(
        default=False,
        help_text="before_balance was taken from an opening balance, not the previous entry",
    )

    reverses = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reversal",
        help_text="Payment entry this entry compensates",
    )

    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )

    description = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        ordering = ["occurred_at", "id"]
        indexes = [
            models.Index(fields=["channel", "occurred_at"], name="ledger_entry_channel_occ_idx"),
            models.Index(fields=["channel", "id"], name="ledger_entry_channel_id_idx"),
            models.Index(fields=["source_document_id"], name="ledger_entry_source_doc_idx"),
            models.Index(fields=["source"], name="ledger_entry_source_idx"),
            models.Index(fields=["occurred_at"], name="ledger_entry_occurred_idx"),
        ]

    def __str__(self):
        sign = "+" if self.direction == self.INCOME else "-"
        return f"{sign}{self.amount} {self.source} → {self.channel}"

    @property
    def signed_amount(self) -> Decimal:
        if self.direction == self.INCOME:
            return self.amount
        return -self.amount

    def expected_after_balance(self) -> Decimal:
        return (self.before_balance + self.signed_amount).quantize(Decimal("0.01"))

    def clean(self):
        if self.direction not in (self.INCOME, self.EXPENSE):
            raise ValidationError("Invalid direction")

        if self.source not in self.Source.values:
            raise ValidationError(f"Invalid source: {self.source!r}")

        if self.amount is None or self.amount <= 0:
            raise ValidationError("Ledger amount must be > 0")

        if self.before_balance is None or self.after_balance is None:
            raise ValidationError("before_balance and after_balance are required")

        if self.after_balance != self.expected_after_balance():
            raise ValidationError(
                f"after_balance {self.after_balance} does not follow from "
                f"before_balance {self.before_balance} {self.direction} {self.amount}"
            )

        if self.source_document_id is not None:
            self.source_document_id = str(self.source_document_id).strip() or None

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("LedgerEntry records are immutable and cannot be modified")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("LedgerEntry records are immutable and cannot be deleted")
