"""
======================================================
PATH: ledger/migrations/0001_initial.py
======================================================
MIGRATION: BALANCE LEDGER TABLES

- Channel (single cash row enforced by a conditional unique constraint)
- LedgerEntry (append-only, one reversal per entry)
- OpeningBalanceSnapshot / ClosingBalanceSnapshot
- DailyConfirmation (per date, or per date + user)
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Channel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        max_length=10,
                        choices=[("cash", "Cash"), ("bank", "Bank account"), ("card", "Card (legacy)")],
                    ),
                ),
                (
                    "name",
                    models.CharField(
                        max_length=120,
                        blank=True,
                        help_text="Bank name or card label (blank for cash)",
                    ),
                ),
                ("account_number", models.CharField(max_length=64, blank=True)),
                (
                    "is_active",
                    models.BooleanField(default=True, help_text="Inactive channels reject new postings"),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Channel",
                "verbose_name_plural": "Channels",
                "ordering": ["kind", "name", "id"],
            },
        ),
        migrations.AddIndex(
            model_name="channel",
            index=models.Index(fields=["kind", "is_active"], name="ledger_channel_kind_act_idx"),
        ),
        migrations.AddConstraint(
            model_name="channel",
            constraint=models.UniqueConstraint(
                fields=("kind",),
                condition=models.Q(("kind", "cash")),
                name="uniq_single_cash_channel",
            ),
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "direction",
                    models.CharField(max_length=7, choices=[("income", "Income"), ("expense", "Expense")]),
                ),
                (
                    "source",
                    models.CharField(
                        max_length=32,
                        choices=[
                            ("sale", "Sale payment"),
                            ("sale_refund", "Sale refund"),
                            ("purchase_payment", "Purchase payment"),
                            ("purchase_refund", "Purchase refund"),
                            ("expense", "Expense"),
                            ("opening_balance_addition", "Opening balance addition"),
                            ("opening_balance_deduction", "Opening balance deduction"),
                            ("manual_add", "Manual addition"),
                        ],
                    ),
                ),
                (
                    "source_document_id",
                    models.CharField(
                        max_length=64,
                        blank=True,
                        null=True,
                        help_text="Originating sale/purchase/expense/addition record",
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        max_digits=14,
                        decimal_places=2,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.01"))],
                        help_text="Positive monetary value",
                    ),
                ),
                (
                    "occurred_at",
                    models.DateTimeField(
                        help_text="When the money moved (day bucketing + chronological order)",
                    ),
                ),
                ("before_balance", models.DecimalField(max_digits=14, decimal_places=2)),
                ("after_balance", models.DecimalField(max_digits=14, decimal_places=2)),
                (
                    "rebased",
                    models.BooleanField(
                        default=False,
                        help_text="before_balance was taken from an opening balance, not the previous entry",
                    ),
                ),
                ("description", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "channel",
                    models.ForeignKey(
                        to="ledger.channel",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                    ),
                ),
                (
                    "reverses",
                    models.OneToOneField(
                        to="ledger.ledgerentry",
                        on_delete=django.db.models.deletion.PROTECT,
                        null=True,
                        blank=True,
                        related_name="reversal",
                        help_text="Payment entry this entry compensates",
                    ),
                ),
                (
                    "recorded_by",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        on_delete=django.db.models.deletion.PROTECT,
                        null=True,
                        blank=True,
                        related_name="ledger_entries",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["occurred_at", "id"],
            },
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["channel", "occurred_at"], name="ledger_entry_channel_occ_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["channel", "id"], name="ledger_entry_channel_id_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["source_document_id"], name="ledger_entry_source_doc_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["source"], name="ledger_entry_source_idx"),
        ),
        migrations.AddIndex(
            model_name="ledgerentry",
            index=models.Index(fields=["occurred_at"], name="ledger_entry_occurred_idx"),
        ),
        migrations.CreateModel(
            name="OpeningBalanceSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("balance", models.DecimalField(max_digits=14, decimal_places=2)),
                (
                    "entry_watermark",
                    models.BigIntegerField(
                        null=True,
                        blank=True,
                        help_text="Latest ledger entry id on the channel when the balance was set",
                    ),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "is_system",
                    models.BooleanField(
                        default=False,
                        help_text="Created by the daily cutover job rather than an operator",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "channel",
                    models.ForeignKey(
                        to="ledger.channel",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="opening_snapshots",
                    ),
                ),
                (
                    "recorded_by",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="opening_balance_snapshots",
                    ),
                ),
            ],
            options={
                "verbose_name": "Opening Balance Snapshot",
                "verbose_name_plural": "Opening Balance Snapshots",
                "ordering": ["-date", "channel_id"],
            },
        ),
        migrations.AddIndex(
            model_name="openingbalancesnapshot",
            index=models.Index(fields=["date"], name="ledger_opening_date_idx"),
        ),
        migrations.AddConstraint(
            model_name="openingbalancesnapshot",
            constraint=models.UniqueConstraint(
                fields=("date", "channel"),
                name="uniq_opening_snapshot_date_channel",
            ),
        ),
        migrations.CreateModel(
            name="ClosingBalanceSnapshot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(unique=True)),
                (
                    "cash_balance",
                    models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00")),
                ),
                ("bank_balances", models.JSONField(default=list, blank=True)),
                ("card_balances", models.JSONField(default=list, blank=True)),
                ("total", models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))),
                ("entry_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("computed_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Closing Balance Snapshot",
                "verbose_name_plural": "Closing Balance Snapshots",
                "ordering": ["-date"],
            },
        ),
        migrations.CreateModel(
            name="DailyConfirmation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField()),
                ("confirmed", models.BooleanField(default=False)),
                ("confirmed_at", models.DateTimeField(null=True, blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        on_delete=django.db.models.deletion.CASCADE,
                        null=True,
                        blank=True,
                        related_name="daily_confirmations",
                        help_text="Set only when confirmations are tracked per user",
                    ),
                ),
                (
                    "confirmed_by",
                    models.ForeignKey(
                        to=settings.AUTH_USER_MODEL,
                        on_delete=django.db.models.deletion.SET_NULL,
                        null=True,
                        blank=True,
                        related_name="+",
                    ),
                ),
            ],
            options={
                "verbose_name": "Daily Confirmation",
                "verbose_name_plural": "Daily Confirmations",
                "ordering": ["-date"],
            },
        ),
        migrations.AddConstraint(
            model_name="dailyconfirmation",
            constraint=models.UniqueConstraint(
                fields=("date",),
                condition=models.Q(("user__isnull", True)),
                name="uniq_daily_confirmation_date",
            ),
        ),
        migrations.AddConstraint(
            model_name="dailyconfirmation",
            constraint=models.UniqueConstraint(
                fields=("date", "user"),
                condition=models.Q(("user__isnull", False)),
                name="uniq_daily_confirmation_date_user",
            ),
        ),
    ]
