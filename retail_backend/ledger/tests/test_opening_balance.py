# ledger/tests/test_opening_balance.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from ledger.models import Channel, ClosingBalanceSnapshot, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import get_cash_channel
from ledger.services.exceptions import (
    InvalidAmount,
    LookbackExceeded,
    OpeningBalanceExists,
    OpeningBalanceNotFound,
    UnknownChannel,
)
from ledger.services.opening_balance import (
    SOURCE_CLOSING,
    SOURCE_COMPUTED,
    SOURCE_EMPTY,
    SOURCE_LOOKBACK_EXCEEDED,
    SOURCE_SNAPSHOT,
    add_to_opening_balance,
    adjust_opening_balance,
    effective_opening,
    get_opening_balance,
    record_opening_balance,
    resolve_opening_balance,
)
from ledger.services.posting import post_ledger_entry
from ledger.services.utils import opening_reference

User = get_user_model()


def _at(day: date, hour: int = 10) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=dt_timezone.utc)


class OpeningBalanceResolverTests(TestCase):
    """
    GUARANTEES:
    - a snapshot for (day, channel) is authoritative
    - otherwise the previous day's closing, walking back through days
    - bounded lookback: zero, flagged when older data exists
    - resolution is pure (no writes)
    """

    def setUp(self):
        self.cash = get_cash_channel()
        self.bank = Channel.objects.create(kind=Channel.BANK, name="First Bank")

    def test_fresh_install_resolves_to_zero(self):
        result = resolve_opening_balance(day=date(2024, 3, 1), channel="cash")

        self.assertEqual(result.amount, Decimal("0.00"))
        self.assertEqual(result.source, SOURCE_EMPTY)
        self.assertFalse(result.lookback_exceeded)

    def test_snapshot_is_authoritative(self):
        OpeningBalanceSnapshot.objects.create(date=date(2024, 3, 1), channel=self.cash, balance=Decimal("75.00"))
        post_ledger_entry(channel="cash", direction="income", amount="10", source="sale", occurred_at=_at(date(2024, 2, 29)))

        result = resolve_opening_balance(day=date(2024, 3, 1), channel=self.cash)

        self.assertEqual(result.amount, Decimal("75.00"))
        self.assertEqual(result.source, SOURCE_SNAPSHOT)

    def test_previous_day_stored_closing(self):
        ClosingBalanceSnapshot.objects.create(
            date=date(2024, 2, 29),
            cash_balance=Decimal("300.00"),
            bank_balances=[{"channel_id": self.bank.pk, "balance": "120.50"}],
            total=Decimal("420.50"),
        )

        cash = resolve_opening_balance(day=date(2024, 3, 1), channel=self.cash)
        bank = resolve_opening_balance(day=date(2024, 3, 1), channel=self.bank)

        self.assertEqual(cash.amount, Decimal("300.00"))
        self.assertEqual(cash.source, SOURCE_CLOSING)
        self.assertEqual(bank.amount, Decimal("120.50"))

    def test_walks_back_through_days_without_snapshots(self):
        OpeningBalanceSnapshot.objects.create(date=date(2024, 1, 1), channel=self.cash, balance=Decimal("1000.00"))
        post_ledger_entry(channel="cash", direction="income", amount="500", source="sale", occurred_at=_at(date(2024, 1, 1)))
        post_ledger_entry(channel="cash", direction="expense", amount="50", source="expense", occurred_at=_at(date(2024, 1, 3)))

        result = resolve_opening_balance(day=date(2024, 1, 5), channel=self.cash)

        self.assertEqual(result.amount, Decimal("1450.00"))
        self.assertEqual(result.source, SOURCE_COMPUTED)
        self.assertEqual(result.source_date, date(2024, 1, 1))

    def test_epoch_sums_all_history_inside_window(self):
        post_ledger_entry(channel="cash", direction="income", amount="40", source="sale", occurred_at=_at(date(2024, 1, 2)))
        post_ledger_entry(channel="cash", direction="income", amount="2", source="sale", occurred_at=_at(date(2024, 1, 4)))

        result = resolve_opening_balance(day=date(2024, 1, 4), channel=self.cash)

        self.assertEqual(result.amount, Decimal("40.00"))
        self.assertEqual(result.source, SOURCE_COMPUTED)

    def test_lookback_exceeded_returns_flagged_zero(self):
        post_ledger_entry(channel="cash", direction="income", amount="40", source="sale", occurred_at=_at(date(2023, 1, 1)))

        result = resolve_opening_balance(day=date(2024, 1, 1), channel=self.cash, max_lookback_days=30)

        self.assertEqual(result.amount, Decimal("0.00"))
        self.assertEqual(result.source, SOURCE_LOOKBACK_EXCEEDED)
        self.assertTrue(result.lookback_exceeded)

        with self.assertRaises(LookbackExceeded):
            resolve_opening_balance(day=date(2024, 1, 1), channel=self.cash, max_lookback_days=30, strict=True)

    def test_snapshot_only_folds_entries_after_its_watermark(self):
        day = date(2024, 1, 1)
        early = post_ledger_entry(channel="cash", direction="income", amount="999", source="sale", occurred_at=_at(day, 8))
        OpeningBalanceSnapshot.objects.create(date=day, channel=self.cash, balance=Decimal("100.00"), entry_watermark=early.pk)
        post_ledger_entry(channel="cash", direction="income", amount="25", source="sale", occurred_at=_at(day, 12))

        result = resolve_opening_balance(day=date(2024, 1, 2), channel=self.cash)

        self.assertEqual(result.amount, Decimal("125.00"))

    def test_resolver_does_not_write(self):
        resolve_opening_balance(day=date(2024, 3, 1), channel=self.cash)

        self.assertEqual(OpeningBalanceSnapshot.objects.count(), 0)
        self.assertEqual(ClosingBalanceSnapshot.objects.count(), 0)


class OpeningBalanceOperatorTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="manager@example.com", password="pass", role="manager")
        self.cash = get_cash_channel()
        self.bank = Channel.objects.create(kind=Channel.BANK, name="First Bank", account_number="0099")
        self.day = date(2024, 1, 1)

    def test_record_creates_snapshots_without_entries(self):
        snapshots = record_opening_balance(
            day=self.day,
            cash_balance="1000",
            bank_balances=[{"channel": self.bank.pk, "balance": "250.00"}],
            notes="Float counted",
            user=self.user,
        )

        self.assertEqual(len(snapshots), 2)
        self.assertEqual(LedgerEntry.objects.count(), 0)
        self.assertEqual(
            OpeningBalanceSnapshot.objects.get(date=self.day, channel=self.bank).balance,
            Decimal("250.00"),
        )
        self.assertEqual(snapshots[0].recorded_by, self.user)

    def test_record_twice_for_same_day_fails(self):
        record_opening_balance(day=self.day, cash_balance="10")

        with self.assertRaises(OpeningBalanceExists):
            record_opening_balance(day=self.day, cash_balance="20")

    def test_record_rejects_negative_and_unknown_lines(self):
        with self.assertRaises(InvalidAmount):
            record_opening_balance(day=self.day, cash_balance="-1")
        with self.assertRaises(UnknownChannel):
            record_opening_balance(day=self.day, bank_balances={999999: "10"})
        with self.assertRaises(InvalidAmount):
            record_opening_balance(day=self.day)

        self.assertFalse(OpeningBalanceSnapshot.objects.exists())

    def test_adjust_posts_addition_and_deduction(self):
        record_opening_balance(
            day=self.day,
            cash_balance="1000",
            bank_balances={self.bank.pk: "500"},
        )

        entries = adjust_opening_balance(
            day=self.day,
            cash_balance="1200",
            bank_balances={self.bank.pk: "450"},
            user=self.user,
        )

        by_channel = {e.channel_id: e for e in entries}
        cash_entry = by_channel[self.cash.pk]
        bank_entry = by_channel[self.bank.pk]

        self.assertEqual(cash_entry.source, LedgerEntry.Source.OPENING_BALANCE_ADDITION)
        self.assertEqual(cash_entry.direction, LedgerEntry.INCOME)
        self.assertEqual(cash_entry.amount, Decimal("200.00"))
        self.assertEqual(cash_entry.after_balance, Decimal("1200.00"))
        self.assertEqual(cash_entry.source_document_id, opening_reference(self.day))

        self.assertEqual(bank_entry.source, LedgerEntry.Source.OPENING_BALANCE_DEDUCTION)
        self.assertEqual(bank_entry.amount, Decimal("50.00"))

        # the stored baseline is never overwritten
        snapshot = OpeningBalanceSnapshot.objects.get(date=self.day, channel=self.cash)
        self.assertEqual(snapshot.balance, Decimal("1000.00"))
        self.assertEqual(effective_opening(self.day, self.cash), Decimal("1200.00"))

    def test_adjust_same_figures_is_a_noop(self):
        record_opening_balance(day=self.day, cash_balance="1000")
        adjust_opening_balance(day=self.day, cash_balance="1100")

        again = adjust_opening_balance(day=self.day, cash_balance="1100")

        self.assertEqual(again, [])
        self.assertEqual(LedgerEntry.objects.count(), 1)

    def test_adjust_updates_notes_only(self):
        record_opening_balance(day=self.day, cash_balance="10", notes="old")

        entries = adjust_opening_balance(day=self.day, notes="recounted")

        self.assertEqual(entries, [])
        self.assertEqual(OpeningBalanceSnapshot.objects.get(date=self.day).notes, "recounted")

    def test_adjust_without_snapshot_fails(self):
        with self.assertRaises(OpeningBalanceNotFound):
            adjust_opening_balance(day=self.day, cash_balance="10")

    def test_add_to_opening_balance_posts_manual_add(self):
        entry = add_to_opening_balance(channel="cash", amount="75", user=self.user, occurred_at=_at(self.day))

        self.assertEqual(entry.source, LedgerEntry.Source.MANUAL_ADD)
        self.assertEqual(entry.direction, LedgerEntry.INCOME)
        self.assertEqual(entry.after_balance, Decimal("75.00"))
        self.assertEqual(entry.description, "Added to opening balance")

    def test_composite_opening_balance(self):
        record_opening_balance(day=self.day, cash_balance="1000", notes="Morning count")
        adjust_opening_balance(day=self.day, cash_balance="900")

        data = get_opening_balance(self.day)

        self.assertTrue(data["is_stored"])
        self.assertEqual(data["notes"], "Morning count")
        self.assertEqual(data["cash"]["balance"], Decimal("1000.00"))
        self.assertEqual(data["cash"]["adjusted_balance"], Decimal("900.00"))
        self.assertEqual(data["cash"]["source"], SOURCE_SNAPSHOT)

        bank_line = data["banks"][0]
        self.assertEqual(bank_line["channel_id"], self.bank.pk)
        self.assertEqual(bank_line["source"], SOURCE_EMPTY)
        self.assertEqual(data["total"], Decimal("900.00"))

    def test_composite_for_next_day_uses_previous_closing(self):
        record_opening_balance(day=self.day, cash_balance="100")
        post_ledger_entry(channel="cash", direction="income", amount="20", source="sale", occurred_at=_at(self.day))

        data = get_opening_balance(self.day + timedelta(days=1))

        self.assertFalse(data["is_stored"])
        self.assertEqual(data["cash"]["balance"], Decimal("120.00"))
        self.assertEqual(data["cash"]["source"], SOURCE_COMPUTED)
