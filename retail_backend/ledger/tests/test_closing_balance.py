# ledger/tests/test_closing_balance.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase

from ledger.models import Channel, ClosingBalanceSnapshot, LedgerEntry, OpeningBalanceSnapshot
from ledger.services.channels import get_cash_channel
from ledger.services.closing_balance import (
    compute_closing,
    get_closing_balance,
    list_closing_balances,
    preview_closing,
    verify_channel_chain,
)
from ledger.services.exceptions import LedgerInconsistency
from ledger.services.opening_balance import SOURCE_CLOSING, record_opening_balance, resolve_opening_balance
from ledger.services.posting import post_ledger_entry
from ledger.services.reversal import reverse_document


def _at(day: date, hour: int = 10) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=dt_timezone.utc)


class DailyReconciliationScenarioTests(TestCase):
    """
    Opening 1000 cash, sale +500, expense -200, sale cancelled.
    Closing must be 800 and carry into the next day's opening.
    """

    def test_full_day_reconciles(self):
        day = date(2024, 1, 1)
        record_opening_balance(day=day, cash_balance="1000")

        sale = post_ledger_entry(
            channel="cash",
            direction="income",
            amount="500",
            source="sale",
            source_document_id="SALE-1",
            occurred_at=_at(day, 9),
        )
        expense = post_ledger_entry(
            channel="cash",
            direction="expense",
            amount="200",
            source="expense",
            source_document_id="EXP-1",
            occurred_at=_at(day, 11),
        )

        self.assertEqual(sale.before_balance, Decimal("1000.00"))
        self.assertEqual(sale.after_balance, Decimal("1500.00"))
        self.assertEqual(expense.after_balance, Decimal("1300.00"))

        result = reverse_document(source_document_id="SALE-1", cancelled_at=_at(day, 15))

        self.assertFalse(result.is_partial)
        self.assertEqual(len(result.entries), 1)
        refund = result.entries[0]
        self.assertEqual(refund.source, LedgerEntry.Source.SALE_REFUND)
        self.assertEqual(refund.direction, LedgerEntry.EXPENSE)
        self.assertEqual(refund.after_balance, Decimal("800.00"))

        closing = compute_closing(day)

        self.assertEqual(closing.cash_balance, Decimal("800.00"))
        self.assertEqual(closing.total, Decimal("800.00"))
        self.assertEqual(closing.entry_count, 3)

        opening = resolve_opening_balance(day=day + timedelta(days=1), channel="cash")
        self.assertEqual(opening.amount, Decimal("800.00"))
        self.assertEqual(opening.source, SOURCE_CLOSING)


class ClosingBalanceCalculatorTests(TestCase):
    def setUp(self):
        self.cash = get_cash_channel()
        self.bank = Channel.objects.create(kind=Channel.BANK, name="First Bank", account_number="0012")
        self.day = date(2024, 2, 10)

    def _post(self, channel, direction, amount, *, hour=10, day=None, source=None):
        return post_ledger_entry(
            channel=channel,
            direction=direction,
            amount=amount,
            source=source or ("sale" if direction == "income" else "expense"),
            occurred_at=_at(day or self.day, hour),
        )

    def test_closing_with_no_entries_equals_opening(self):
        record_opening_balance(day=self.day, cash_balance="50", bank_balances={self.bank.pk: "70"})

        closing = preview_closing(self.day)

        self.assertEqual(closing.cash_balance, Decimal("50.00"))
        self.assertEqual(closing.bank_balances[0]["balance"], "70.00")
        self.assertEqual(closing.total, Decimal("120.00"))
        self.assertEqual(closing.entry_count, 0)

    def test_per_channel_lines(self):
        self._post("cash", "income", "100")
        self._post(self.bank.pk, "income", "300")
        self._post(self.bank.pk, "expense", "45.50")

        closing = preview_closing(self.day)
        line = closing.bank_balances[0]

        self.assertEqual(line["channel_id"], self.bank.pk)
        self.assertEqual(line["name"], "First Bank (0012)")
        self.assertEqual(line["income"], "300.00")
        self.assertEqual(line["expense"], "45.50")
        self.assertEqual(line["balance"], "254.50")
        self.assertEqual(closing.total, Decimal("354.50"))

    def test_preview_does_not_persist(self):
        self._post("cash", "income", "10")

        preview = preview_closing(self.day)

        self.assertIsNone(preview.pk)
        self.assertFalse(ClosingBalanceSnapshot.objects.exists())

    def test_compute_replaces_previous_snapshot(self):
        self._post("cash", "income", "10")
        compute_closing(self.day)

        self._post("cash", "income", "5", hour=18)
        closing = compute_closing(self.day)

        self.assertEqual(ClosingBalanceSnapshot.objects.filter(date=self.day).count(), 1)
        self.assertEqual(closing.cash_balance, Decimal("15.00"))

    def test_backdated_entry_changes_recomputed_closing(self):
        self._post("cash", "income", "10")
        first = compute_closing(self.day)

        self._post("cash", "income", "7", day=self.day - timedelta(days=1))
        second = compute_closing(self.day)

        self.assertEqual(first.cash_balance, Decimal("10.00"))
        self.assertEqual(second.cash_balance, Decimal("17.00"))

    def test_get_closing_balance_computes_once_then_reads(self):
        self._post("cash", "income", "10")

        stored = get_closing_balance(self.day)
        self._post("cash", "income", "5", hour=18)
        again = get_closing_balance(self.day)

        self.assertEqual(stored.pk, again.pk)
        self.assertEqual(again.cash_balance, Decimal("10.00"))

    def test_list_closing_balances_in_range(self):
        for offset in range(3):
            compute_closing(self.day + timedelta(days=offset))

        rows = list(list_closing_balances(self.day, self.day + timedelta(days=1)))

        self.assertEqual([r.date for r in rows], [self.day, self.day + timedelta(days=1)])

    def test_entries_before_a_later_snapshot_are_superseded(self):
        early = self._post("cash", "income", "999", hour=8)
        OpeningBalanceSnapshot.objects.create(
            date=self.day,
            channel=self.cash,
            balance=Decimal("100.00"),
            entry_watermark=early.pk,
        )
        self._post("cash", "expense", "40", hour=12)

        closing = preview_closing(self.day)

        self.assertEqual(closing.cash_balance, Decimal("60.00"))
        self.assertEqual(closing.entry_count, 1)

    def test_inactive_channel_with_entries_is_still_closed(self):
        self._post(self.bank.pk, "income", "30")
        self.bank.is_active = False
        self.bank.save()

        closing = preview_closing(self.day)

        self.assertEqual([line["channel_id"] for line in closing.bank_balances], [self.bank.pk])

    def test_inactive_channel_balance_carries_through_closings(self):
        self._post(self.bank.pk, "income", "500")
        compute_closing(self.day)

        self.bank.is_active = False
        self.bank.save()
        next_day = self.day + timedelta(days=1)
        closing = compute_closing(next_day)

        self.assertEqual(closing.balance_for(self.bank), Decimal("500.00"))

        self.bank.is_active = True
        self.bank.save()
        opening = resolve_opening_balance(day=next_day + timedelta(days=1), channel=self.bank)

        self.assertEqual(opening.amount, Decimal("500.00"))
        self.assertEqual(opening.source, SOURCE_CLOSING)


class LedgerConsistencyTests(TestCase):
    def setUp(self):
        self.cash = get_cash_channel()
        self.day = date(2024, 2, 10)
        self.first = post_ledger_entry(
            channel="cash", direction="income", amount="100", source="sale", occurred_at=_at(self.day, 9)
        )
        self.second = post_ledger_entry(
            channel="cash", direction="expense", amount="30", source="expense", occurred_at=_at(self.day, 10)
        )

    def test_clean_chain_verifies(self):
        self.assertEqual(verify_channel_chain(self.cash), 2)
        self.assertEqual(verify_channel_chain("cash", start=self.day, end=self.day), 2)

    def test_tampered_after_balance_is_detected(self):
        # bypasses model save() on purpose
        LedgerEntry.objects.filter(pk=self.second.pk).update(after_balance=Decimal("75.00"))

        with self.assertRaises(LedgerInconsistency) as ctx:
            compute_closing(self.day)

        self.assertEqual(ctx.exception.entry_id, self.second.pk)
        self.assertEqual(ctx.exception.channel_id, self.cash.pk)
        self.assertEqual(ctx.exception.stored, Decimal("75.00"))
        self.assertFalse(ClosingBalanceSnapshot.objects.exists())

    def test_broken_link_is_detected(self):
        LedgerEntry.objects.filter(pk=self.second.pk).update(
            before_balance=Decimal("90.00"),
            after_balance=Decimal("60.00"),
        )

        with self.assertRaises(LedgerInconsistency) as ctx:
            verify_channel_chain(self.cash)

        self.assertEqual(ctx.exception.expected, Decimal("100.00"))
        self.assertEqual(ctx.exception.as_dict()["stored"], "90.00")

    def test_range_check_links_to_entry_before_the_range(self):
        next_day = self.day + timedelta(days=1)
        third = post_ledger_entry(
            channel="cash", direction="income", amount="5", source="sale", occurred_at=_at(next_day)
        )
        LedgerEntry.objects.filter(pk=third.pk).update(
            before_balance=Decimal("0.00"),
            after_balance=Decimal("5.00"),
        )

        with self.assertRaises(LedgerInconsistency):
            verify_channel_chain(self.cash, start=next_day, end=next_day)
