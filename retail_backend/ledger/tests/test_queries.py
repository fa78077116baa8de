# ledger/tests/test_queries.py

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase, override_settings

from ledger.models import Channel
from ledger.services.exceptions import LedgerError
from ledger.services.posting import post_ledger_entry
from ledger.services.queries import entries_grouped_by_day, query_entries
from ledger.services.reversal import reverse_document


def _at(day: date, hour: int = 10, minute: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=dt_timezone.utc)


class QueryEntriesTests(TestCase):
    def setUp(self):
        self.bank = Channel.objects.create(kind=Channel.BANK, name="First Bank")
        self.d1 = date(2024, 7, 1)
        self.d2 = date(2024, 7, 2)

        self.late = post_ledger_entry(channel="cash", direction="income", amount="10", source="sale", occurred_at=_at(self.d1, 15))
        self.early = post_ledger_entry(channel="cash", direction="expense", amount="3", source="expense", occurred_at=_at(self.d1, 8))
        self.bank_sale = post_ledger_entry(channel=self.bank.pk, direction="income", amount="20", source="sale", occurred_at=_at(self.d2))

    def test_ordered_by_occurrence_then_id(self):
        ids = list(query_entries(start=self.d1, end=self.d2).values_list("id", flat=True))
        self.assertEqual(ids, [self.early.pk, self.late.pk, self.bank_sale.pk])

    def test_date_range_is_inclusive_of_whole_days(self):
        ids = list(query_entries(start=self.d2, end=self.d2).values_list("id", flat=True))
        self.assertEqual(ids, [self.bank_sale.pk])

    def test_channel_and_source_filters(self):
        cash_only = query_entries(start=self.d1, end=self.d2, channel="cash")
        sales = query_entries(start=self.d1, end=self.d2, source="sale")

        self.assertEqual(cash_only.count(), 2)
        self.assertEqual(set(sales.values_list("id", flat=True)), {self.late.pk, self.bank_sale.pk})

    def test_invalid_range_or_source(self):
        with self.assertRaises(LedgerError):
            query_entries(start=self.d2, end=self.d1)
        with self.assertRaises(LedgerError):
            query_entries(start=self.d1, end=self.d2, source="gift")

    def test_exclude_refunds(self):
        post_ledger_entry(
            channel="cash", direction="income", amount="50", source="sale",
            source_document_id="SALE-77", occurred_at=_at(self.d1, 11),
        )
        reverse_document(source_document_id="SALE-77", cancelled_at=_at(self.d1, 12))

        everything = query_entries(start=self.d1, end=self.d1)
        no_refunds = query_entries(start=self.d1, end=self.d1, exclude_refunds=True)

        self.assertEqual(everything.filter(source="sale_refund").count(), 1)
        self.assertFalse(no_refunds.filter(source="sale_refund").exists())
        self.assertEqual(no_refunds.count(), 3)

        report = entries_grouped_by_day(start=self.d1, end=self.d1, exclude_refunds=True)
        self.assertEqual(report["days"][0]["cash"]["expense"], Decimal("3.00"))
        self.assertEqual(report["days"][0]["cash"]["income"], Decimal("60.00"))

    def test_grouped_by_day(self):
        report = entries_grouped_by_day(start=self.d1, end=date(2024, 7, 3))

        self.assertEqual([d["date"] for d in report["days"]], [self.d1, self.d2, date(2024, 7, 3)])

        first = report["days"][0]
        self.assertEqual(first["cash"], {"income": Decimal("10.00"), "expense": Decimal("3.00"), "net": Decimal("7.00")})
        self.assertEqual(first["banks"], [])
        self.assertEqual([e.pk for e in first["entries"]], [self.early.pk, self.late.pk])

        second = report["days"][1]
        self.assertEqual(second["banks"][0]["channel_id"], self.bank.pk)
        self.assertEqual(second["banks"][0]["income"], Decimal("20.00"))

        empty = report["days"][2]
        self.assertEqual(empty["totals"]["net"], Decimal("0.00"))
        self.assertEqual(empty["entries"], [])

        self.assertEqual(report["totals"]["cash"]["net"], Decimal("7.00"))
        self.assertEqual(report["totals"]["banks"]["net"], Decimal("20.00"))
        self.assertEqual(report["totals"]["overall"]["income"], Decimal("30.00"))


@override_settings(TIME_ZONE="Africa/Lagos")
class LocalDayBucketingTests(TestCase):
    def test_entry_late_utc_belongs_to_next_local_day(self):
        # 23:30 UTC is 00:30 the next day in Lagos (UTC+1)
        entry = post_ledger_entry(
            channel="cash",
            direction="income",
            amount="5",
            source="sale",
            occurred_at=_at(date(2024, 7, 1), 23, 30),
        )

        report = entries_grouped_by_day(start=date(2024, 7, 1), end=date(2024, 7, 2))

        self.assertEqual(report["days"][0]["entries"], [])
        self.assertEqual([e.pk for e in report["days"][1]["entries"]], [entry.pk])
