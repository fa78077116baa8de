# ledger/tests/test_confirmation.py

from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from ledger.models import Channel, DailyConfirmation
from ledger.services.confirmation import confirm_day, get_confirmation_status
from ledger.services.posting import post_ledger_entry

User = get_user_model()

DAY = date(2024, 6, 3)


def _now(hour: int) -> datetime:
    return datetime(DAY.year, DAY.month, DAY.day, hour, tzinfo=dt_timezone.utc)


class DailyConfirmationGateTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="acc@example.com", password="pass", role="accountant")
        self.other = User.objects.create_user(email="mgr@example.com", password="pass", role="manager")

    def test_first_query_creates_unconfirmed_row(self):
        status = get_confirmation_status(day=DAY, user=self.user, now=_now(9), include_balances=False)

        self.assertFalse(status["confirmed"])
        self.assertIsNone(status["confirmed_at"])
        self.assertEqual(DailyConfirmation.objects.filter(date=DAY).count(), 1)

    def test_needs_confirmation_after_prompt_hour(self):
        before = get_confirmation_status(day=DAY, user=self.user, now=_now(9), include_balances=False)
        after = get_confirmation_status(day=DAY, user=self.user, now=_now(13), include_balances=False)

        self.assertFalse(before["needs_confirmation"])
        self.assertTrue(after["needs_confirmation"])

    def test_past_unconfirmed_day_needs_confirmation(self):
        status = get_confirmation_status(
            day=date(2024, 6, 1), user=self.user, now=_now(8), include_balances=False
        )
        self.assertTrue(status["needs_confirmation"])

    @override_settings(LEDGER_CONFIRMATION_PROMPT_HOUR=8)
    def test_prompt_hour_is_configurable(self):
        status = get_confirmation_status(day=DAY, user=self.user, now=_now(9), include_balances=False)
        self.assertTrue(status["needs_confirmation"])

    def test_confirm_is_one_way_and_idempotent(self):
        first = confirm_day(user=self.user, day=DAY)
        second = confirm_day(user=self.other, day=DAY)

        self.assertTrue(first.confirmed)
        self.assertEqual(second.pk, first.pk)
        self.assertEqual(second.confirmed_by, self.user)
        self.assertEqual(second.confirmed_at, first.confirmed_at)

        status = get_confirmation_status(day=DAY, user=self.user, now=_now(20), include_balances=False)
        self.assertTrue(status["confirmed"])
        self.assertFalse(status["needs_confirmation"])
        self.assertEqual(status["confirmed_by"], self.user.pk)

    def test_confirmation_is_shared_across_users_by_default(self):
        confirm_day(user=self.user, day=DAY)

        status = get_confirmation_status(day=DAY, user=self.other, now=_now(20), include_balances=False)

        self.assertTrue(status["confirmed"])
        self.assertEqual(DailyConfirmation.objects.count(), 1)

    @override_settings(LEDGER_CONFIRMATION_PER_USER=True)
    def test_confirmation_per_user(self):
        confirm_day(user=self.user, day=DAY)

        mine = get_confirmation_status(day=DAY, user=self.user, now=_now(20), include_balances=False)
        theirs = get_confirmation_status(day=DAY, user=self.other, now=_now(20), include_balances=False)

        self.assertTrue(mine["confirmed"])
        self.assertFalse(theirs["confirmed"])
        self.assertEqual(DailyConfirmation.objects.filter(date=DAY).count(), 2)

    def test_status_reports_current_balances(self):
        bank = Channel.objects.create(kind=Channel.BANK, name="First Bank")
        post_ledger_entry(channel="cash", direction="income", amount="12.50", source="sale")
        post_ledger_entry(channel=bank.pk, direction="income", amount="30", source="sale")

        status = get_confirmation_status(day=DAY, user=self.user, now=_now(9))

        self.assertEqual(status["cash_balance"], "12.50")
        self.assertEqual(status["bank_balances"][0]["channel_id"], bank.pk)
        self.assertEqual(status["bank_balances"][0]["balance"], "30.00")

    def test_confirmation_never_blocks_posting(self):
        get_confirmation_status(day=DAY, user=self.user, now=_now(23), include_balances=False)

        entry = post_ledger_entry(channel="cash", direction="income", amount="1", source="sale")

        self.assertIsNotNone(entry.pk)
