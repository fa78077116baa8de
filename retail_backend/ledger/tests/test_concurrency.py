# ledger/tests/test_concurrency.py

from __future__ import annotations

import threading
from decimal import Decimal

from django.db import connections
from django.test import TransactionTestCase

from ledger.models import LedgerEntry
from ledger.services.channels import get_cash_channel
from ledger.services.closing_balance import verify_channel_chain
from ledger.services.exceptions import ConcurrentModification
from ledger.services.locking import channel_lock
from ledger.services.posting import post_ledger_entry


class ConcurrentPostingTests(TransactionTestCase):
    """
    Posts to one channel from several threads must serialize:
    no two entries share a before_balance and the chain stays intact.
    """

    def test_parallel_posts_do_not_lose_updates(self):
        cash = get_cash_channel()
        workers = 8
        errors = []
        start = threading.Barrier(workers)

        def worker():
            try:
                start.wait()
                post_ledger_entry(channel=cash, direction="income", amount="10", source="sale")
            except Exception as exc:  # surfaced through the assertion below
                errors.append(exc)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])

        entries = list(LedgerEntry.objects.filter(channel=cash).order_by("id"))
        self.assertEqual(len(entries), workers)
        self.assertEqual(len({e.before_balance for e in entries}), workers)
        self.assertEqual(entries[-1].after_balance, Decimal("80.00"))
        self.assertEqual(verify_channel_chain(cash), workers)

    def test_lock_wait_is_bounded(self):
        cash = get_cash_channel()
        holding = threading.Event()
        release = threading.Event()
        outcome = {}

        def holder():
            try:
                with channel_lock(cash.pk):
                    holding.set()
                    release.wait(5)
            finally:
                connections.close_all()

        def contender():
            try:
                post_ledger_entry(channel=cash, direction="income", amount="1", source="sale")
            except ConcurrentModification as exc:
                outcome["error"] = exc
            finally:
                connections.close_all()

        t_holder = threading.Thread(target=holder)
        t_holder.start()
        self.assertTrue(holding.wait(5))

        with self.settings(LEDGER_LOCK_TIMEOUT_SECONDS=0.1):
            t_contender = threading.Thread(target=contender)
            t_contender.start()
            t_contender.join()

        release.set()
        t_holder.join()

        self.assertIsInstance(outcome.get("error"), ConcurrentModification)
        self.assertFalse(LedgerEntry.objects.exists())
