# ledger/management/commands/verify_ledger.py

"""
Ledger integrity check:

    python manage.py verify_ledger
    python manage.py verify_ledger --from 2024-01-01 --to 2024-01-31 --strict

For every channel, walks entries in insertion order and checks
after_balance arithmetic and before/after chain continuity.
Reports problems; never fixes them.
"""

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand

from ledger.models import Channel
from ledger.services.closing_balance import verify_channel_chain
from ledger.services.exceptions import LedgerInconsistency


def _parse_date(s: str | None):
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class Command(BaseCommand):
    help = "Verify ledger before/after balance chains for every channel."

    def add_arguments(self, parser):
        parser.add_argument("--from", dest="date_from", help="Start date YYYY-MM-DD (optional)")
        parser.add_argument("--to", dest="date_to", help="End date YYYY-MM-DD (optional)")
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any inconsistency is found.",
        )

    def handle(self, *args, **options):
        date_from = _parse_date(options.get("date_from"))
        date_to = _parse_date(options.get("date_to"))
        strict = bool(options.get("strict"))

        if options.get("date_from") and not date_from:
            self.stderr.write(self.style.ERROR("Invalid --from date. Use YYYY-MM-DD"))
            return self._exit(strict)

        if options.get("date_to") and not date_to:
            self.stderr.write(self.style.ERROR("Invalid --to date. Use YYYY-MM-DD"))
            return self._exit(strict)

        self.stdout.write(self.style.MIGRATE_HEADING("Ledger chain verification"))

        errors = 0
        for channel in Channel.objects.order_by("kind", "name", "id"):
            try:
                checked = verify_channel_chain(channel, start=date_from, end=date_to)
            except LedgerInconsistency as exc:
                errors += 1
                self.stderr.write(self.style.ERROR(f"[FAIL] {channel.label}: {exc}"))
                continue

            self.stdout.write(self.style.SUCCESS(f"[OK] {channel.label}: {checked} entries"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("VERIFICATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VERIFICATION FOUND ISSUES: {errors} channel(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
