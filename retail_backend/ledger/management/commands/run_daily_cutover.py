# ledger/management/commands/run_daily_cutover.py

"""
Daily cutover, scheduled at local midnight (cron or platform scheduler):

    python manage.py run_daily_cutover
    python manage.py run_daily_cutover --date 2024-01-02

Closes the previous day and carries it into the given day's opening.
Idempotent: re-running replaces the closing and skips existing openings.
"""

from __future__ import annotations

from datetime import datetime

from django.core.management.base import BaseCommand, CommandError

from ledger.services.cutover import run_daily_cutover
from ledger.services.exceptions import LedgerError


def _parse_date(s: str | None):
    if not s:
        return None
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except ValueError:
        return None


class Command(BaseCommand):
    help = "Compute yesterday's closing balance and create today's opening balance."

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            dest="day",
            help="Day to open, YYYY-MM-DD (default: today, local time)",
        )

    def handle(self, *args, **options):
        day = _parse_date(options.get("day"))
        if options.get("day") and not day:
            raise CommandError("Invalid --date. Use YYYY-MM-DD")

        try:
            result = run_daily_cutover(today=day)
        except LedgerError as exc:
            raise CommandError(f"Cutover failed: {exc}") from exc

        closing = result.closing
        self.stdout.write(self.style.MIGRATE_HEADING("Daily cutover"))
        self.stdout.write(f"Closed {closing.date.isoformat()}: cash={closing.cash_balance} total={closing.total}")
        self.stdout.write(f"Opened {result.day.isoformat()}: {len(result.created)} snapshot(s) created")
        if result.skipped:
            self.stdout.write(f"Skipped channels: {', '.join(str(pk) for pk in result.skipped)}")
        self.stdout.write(self.style.SUCCESS("[OK] Cutover complete"))
