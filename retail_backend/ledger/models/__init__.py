# ledger/models/__init__.py

"""
LEDGER MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models anywhere (models must stay pure).
"""

from ledger.models.channel import Channel
from ledger.models.ledger_entry import LedgerEntry
from ledger.models.snapshots import (
    ClosingBalanceSnapshot,
    DailyConfirmation,
    OpeningBalanceSnapshot,
)

__all__ = [
    "Channel",
    "LedgerEntry",
    "OpeningBalanceSnapshot",
    "ClosingBalanceSnapshot",
    "DailyConfirmation",
]
