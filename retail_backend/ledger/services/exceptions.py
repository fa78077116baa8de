# ledger/services/exceptions.py

"""
LEDGER SERVICE ERRORS

Centralized domain errors for the balance ledger.

Caller errors (surface immediately, never retry):
- InvalidAmount, UnknownChannel, AlreadyReversed, InsufficientBalance,
  OpeningBalanceExists, OpeningBalanceNotFound

Retryable at the business-operation level:
- ConcurrentModification

Hard failure (manual investigation, never auto-corrected):
- LedgerInconsistency
"""


class LedgerError(Exception):
    """Base exception for all ledger service failures."""


class InvalidAmount(LedgerError):
    """Raised when an amount is missing, malformed or not positive."""


class UnknownChannel(LedgerError):
    """Raised when a channel reference does not exist or is inactive."""


class ConcurrentModification(LedgerError):
    """Raised when the per-channel lock cannot be acquired in time."""


class LedgerInconsistency(LedgerError):
    """
    Raised when a recomputed balance does not match a stored after_balance.
    """

    def __init__(self, message: str, *, channel_id=None, entry_id=None, expected=None, stored=None):
        super().__init__(message)
        self.channel_id = channel_id
        self.entry_id = entry_id
        self.expected = expected
        self.stored = stored

    def as_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "entry_id": self.entry_id,
            "expected": None if self.expected is None else str(self.expected),
            "stored": None if self.stored is None else str(self.stored),
        }


class AlreadyReversed(LedgerError):
    """Raised on a double-reversal attempt."""


class LookbackExceeded(LedgerError):
    """Raised by strict opening resolution when the lookback bound is hit."""


class InsufficientBalance(LedgerError):
    """Raised when an expense would overdraw a channel (negative balances disabled)."""


class OpeningBalanceExists(LedgerError):
    """Raised when an opening balance is already recorded for the date."""


class OpeningBalanceNotFound(LedgerError):
    """Raised when an opening balance edit targets a date with no snapshot."""
