# ledger/api/serializers/__init__.py

from ledger.api.serializers.balances import (
    ClosingBalanceSerializer,
    DateRangeQuerySerializer,
    OpeningBalanceAddSerializer,
    OpeningBalanceAdjustSerializer,
    OpeningBalanceCreateSerializer,
    OpeningBalanceSerializer,
)
from ledger.api.serializers.confirmation import (
    ConfirmationStatusSerializer,
    ConfirmDaySerializer,
)
from ledger.api.serializers.entries import (
    ChannelSerializer,
    CurrentBalanceSerializer,
    LedgerEntryCreateSerializer,
    LedgerEntrySerializer,
    ReversalRequestSerializer,
    ReversalResultSerializer,
)

__all__ = [
    "ChannelSerializer",
    "LedgerEntrySerializer",
    "LedgerEntryCreateSerializer",
    "CurrentBalanceSerializer",
    "ReversalRequestSerializer",
    "ReversalResultSerializer",
    "OpeningBalanceCreateSerializer",
    "OpeningBalanceAdjustSerializer",
    "OpeningBalanceAddSerializer",
    "OpeningBalanceSerializer",
    "ClosingBalanceSerializer",
    "DateRangeQuerySerializer",
    "ConfirmationStatusSerializer",
    "ConfirmDaySerializer",
]
