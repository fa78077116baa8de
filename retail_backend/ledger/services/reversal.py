# ledger/services/reversal.py

"""
======================================================
PATH: ledger/services/reversal.py
======================================================
REVERSAL HANDLER

Cancelled sale / purchase -> compensating entries, never deletes.

Rules:
- Only payment entries (sale, purchase_payment) of the document are reversed
- Each compensating entry: opposite direction, same amount, same channel,
  refund source (sale_refund / purchase_refund), occurred_at = cancellation time
- Split payments: each channel portion is posted independently
- One channel failing does not stop the others -> PartialReversal result
- Nothing left to reverse -> AlreadyReversed (no new entries)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ledger.models import LedgerEntry
from ledger.services.channels import resolve_channel
from ledger.services.exceptions import AlreadyReversed, LedgerError
from ledger.services.posting import PAYMENT_SOURCES, REFUND_SOURCE_FOR, post_ledger_entry
from ledger.services.utils import as_aware_dt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReversalFailure:
    entry_id: int
    channel_id: int
    error: str
    error_type: str


@dataclass
class ReversalResult:
    """
    Structured outcome of reverse_document().

    Returned (never raised), so callers can retry only failed channels.
    """

    source_document_id: str
    entries: list[LedgerEntry] = field(default_factory=list)
    failures: list[ReversalFailure] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)


class PartialReversal(ReversalResult):
    """Some channels reversed, some failed (see .failures)."""


def _payment_entries(source_document_id: str, channel=None):
    qs = LedgerEntry.objects.filter(
        source_document_id=source_document_id,
        source__in=list(PAYMENT_SOURCES),
    ).select_related("channel")

    if channel is not None:
        ch = resolve_channel(channel, active_only=False)
        qs = qs.filter(channel=ch)

    return list(qs.order_by("id"))


def reverse_document(
    *,
    source_document_id: str,
    channel=None,
    cancelled_at: datetime | None = None,
    recorded_by=None,
    reason: str = "",
) -> ReversalResult:
    """
    Post compensating entries for every unreversed payment of a document.

    Args:
        channel: optional hint restricting the reversal to one channel.

    Raises:
        AlreadyReversed when the document's payments are all reversed.
    """
    doc_id = str(source_document_id or "").strip()
    if not doc_id:
        raise LedgerError("source_document_id is required")

    payments = _payment_entries(doc_id, channel)
    if not payments:
        logger.info("Nothing to reverse", extra={"source_document_id": doc_id})
        return ReversalResult(source_document_id=doc_id)

    reversed_ids = set(
        LedgerEntry.objects.filter(reverses__in=payments).values_list("reverses_id", flat=True)
    )
    pending = [p for p in payments if p.pk not in reversed_ids]
    if not pending:
        raise AlreadyReversed(f"Document {doc_id} is already reversed")

    when = as_aware_dt(cancelled_at)
    entries: list[LedgerEntry] = []
    failures: list[ReversalFailure] = []

    for payment in pending:
        direction = (
            LedgerEntry.EXPENSE if payment.direction == LedgerEntry.INCOME else LedgerEntry.INCOME
        )
        try:
            entry = post_ledger_entry(
                channel=payment.channel,
                direction=direction,
                amount=payment.amount,
                source=REFUND_SOURCE_FOR[payment.source],
                source_document_id=doc_id,
                occurred_at=when,
                recorded_by=recorded_by,
                description=reason or f"Reversal of {payment.get_source_display().lower()} {doc_id}",
                reverses=payment,
            )
        except LedgerError as exc:
            logger.warning(
                "Channel reversal failed",
                extra={
                    "source_document_id": doc_id,
                    "entry_id": payment.pk,
                    "channel_id": payment.channel_id,
                    "error": str(exc),
                },
            )
            failures.append(
                ReversalFailure(
                    entry_id=payment.pk,
                    channel_id=payment.channel_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            )
            continue

        entries.append(entry)

    result_cls = PartialReversal if failures else ReversalResult
    result = result_cls(source_document_id=doc_id, entries=entries, failures=failures)

    logger.info(
        "Document reversed",
        extra={
            "source_document_id": doc_id,
            "reversed": [e.id for e in entries],
            "failed": [f.entry_id for f in failures],
        },
    )
    return result
