# ledger/api/labels.py

"""
SOURCE -> OPERATOR LABEL MAPPING (presentation boundary)

The ledger core only knows the closed `source` enumeration.
Human-readable descriptions are produced here and nowhere else.
"""

from __future__ import annotations

from ledger.models import LedgerEntry

Source = LedgerEntry.Source

SOURCE_LABELS = {
    Source.SALE.value: {
        LedgerEntry.INCOME: "Sale payment received",
        LedgerEntry.EXPENSE: "Sale payment returned",
    },
    Source.SALE_REFUND.value: {
        LedgerEntry.INCOME: "Sale refund reversed",
        LedgerEntry.EXPENSE: "Sale refund / cancellation",
    },
    Source.PURCHASE_PAYMENT.value: {
        LedgerEntry.INCOME: "Purchase payment received back",
        LedgerEntry.EXPENSE: "Purchase payment to supplier",
    },
    Source.PURCHASE_REFUND.value: {
        LedgerEntry.INCOME: "Purchase refund / cancellation",
        LedgerEntry.EXPENSE: "Purchase refund reversed",
    },
    Source.EXPENSE.value: {
        LedgerEntry.INCOME: "Expense reimbursed",
        LedgerEntry.EXPENSE: "Expense paid",
    },
    Source.OPENING_BALANCE_ADDITION.value: {
        LedgerEntry.INCOME: "Opening balance increased",
        LedgerEntry.EXPENSE: "Opening balance increased",
    },
    Source.OPENING_BALANCE_DEDUCTION.value: {
        LedgerEntry.INCOME: "Opening balance reduced",
        LedgerEntry.EXPENSE: "Opening balance reduced",
    },
    Source.MANUAL_ADD.value: {
        LedgerEntry.INCOME: "Added to balance",
        LedgerEntry.EXPENSE: "Removed from balance",
    },
}


def source_label(source: str, direction: str) -> str:
    by_direction = SOURCE_LABELS.get(source)
    if not by_direction:
        return str(source or "").replace("_", " ").capitalize()
    return by_direction.get(direction) or next(iter(by_direction.values()))


def entry_label(entry: LedgerEntry) -> str:
    label = source_label(entry.source, entry.direction)
    if entry.source_document_id and not entry.source_document_id.startswith("opening:"):
        return f"{label} ({entry.source_document_id})"
    return label
