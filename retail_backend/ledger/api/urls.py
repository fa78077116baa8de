# ledger/api/urls.py

from datetime import date

from django.urls import path, register_converter

from ledger.api.views.closing_balances import (
    ClosingBalanceComputeView,
    ClosingBalanceDetailView,
    ClosingBalanceListView,
    ClosingBalancePreviewView,
)
from ledger.api.views.confirmation import ConfirmationStatusView, ConfirmDayView
from ledger.api.views.cutover import CutoverTriggerView
from ledger.api.views.entries import ChannelListView, CurrentBalanceView, LedgerEntryListCreateView
from ledger.api.views.opening_balances import (
    OpeningBalanceAddView,
    OpeningBalanceAdjustView,
    OpeningBalanceView,
)
from ledger.api.views.reports import DailyReportView
from ledger.api.views.reversals import ReversalView


class IsoDateConverter:
    regex = r"\d{4}-\d{2}-\d{2}"

    def to_python(self, value):
        return date.fromisoformat(value)

    def to_url(self, value):
        return value.isoformat()


register_converter(IsoDateConverter, "isodate")

urlpatterns = [
    # Entries + channels
    path("entries/", LedgerEntryListCreateView.as_view(), name="ledger-entries"),
    path("channels/", ChannelListView.as_view(), name="ledger-channels"),
    path("balances/current/", CurrentBalanceView.as_view(), name="ledger-current-balances"),
    # Opening balances
    path("opening-balances/", OpeningBalanceView.as_view(), name="ledger-opening-balances"),
    path("opening-balances/adjust/", OpeningBalanceAdjustView.as_view(), name="ledger-opening-balances-adjust"),
    path("opening-balances/add/", OpeningBalanceAddView.as_view(), name="ledger-opening-balances-add"),
    # Closing balances
    path("closing-balances/", ClosingBalanceListView.as_view(), name="ledger-closing-balances"),
    path("closing-balances/<isodate:day>/", ClosingBalanceDetailView.as_view(), name="ledger-closing-balance"),
    path(
        "closing-balances/<isodate:day>/compute/",
        ClosingBalanceComputeView.as_view(),
        name="ledger-closing-balance-compute",
    ),
    path(
        "closing-balances/<isodate:day>/preview/",
        ClosingBalancePreviewView.as_view(),
        name="ledger-closing-balance-preview",
    ),
    # Reversals
    path("reversals/", ReversalView.as_view(), name="ledger-reversals"),
    # Daily confirmation
    path("confirmation/", ConfirmationStatusView.as_view(), name="ledger-confirmation"),
    path("confirmation/confirm/", ConfirmDayView.as_view(), name="ledger-confirmation-confirm"),
    # Reports + cutover
    path("reports/daily/", DailyReportView.as_view(), name="ledger-daily-report"),
    path("cutover/", CutoverTriggerView.as_view(), name="ledger-cutover"),
]
