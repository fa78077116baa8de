# ledger/api/views/reports.py

"""
PATH: ledger/api/views/reports.py

GET /api/ledger/reports/daily/?start_date=&end_date=&channel=&exclude_refunds=
    Grouped-by-day cash / per-bank income, expense, net.
    Labels come from ledger.api.labels (presentation boundary).
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import VIEW_LEDGER_PERMISSION, forbidden
from ledger.api.serializers import DateRangeQuerySerializer, LedgerEntrySerializer
from ledger.services.exceptions import LedgerError
from ledger.services.queries import entries_grouped_by_day


def _flag(raw) -> bool:
    return (raw or "").strip().lower() in ("1", "true", "yes")


def _totals(t: dict) -> dict:
    return {k: str(v) for k, v in t.items()}


class DailyReportView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = DateRangeQuerySerializer

    @extend_schema(
        tags=["ledger"],
        parameters=[
            OpenApiParameter(name="start_date", type=str, required=True),
            OpenApiParameter(name="end_date", type=str, required=True),
            OpenApiParameter(name="channel", type=str, required=False, description='Channel id or "cash"'),
            OpenApiParameter(name="exclude_refunds", type=bool, required=False),
        ],
        responses=dict,
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_LEDGER_PERMISSION):
            return forbidden("You do not have permission to view ledger reports.")

        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        try:
            report = entries_grouped_by_day(
                start=q.validated_data["start_date"],
                end=q.validated_data["end_date"],
                channel=request.query_params.get("channel") or None,
                exclude_refunds=_flag(request.query_params.get("exclude_refunds")),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        days = []
        for row in report["days"]:
            days.append(
                {
                    "date": row["date"].isoformat(),
                    "cash": _totals(row["cash"]),
                    "banks": [
                        {
                            **{k: v for k, v in line.items() if k not in ("income", "expense", "net")},
                            **_totals({k: line[k] for k in ("income", "expense", "net")}),
                        }
                        for line in row["banks"]
                    ],
                    "totals": _totals(row["totals"]),
                    "entries": LedgerEntrySerializer(row["entries"], many=True).data,
                }
            )

        return Response(
            {
                "start_date": report["start"].isoformat(),
                "end_date": report["end"].isoformat(),
                "days": days,
                "totals": {k: _totals(v) for k, v in report["totals"].items()},
            }
        )
