# ledger/api/views/cutover.py

"""
PATH: ledger/api/views/cutover.py

POST /api/ledger/cutover/
    Manual trigger for the daily cutover job (same code path as the
    run_daily_cutover management command). Safe to repeat.
"""

from drf_spectacular.utils import extend_schema
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import COMPUTE_CLOSING_PERMISSION, forbidden
from ledger.api.serializers import ClosingBalanceSerializer
from ledger.services.cutover import run_daily_cutover
from ledger.services.exceptions import LedgerError


class CutoverTriggerView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosingBalanceSerializer

    @extend_schema(tags=["ledger"], request=None, responses={200: dict, 403: dict, 500: dict})
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(COMPUTE_CLOSING_PERMISSION):
            return forbidden("You do not have permission to run the daily cutover.")

        try:
            result = run_daily_cutover()
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "date": result.day.isoformat(),
                "closing": ClosingBalanceSerializer(result.closing).data,
                "created_openings": [s.channel_id for s in result.created],
                "skipped_channels": result.skipped,
            }
        )
