# ledger/api/views/confirmation.py

"""
PATH: ledger/api/views/confirmation.py

DAILY CONFIRMATION API (advisory, never blocks posting)

GET  /api/ledger/confirmation/?date=YYYY-MM-DD
POST /api/ledger/confirmation/confirm/   (idempotent)
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import serializers, status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import CONFIRM_DAY_PERMISSION, forbidden
from ledger.api.serializers import ConfirmationStatusSerializer, ConfirmDaySerializer
from ledger.services.confirmation import confirm_day, get_confirmation_status
from ledger.services.exceptions import LedgerError


class ConfirmationStatusView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ConfirmationStatusSerializer

    @extend_schema(
        tags=["ledger"],
        parameters=[OpenApiParameter(name="date", type=str, required=False)],
        responses=ConfirmationStatusSerializer,
    )
    def get(self, request, *args, **kwargs):
        raw = request.query_params.get("date")
        day = None
        if raw:
            try:
                day = serializers.DateField().to_internal_value(raw)
            except serializers.ValidationError as exc:
                return Response({"date": exc.detail}, status=status.HTTP_400_BAD_REQUEST)

        try:
            data = get_confirmation_status(day=day, user=request.user)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ConfirmationStatusSerializer(data).data)


class ConfirmDayView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ConfirmDaySerializer

    @extend_schema(tags=["ledger"], request=ConfirmDaySerializer, responses={200: ConfirmationStatusSerializer, 403: dict})
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(CONFIRM_DAY_PERMISSION):
            return forbidden("You do not have permission to confirm the day.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        day = s.validated_data.get("date")

        row = confirm_day(user=request.user, day=day)
        data = get_confirmation_status(day=row.date, user=request.user, include_balances=False)
        return Response(ConfirmationStatusSerializer(data).data, status=status.HTTP_200_OK)
