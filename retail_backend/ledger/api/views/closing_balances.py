# ledger/api/views/closing_balances.py

"""
PATH: ledger/api/views/closing_balances.py

CLOSING BALANCES API

GET  /api/ledger/closing-balances/?start_date=&end_date=   stored snapshots in range
GET  /api/ledger/closing-balances/<date>/                  stored, computed on first request
POST /api/ledger/closing-balances/<date>/compute/          recompute + replace (idempotent)
GET  /api/ledger/closing-balances/<date>/preview/          pure calculation, nothing stored
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import (
    COMPUTE_CLOSING_PERMISSION,
    VIEW_CLOSING_PERMISSION,
    forbidden,
)
from ledger.api.serializers import ClosingBalanceSerializer, DateRangeQuerySerializer
from ledger.services.closing_balance import (
    compute_closing,
    get_closing_balance,
    list_closing_balances,
    preview_closing,
)
from ledger.services.exceptions import LedgerError


class ClosingBalanceListView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosingBalanceSerializer

    @extend_schema(
        tags=["ledger"],
        parameters=[
            OpenApiParameter(name="start_date", type=str, required=True),
            OpenApiParameter(name="end_date", type=str, required=True),
        ],
        responses=ClosingBalanceSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_CLOSING_PERMISSION):
            return forbidden("You do not have permission to view closing balances.")

        q = DateRangeQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)

        qs = list_closing_balances(q.validated_data["start_date"], q.validated_data["end_date"])
        return Response(ClosingBalanceSerializer(qs, many=True).data)


class ClosingBalanceDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosingBalanceSerializer

    @extend_schema(tags=["ledger"], responses={200: ClosingBalanceSerializer, 400: dict, 500: dict})
    def get(self, request, day, *args, **kwargs):
        if not request.user.has_perm(VIEW_CLOSING_PERMISSION):
            return forbidden("You do not have permission to view closing balances.")

        try:
            snapshot = get_closing_balance(day)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ClosingBalanceSerializer(snapshot).data)


class ClosingBalanceComputeView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosingBalanceSerializer

    @extend_schema(tags=["ledger"], request=None, responses={200: ClosingBalanceSerializer, 403: dict, 500: dict})
    def post(self, request, day, *args, **kwargs):
        if not request.user.has_perm(COMPUTE_CLOSING_PERMISSION):
            return forbidden("You do not have permission to compute closing balances.")

        try:
            snapshot = compute_closing(day)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ClosingBalanceSerializer(snapshot).data, status=status.HTTP_200_OK)


class ClosingBalancePreviewView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ClosingBalanceSerializer

    @extend_schema(tags=["ledger"], responses={200: ClosingBalanceSerializer, 500: dict})
    def get(self, request, day, *args, **kwargs):
        if not request.user.has_perm(VIEW_CLOSING_PERMISSION):
            return forbidden("You do not have permission to view closing balances.")

        try:
            preview = preview_closing(day)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(ClosingBalanceSerializer(preview).data)
