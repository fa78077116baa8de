# ledger/api/views/opening_balances.py

"""
PATH: ledger/api/views/opening_balances.py

OPENING BALANCES API

GET  /api/ledger/opening-balances/?date=YYYY-MM-DD
    - Composite resolved opening (snapshot / closing / computed / empty)
POST /api/ledger/opening-balances/
    - Creates the day's stored snapshots (baseline, no ledger entries)
POST /api/ledger/opening-balances/adjust/
    - Posts differences as opening_balance_addition / _deduction entries
POST /api/ledger/opening-balances/add/
    - Manual addition (manual_add income)
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import serializers, status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import (
    ADJUST_OPENING_PERMISSION,
    POST_LEDGER_PERMISSION,
    RECORD_OPENING_PERMISSION,
    VIEW_LEDGER_PERMISSION,
    forbidden,
)
from ledger.api.serializers import (
    LedgerEntrySerializer,
    OpeningBalanceAddSerializer,
    OpeningBalanceAdjustSerializer,
    OpeningBalanceCreateSerializer,
    OpeningBalanceSerializer,
)
from ledger.services.exceptions import LedgerError
from ledger.services.opening_balance import (
    add_to_opening_balance,
    adjust_opening_balance,
    get_opening_balance,
    record_opening_balance,
)


def _bank_lines(data) -> list[dict]:
    return [
        {"channel": line["channel"], "balance": line["balance"]}
        for line in data.get("bank_balances") or []
    ]


class OpeningBalanceView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OpeningBalanceCreateSerializer

    @extend_schema(
        tags=["ledger"],
        parameters=[OpenApiParameter(name="date", type=str, required=False, description="YYYY-MM-DD (default: today)")],
        responses=OpeningBalanceSerializer,
    )
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_LEDGER_PERMISSION):
            return forbidden("You do not have permission to view opening balances.")

        raw = request.query_params.get("date")
        day = None
        if raw:
            field = serializers.DateField()
            try:
                day = field.to_internal_value(raw)
            except serializers.ValidationError as exc:
                return Response({"date": exc.detail}, status=status.HTTP_400_BAD_REQUEST)

        try:
            data = get_opening_balance(day)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(OpeningBalanceSerializer(data).data)

    @extend_schema(
        tags=["ledger"],
        request=OpeningBalanceCreateSerializer,
        responses={201: OpeningBalanceSerializer, 400: dict, 403: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(RECORD_OPENING_PERMISSION):
            return forbidden("You do not have permission to record opening balances.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            record_opening_balance(
                day=data["date"],
                cash_balance=data.get("cash_balance"),
                bank_balances=_bank_lines(data),
                notes=data.get("notes") or "",
                user=request.user,
            )
            composite = get_opening_balance(data["date"])
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(OpeningBalanceSerializer(composite).data, status=status.HTTP_201_CREATED)


class OpeningBalanceAdjustView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OpeningBalanceAdjustSerializer

    @extend_schema(
        tags=["ledger"],
        request=OpeningBalanceAdjustSerializer,
        responses={200: dict, 400: dict, 403: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(ADJUST_OPENING_PERMISSION):
            return forbidden("You do not have permission to adjust opening balances.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            entries = adjust_opening_balance(
                day=data["date"],
                cash_balance=data.get("cash_balance"),
                bank_balances=_bank_lines(data),
                notes=data.get("notes"),
                user=request.user,
            )
            composite = get_opening_balance(data["date"])
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "opening_balance": OpeningBalanceSerializer(composite).data,
                "entries": LedgerEntrySerializer(entries, many=True).data,
            }
        )


class OpeningBalanceAddView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = OpeningBalanceAddSerializer

    @extend_schema(
        tags=["ledger"],
        request=OpeningBalanceAddSerializer,
        responses={201: LedgerEntrySerializer, 400: dict, 403: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(POST_LEDGER_PERMISSION):
            return forbidden("You do not have permission to add to balances.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            entry = add_to_opening_balance(
                channel=data["channel"],
                amount=data["amount"],
                user=request.user,
                description=data.get("description") or "",
                occurred_at=data.get("occurred_at"),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(LedgerEntrySerializer(entry).data, status=status.HTTP_201_CREATED)
