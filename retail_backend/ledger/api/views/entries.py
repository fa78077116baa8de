# ledger/api/views/entries.py

"""
PATH: ledger/api/views/entries.py

LEDGER ENTRIES API

GET  /api/ledger/entries/
    - Requires permission: ledger.view_ledgerentry
    - Ordered (occurred_at, id); django-filter date/channel/source filters

POST /api/ledger/entries/
    - Requires permission: ledger.add_ledgerentry
    - Goes through the Balance Poster (the only write path)

GET /api/ledger/channels/
GET /api/ledger/balances/current/
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from django_filters.rest_framework import DjangoFilterBackend

from ledger.api.errors import ledger_error_response
from ledger.api.filters import LedgerEntryFilter
from ledger.api.permissions import (
    POST_LEDGER_PERMISSION,
    VIEW_LEDGER_PERMISSION,
    forbidden,
)
from ledger.api.serializers import (
    ChannelSerializer,
    CurrentBalanceSerializer,
    LedgerEntryCreateSerializer,
    LedgerEntrySerializer,
)
from ledger.models import Channel, LedgerEntry
from ledger.services.channels import active_channels, get_cash_channel
from ledger.services.exceptions import LedgerError
from ledger.services.posting import get_current_balance, post_ledger_entry


class LedgerEntryListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = LedgerEntrySerializer
    filter_backends = [DjangoFilterBackend]
    filterset_class = LedgerEntryFilter

    queryset = LedgerEntry.objects.select_related("channel", "recorded_by").order_by(
        "occurred_at", "id"
    )

    def get_serializer_class(self):
        if self.request.method == "POST":
            return LedgerEntryCreateSerializer
        return LedgerEntrySerializer

    @extend_schema(tags=["ledger"], responses=LedgerEntrySerializer(many=True))
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_LEDGER_PERMISSION):
            return forbidden("You do not have permission to view ledger entries.")

        qs = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(LedgerEntrySerializer(page, many=True).data)

        return Response(LedgerEntrySerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["ledger"],
        request=LedgerEntryCreateSerializer,
        responses={201: LedgerEntrySerializer, 400: dict, 403: dict, 409: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(POST_LEDGER_PERMISSION):
            return forbidden("You do not have permission to post ledger entries.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            entry = post_ledger_entry(
                channel=data["channel"],
                direction=data["direction"],
                amount=data["amount"],
                source=data["source"],
                source_document_id=data.get("source_document_id"),
                occurred_at=data.get("occurred_at"),
                recorded_by=request.user,
                description=data.get("description") or "",
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(LedgerEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class ChannelListView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ChannelSerializer

    @extend_schema(tags=["ledger"], responses=ChannelSerializer(many=True))
    def get(self, request, *args, **kwargs):
        include_inactive = (request.query_params.get("include_inactive") or "").lower() in (
            "1",
            "true",
            "yes",
        )
        if include_inactive:
            get_cash_channel()
            channels = Channel.objects.order_by("kind", "name", "id")
        else:
            channels = active_channels()
        return Response(ChannelSerializer(channels, many=True).data)


class CurrentBalanceView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CurrentBalanceSerializer

    @extend_schema(tags=["ledger"], responses=CurrentBalanceSerializer(many=True))
    def get(self, request, *args, **kwargs):
        if not request.user.has_perm(VIEW_LEDGER_PERMISSION):
            return forbidden("You do not have permission to view balances.")

        try:
            rows = [
                {
                    "channel_id": channel.pk,
                    "kind": channel.kind,
                    "name": channel.label,
                    "account_number": channel.account_number,
                    "balance": get_current_balance(channel),
                }
                for channel in active_channels()
            ]
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(CurrentBalanceSerializer(rows, many=True).data)
