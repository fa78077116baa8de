# ledger/api/serializers/entries.py

from __future__ import annotations

from rest_framework import serializers

from ledger.api.labels import entry_label
from ledger.models import Channel, LedgerEntry


class ChannelSerializer(serializers.ModelSerializer):
    label = serializers.CharField(read_only=True)

    class Meta:
        model = Channel
        fields = ("id", "kind", "name", "account_number", "label", "is_active")
        read_only_fields = fields


class LedgerEntrySerializer(serializers.ModelSerializer):
    channel_kind = serializers.CharField(source="channel.kind", read_only=True)
    channel_label = serializers.CharField(source="channel.label", read_only=True)
    label = serializers.SerializerMethodField()
    recorded_by_email = serializers.SerializerMethodField()

    class Meta:
        model = LedgerEntry
        fields = (
            "id",
            "channel",
            "channel_kind",
            "channel_label",
            "direction",
            "source",
            "label",
            "source_document_id",
            "amount",
            "occurred_at",
            "before_balance",
            "after_balance",
            "rebased",
            "reverses",
            "recorded_by",
            "recorded_by_email",
            "description",
            "created_at",
        )
        read_only_fields = fields

    def get_label(self, obj) -> str:
        return entry_label(obj)

    def get_recorded_by_email(self, obj):
        user = getattr(obj, "recorded_by", None)
        return getattr(user, "email", None)


class LedgerEntryCreateSerializer(serializers.Serializer):
    """
    Shape validation only. Amount / channel rules live in the Balance Poster.
    """

    channel = serializers.CharField(help_text='Channel id or "cash"')
    direction = serializers.ChoiceField(choices=LedgerEntry.DIRECTIONS)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    source = serializers.ChoiceField(choices=LedgerEntry.Source.choices)
    source_document_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    occurred_at = serializers.DateTimeField(required=False)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class CurrentBalanceSerializer(serializers.Serializer):
    channel_id = serializers.IntegerField()
    kind = serializers.CharField()
    name = serializers.CharField()
    account_number = serializers.CharField(allow_blank=True)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class ReversalRequestSerializer(serializers.Serializer):
    source_document_id = serializers.CharField()
    channel = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cancelled_at = serializers.DateTimeField(required=False)
    reason = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_source_document_id(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("source_document_id is required")
        return value


class ReversalFailureSerializer(serializers.Serializer):
    entry_id = serializers.IntegerField()
    channel_id = serializers.IntegerField()
    error = serializers.CharField()
    error_type = serializers.CharField()


class ReversalResultSerializer(serializers.Serializer):
    source_document_id = serializers.CharField()
    partial = serializers.BooleanField(source="is_partial")
    entries = LedgerEntrySerializer(many=True)
    failures = ReversalFailureSerializer(many=True)
