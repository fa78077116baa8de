# ledger/api/serializers/balances.py

"""
OPENING / CLOSING BALANCE SERIALIZERS

Notes:
- DRF validates shape; the opening balance service enforces domain rules
  (non-negative balances, one snapshot per day, known channels).
"""

from __future__ import annotations

from rest_framework import serializers

from ledger.models import ClosingBalanceSnapshot


class BankBalanceLineSerializer(serializers.Serializer):
    channel = serializers.IntegerField()
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class OpeningBalanceCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    cash_balance = serializers.DecimalField(
        max_digits=14, decimal_places=2, required=False, allow_null=True
    )
    bank_balances = BankBalanceLineSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs.get("cash_balance") is None and not attrs.get("bank_balances"):
            raise serializers.ValidationError(
                "Provide cash_balance and/or bank_balances."
            )
        return attrs


class OpeningBalanceAdjustSerializer(OpeningBalanceCreateSerializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate(self, attrs):
        if (
            attrs.get("cash_balance") is None
            and not attrs.get("bank_balances")
            and attrs.get("notes") is None
        ):
            raise serializers.ValidationError(
                "Provide cash_balance, bank_balances and/or notes."
            )
        return attrs


class OpeningBalanceAddSerializer(serializers.Serializer):
    channel = serializers.CharField(help_text='Channel id or "cash"')
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    occurred_at = serializers.DateTimeField(required=False)


class OpeningLineSerializer(serializers.Serializer):
    channel_id = serializers.IntegerField()
    kind = serializers.CharField()
    name = serializers.CharField()
    account_number = serializers.CharField(allow_blank=True)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    adjusted_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    source = serializers.CharField()
    source_date = serializers.DateField(allow_null=True)
    lookback_exceeded = serializers.BooleanField()


class OpeningBalanceSerializer(serializers.Serializer):
    date = serializers.DateField()
    is_stored = serializers.BooleanField()
    notes = serializers.CharField(allow_blank=True)
    cash = OpeningLineSerializer(allow_null=True)
    banks = OpeningLineSerializer(many=True)
    cards = OpeningLineSerializer(many=True)
    total = serializers.DecimalField(max_digits=14, decimal_places=2)


class ClosingBalanceSerializer(serializers.ModelSerializer):
    stored = serializers.SerializerMethodField()

    class Meta:
        model = ClosingBalanceSnapshot
        fields = (
            "date",
            "cash_balance",
            "bank_balances",
            "card_balances",
            "total",
            "entry_count",
            "computed_at",
            "stored",
        )
        read_only_fields = fields

    def get_stored(self, obj) -> bool:
        return obj.pk is not None


class DateRangeQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()

    def validate(self, attrs):
        if attrs["end_date"] < attrs["start_date"]:
            raise serializers.ValidationError("end_date must not be before start_date")
        return attrs
