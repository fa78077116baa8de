# ledger/api/serializers/confirmation.py

from rest_framework import serializers


class BankBalanceStatusSerializer(serializers.Serializer):
    channel_id = serializers.IntegerField()
    kind = serializers.CharField()
    name = serializers.CharField()
    account_number = serializers.CharField(allow_blank=True)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class ConfirmationStatusSerializer(serializers.Serializer):
    date = serializers.DateField()
    confirmed = serializers.BooleanField()
    confirmed_at = serializers.DateTimeField(allow_null=True)
    confirmed_by = serializers.CharField(allow_null=True)
    needs_confirmation = serializers.BooleanField()
    cash_balance = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    bank_balances = BankBalanceStatusSerializer(many=True, required=False)


class ConfirmDaySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
