# accounting/api/serializers/bank_accounts.py

from rest_framework import serializers

from accounting.models.bank_account import BankAccount


class BankAccountSerializer(serializers.ModelSerializer):
    ledger_account_code = serializers.CharField(
        source="ledger_account.code", read_only=True, default=None
    )

    class Meta:
        model = BankAccount
        fields = (
            "id",
            "account_name",
            "bank_name",
            "account_number",
            "currency",
            "ledger_account",
            "ledger_account_code",
            "opening_balance",
            "current_balance",
            "is_active",
            "updated_at",
        )
        read_only_fields = fields


class BankAccountCreateSerializer(serializers.Serializer):
    account_name = serializers.CharField(max_length=150)
    bank_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    account_number = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    currency = serializers.CharField(min_length=3, max_length=3)
    ledger_account_code = serializers.CharField(max_length=10, required=False, allow_blank=True)
    opening_balance = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
