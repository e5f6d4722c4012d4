# billing/api/serializers.py

from rest_framework import serializers

from billing.models import Customer, Invoice, Payment


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = (
            "id",
            "customer_code",
            "name",
            "email",
            "phone",
            "company_name",
            "address",
            "user",
            "is_active",
            "created_at",
        )
        read_only_fields = ("id", "customer_code", "created_at")


class PaymentSerializer(serializers.ModelSerializer):
    bank_account_name = serializers.CharField(source="bank_account.account_name", read_only=True, default=None)

    class Meta:
        model = Payment
        fields = (
            "id",
            "invoice",
            "settlement_id",
            "amount",
            "currency",
            "method",
            "bank_account",
            "bank_account_name",
            "exchange_rate",
            "amount_in_base",
            "amount_applied",
            "rate_degraded",
            "verification_status",
            "verified_at",
            "paid_at",
            "reference",
            "notes",
            "journal_entry",
            "created_at",
        )
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True, default=None)
    agent_email = serializers.CharField(source="agent.email", read_only=True, default=None)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = (
            "id",
            "invoice_number",
            "invoice_type",
            "direction",
            "status",
            "amount",
            "currency",
            "exchange_rate",
            "amount_in_base",
            "amount_paid",
            "balance_due",
            "paid_at",
            "payment_method",
            "payment_currency",
            "customer",
            "customer_name",
            "agent",
            "agent_email",
            "origin_region",
            "shipment_reference",
            "due_date",
            "notes",
            "journal_entry",
            "created_at",
        )
        read_only_fields = fields


class InvoiceDetailSerializer(InvoiceSerializer):
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta(InvoiceSerializer.Meta):
        fields = InvoiceSerializer.Meta.fields + ("payments",)
        read_only_fields = fields


class InvoiceCreateSerializer(serializers.Serializer):
    direction = serializers.ChoiceField(choices=Invoice.DIRECTION_CHOICES)
    invoice_type = serializers.ChoiceField(choices=Invoice.TYPE_CHOICES, default=Invoice.TYPE_SHIPPING)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    currency = serializers.CharField(min_length=3, max_length=3)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    agent_id = serializers.UUIDField(required=False, allow_null=True)
    origin_region = serializers.CharField(required=False, allow_blank=True, default="")
    shipment_reference = serializers.CharField(required=False, allow_blank=True, default="")
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Invoice.STATUS_CHOICES)
    notes = serializers.CharField(required=False, allow_blank=True)


class PaymentSplitInputSerializer(serializers.Serializer):
    bank_account_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class RecordPaymentSerializer(serializers.Serializer):
    """
    Single payment: amount (+ optional bank_account_id).
    Split payment: `splits`, whose amounts must add up to `amount`.
    """

    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_currency = serializers.CharField(min_length=3, max_length=3)
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES)
    bank_account_id = serializers.UUIDField(required=False, allow_null=True)
    splits = PaymentSplitInputSerializer(many=True, required=False)
    payment_date = serializers.DateTimeField(required=False, allow_null=True)
    reference = serializers.CharField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class VerifyPaymentSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Payment.VERIFICATION_VERIFIED, Payment.VERIFICATION_REJECTED]
    )


class AccountDeltaSerializer(serializers.Serializer):
    bank_account_id = serializers.UUIDField()
    currency = serializers.CharField()
    delta = serializers.DecimalField(max_digits=14, decimal_places=2)


class SettlementResultSerializer(serializers.Serializer):
    invoice_id = serializers.UUIDField()
    invoice_number = serializers.CharField()
    status = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    amount_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2)
    is_fully_paid = serializers.BooleanField()
    settlement_id = serializers.UUIDField()
    payment_ids = serializers.ListField(child=serializers.UUIDField())
    verification_status = serializers.CharField()
    account_deltas = AccountDeltaSerializer(many=True)
    rate_degraded = serializers.BooleanField()
    journal_status = serializers.CharField()
