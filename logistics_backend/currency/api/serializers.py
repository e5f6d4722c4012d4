# currency/api/serializers.py

from rest_framework import serializers

from currency.models import ExchangeRate


class ExchangeRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeRate
        fields = ("currency_code", "currency_name", "rate_to_base", "updated_at")
        read_only_fields = ("updated_at",)


class ExchangeRateWriteSerializer(serializers.Serializer):
    currency_code = serializers.CharField(min_length=3, max_length=3)
    currency_name = serializers.CharField(required=False, allow_blank=True, default="")
    rate_to_base = serializers.DecimalField(max_digits=18, decimal_places=6)


class ExchangeRateUpdateSerializer(serializers.Serializer):
    currency_name = serializers.CharField(required=False, allow_blank=True, default="")
    rate_to_base = serializers.DecimalField(max_digits=18, decimal_places=6)


class ConvertQuerySerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=18, decimal_places=2, min_value=0)
    currency = serializers.CharField(min_length=3, max_length=3)
    to = serializers.CharField(min_length=3, max_length=3, required=False)


class ConversionSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=18, decimal_places=2)
    currency = serializers.CharField()
    converted_amount = serializers.DecimalField(max_digits=20, decimal_places=2)
    converted_currency = serializers.CharField()
    rate = serializers.DecimalField(max_digits=18, decimal_places=6)
    degraded = serializers.BooleanField()
