# currency/tests/test_converter.py

from decimal import Decimal

from django.test import SimpleTestCase, TestCase, override_settings

from currency.models import ExchangeRate
from currency.services.converter import (
    CurrencyValidationError,
    convert,
    convert_amount,
    convert_between,
    convert_from_base,
    round_base_total,
    round_money,
)
from currency.services.rates import get_rate_snapshot, set_exchange_rate
from permissions.context import CapabilityError, context_for_user, system_context
from users.models import User

RATES = {"USD": Decimal("2500"), "GBP": Decimal("3150"), "TZS": Decimal("1")}


@override_settings(BASE_CURRENCY="TZS")
class ConverterTests(SimpleTestCase):
    """
    Pure conversion.

    GUARANTEES:
    - base currency converts at 1 and is never degraded
    - a missing rate converts 1:1, flagged degraded, with a WARNING
    - invalid input fails before anything is computed
    """

    def test_converts_into_base(self):
        result = convert(Decimal("100"), "USD", RATES)
        self.assertEqual(result.amount, Decimal("250000"))
        self.assertEqual(result.rate, Decimal("2500"))
        self.assertFalse(result.degraded)

    def test_lookup_is_case_insensitive(self):
        self.assertEqual(convert_amount(Decimal("2"), "gbp", RATES), Decimal("6300"))

    def test_base_currency_is_identity(self):
        result = convert(Decimal("1234.56"), "TZS", {})
        self.assertEqual(result.amount, Decimal("1234.56"))
        self.assertFalse(result.degraded)

    def test_missing_rate_degrades_and_warns(self):
        with self.assertLogs("currency.services.converter", level="WARNING") as logs:
            result = convert(Decimal("50"), "XYZ", RATES)

        self.assertEqual(result.amount, Decimal("50"))
        self.assertEqual(result.rate, Decimal("1"))
        self.assertTrue(result.degraded)
        self.assertIn("degraded precision", logs.output[0])

    def test_negative_amount_rejected(self):
        with self.assertRaises(CurrencyValidationError):
            convert(Decimal("-1"), "USD", RATES)

    def test_non_positive_rate_rejected(self):
        with self.assertRaises(CurrencyValidationError):
            convert(Decimal("1"), "USD", {"USD": Decimal("0")})

    def test_convert_from_base_divides(self):
        result = convert_from_base(Decimal("250000"), "USD", RATES)
        self.assertEqual(result.amount, Decimal("100"))

    def test_cross_conversion_goes_through_base(self):
        result = convert_between(Decimal("315"), "GBP", "USD", RATES)
        self.assertEqual(result.amount, Decimal("396.9"))
        self.assertFalse(result.degraded)

    def test_cross_conversion_propagates_degraded(self):
        with self.assertLogs("currency.services.converter", level="WARNING"):
            result = convert_between(Decimal("10"), "XYZ", "USD", RATES)
        self.assertTrue(result.degraded)

    def test_display_rounding(self):
        self.assertEqual(round_money(Decimal("10.005")), Decimal("10.01"))
        self.assertEqual(round_base_total(Decimal("282.5")), Decimal("283"))


@override_settings(BASE_CURRENCY="TZS")
class RateSnapshotTests(TestCase):
    """
    GUARANTEES:
    - stored rates override the built-in defaults
    - only rates.manage may change a rate
    """

    def test_defaults_fill_missing_codes(self):
        table = get_rate_snapshot()
        self.assertEqual(table["USD"], Decimal("2500"))
        self.assertEqual(table["TZS"], Decimal("1"))

    def test_stored_rate_wins(self):
        ExchangeRate.objects.create(currency_code="USD", rate_to_base=Decimal("2600"))
        self.assertEqual(get_rate_snapshot()["USD"], Decimal("2600"))

    def test_snapshot_is_read_only(self):
        table = get_rate_snapshot()
        with self.assertRaises(TypeError):
            table["USD"] = Decimal("1")

    def test_set_exchange_rate_upserts(self):
        set_exchange_rate(context=system_context(), currency_code="eur", rate_to_base="2750")
        set_exchange_rate(context=system_context(), currency_code="EUR", rate_to_base="2800")

        row = ExchangeRate.objects.get(currency_code="EUR")
        self.assertEqual(row.rate_to_base, Decimal("2800"))

    def test_set_exchange_rate_requires_capability(self):
        clerk = User.objects.create_user(email="clerk@example.com", role="employee")
        with self.assertRaises(CapabilityError):
            set_exchange_rate(
                context=context_for_user(clerk), currency_code="USD", rate_to_base="2400"
            )

    def test_set_exchange_rate_rejects_zero(self):
        with self.assertRaises(CurrencyValidationError):
            set_exchange_rate(context=system_context(), currency_code="USD", rate_to_base="0")
