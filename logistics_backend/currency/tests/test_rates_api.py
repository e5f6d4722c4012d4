# currency/tests/test_rates_api.py

from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from currency.models import ExchangeRate
from currency.services.converter import CurrencyValidationError
from currency.services.rates import set_exchange_rate
from permissions.context import context_for_user
from users.models import User


@override_settings(BASE_CURRENCY="TZS")
class ExchangeRateApiTests(TestCase):
    """
    GUARANTEES:
    - anyone signed in can read rates and convert
    - only rates.manage may create / change a rate
    - a rate must be a positive number
    - unknown currencies convert 1:1 and say so
    """

    def setUp(self):
        self.manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.employee = User.objects.create_user(email="e@example.com", password="x", role="employee")
        self.client = APIClient()
        self.client.force_authenticate(user=self.manager)

    def test_create_then_update(self):
        res = self.client.post(
            "/api/currency/rates/",
            {"currency_code": "kes", "currency_name": "Kenyan shilling", "rate_to_base": "19.5"},
            format="json",
        )
        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["currency_code"], "KES")

        res = self.client.patch("/api/currency/rates/kes/", {"rate_to_base": "20"}, format="json")
        self.assertEqual(res.status_code, 200, res.data)

        row = ExchangeRate.objects.get(currency_code="KES")
        self.assertEqual(str(row.rate_to_base), "20.000000")
        self.assertEqual(row.currency_name, "Kenyan shilling")
        self.assertEqual(row.updated_by, self.manager)

    def test_listing_reports_base(self):
        self.client.force_authenticate(user=self.employee)
        res = self.client.get("/api/currency/rates/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["base_currency"], "TZS")

    def test_employee_cannot_set_rates(self):
        self.client.force_authenticate(user=self.employee)
        res = self.client.post(
            "/api/currency/rates/",
            {"currency_code": "KES", "rate_to_base": "19.5"},
            format="json",
        )
        self.assertEqual(res.status_code, 403)
        self.assertFalse(ExchangeRate.objects.exists())

    def test_rate_must_be_positive(self):
        res = self.client.post(
            "/api/currency/rates/", {"currency_code": "KES", "rate_to_base": "0"}, format="json"
        )
        self.assertEqual(res.status_code, 400)

    def test_service_rejects_non_numeric_rate(self):
        with self.assertRaises(CurrencyValidationError):
            set_exchange_rate(
                context=context_for_user(self.manager), currency_code="KES", rate_to_base="abc"
            )
        self.assertFalse(ExchangeRate.objects.exists())

    def test_patch_unknown_rate_is_404(self):
        res = self.client.patch("/api/currency/rates/KES/", {"rate_to_base": "20"}, format="json")
        self.assertEqual(res.status_code, 404)

    def test_convert_uses_stored_rate_over_default(self):
        ExchangeRate.objects.create(currency_code="USD", rate_to_base="2600")

        res = self.client.get("/api/currency/convert/", {"amount": "10", "currency": "usd"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["converted_amount"], "26000.00")
        self.assertEqual(res.data["converted_currency"], "TZS")
        self.assertFalse(res.data["degraded"])

    def test_convert_unknown_currency_is_degraded(self):
        with self.assertLogs("currency", level="WARNING"):
            res = self.client.get("/api/currency/convert/", {"amount": "10", "currency": "XYZ"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["converted_amount"], "10.00")
        self.assertTrue(res.data["degraded"])
