# shopforme/tests/test_quote_api.py

from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from shopforme.models import ProductRate, ShopForMeCharge
from shopforme.services.quote import quote_all_regions
from users.models import User


@override_settings(BASE_CURRENCY="TZS")
class QuoteAllRegionsTests(TestCase):
    """
    GUARANTEES:
    - one quote per active region rate of the category
    - totals are converted into base currency
    - an unknown currency still quotes, flagged degraded
    """

    def setUp(self):
        ProductRate.objects.create(
            region="china",
            product_category="electronics",
            rate_per_kg=Decimal("5"),
            duty_percentage=Decimal("10"),
            handling_fee_percentage=Decimal("5"),
            currency="USD",
            display_order=1,
        )
        ProductRate.objects.create(
            region="uk",
            product_category="electronics",
            rate_per_kg=Decimal("4"),
            currency="GBP",
            display_order=2,
        )
        ProductRate.objects.create(
            region="dubai",
            product_category="electronics",
            rate_per_kg=Decimal("1"),
            currency="USD",
            is_active=False,
        )

    def test_quotes_every_active_region(self):
        quotes = quote_all_regions(
            Decimal("200"), Decimal("10"), "electronics", rate_table={"USD": Decimal("2500"), "GBP": Decimal("3150")}
        )

        self.assertEqual([q.region for q in quotes], ["china", "uk"])
        china = quotes[0]
        self.assertEqual(china.breakdown.total, Decimal("282.5"))
        self.assertEqual(china.total_in_base, Decimal("706250"))
        self.assertFalse(china.degraded)

    def test_missing_rate_is_degraded(self):
        with self.assertLogs("currency.services.converter", level="WARNING"):
            quotes = quote_all_regions(
                Decimal("100"), Decimal("1"), "electronics", rate_table={"USD": Decimal("2500")}
            )

        uk = next(q for q in quotes if q.region == "uk")
        self.assertTrue(uk.degraded)
        self.assertEqual(uk.total_in_base, uk.breakdown.total)

    def test_category_without_rates_is_empty(self):
        self.assertEqual(quote_all_regions(Decimal("1"), Decimal("1"), "hazardous", rate_table={}), [])


@override_settings(BASE_CURRENCY="TZS")
class ShopForMeApiTests(TestCase):
    """
    API round-trips.

    GUARANTEES:
    - the quote endpoint is public
    - rates and charges can only be written with rates.manage
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.manager = User.objects.create_user(
            email="manager@example.com", password="pass12345", role="manager"
        )
        self.clerk = User.objects.create_user(
            email="clerk@example.com", password="pass12345", role="employee"
        )
        ProductRate.objects.create(
            region="china",
            product_category="general",
            rate_per_kg=Decimal("5"),
            duty_percentage=Decimal("10"),
            handling_fee_percentage=Decimal("5"),
            currency="USD",
        )

    def test_public_quote(self):
        res = self.client.post(
            "/api/shop-for-me/quote/",
            {"product_cost": "200", "weight_kg": "10", "product_category": "general"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["base_currency"], "TZS")
        quote = res.data["quotes"][0]
        self.assertEqual(quote["region"], "china")
        self.assertEqual(Decimal(quote["total"]), Decimal("282.50"))
        self.assertEqual(Decimal(quote["total_in_base"]), Decimal("706250"))

    def test_quote_rejects_negative_cost(self):
        res = self.client.post(
            "/api/shop-for-me/quote/",
            {"product_cost": "-5", "weight_kg": "1"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_configured_charge_quote_for_region(self):
        ShopForMeCharge.objects.create(
            charge_name="Service fee",
            charge_key="service_fee",
            charge_type=ShopForMeCharge.TYPE_FIXED,
            charge_value=Decimal("10"),
        )
        res = self.client.post(
            "/api/shop-for-me/quote/",
            {"product_cost": "100", "weight_kg": "2", "region": "china"},
            format="json",
        )
        self.assertEqual(res.status_code, 200)
        self.assertEqual(Decimal(res.data["total"]), Decimal("120.00"))
        self.assertEqual(res.data["currency"], "USD")

    def test_configured_quote_unknown_region_rate(self):
        res = self.client.post(
            "/api/shop-for-me/quote/",
            {"product_cost": "100", "weight_kg": "2", "region": "india"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)

    def test_manager_upserts_rate(self):
        self.client.force_authenticate(self.manager)
        payload = {
            "region": "china",
            "product_category": "general",
            "rate_per_kg": "6.50",
            "currency": "USD",
        }
        res = self.client.post("/api/shop-for-me/rates/", payload, format="json")

        self.assertEqual(res.status_code, 201)
        self.assertEqual(ProductRate.objects.count(), 1)
        self.assertEqual(ProductRate.objects.get().rate_per_kg, Decimal("6.50"))

    def test_clerk_cannot_write_rates(self):
        self.client.force_authenticate(self.clerk)
        res = self.client.post(
            "/api/shop-for-me/rates/",
            {"region": "uk", "product_category": "general", "rate_per_kg": "3", "currency": "GBP"},
            format="json",
        )
        self.assertEqual(res.status_code, 403)

    def test_manager_creates_charge(self):
        self.client.force_authenticate(self.manager)
        res = self.client.post(
            "/api/shop-for-me/charges/",
            {
                "charge_name": "Insurance",
                "charge_key": "insurance",
                "charge_type": "percentage",
                "charge_value": "2.5",
                "applies_to": "subtotal",
            },
            format="json",
        )
        self.assertEqual(res.status_code, 201)
        self.assertTrue(ShopForMeCharge.objects.filter(charge_key="insurance").exists())

    def test_rates_list_needs_login(self):
        res = self.client.get("/api/shop-for-me/rates/")
        self.assertEqual(res.status_code, 401)
