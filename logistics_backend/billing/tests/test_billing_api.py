# billing/tests/test_billing_api.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.services.account_resolver import FREIGHT_CHART_CODE, clear_active_chart_cache
from billing.models import Customer, Invoice, Payment
from users.models import User


@override_settings(BASE_CURRENCY="TZS")
class BillingApiTests(TestCase):
    """
    API round-trips.

    GUARANTEES:
    - staff create invoices and record (split) payments over HTTP
    - service errors come back as 400/403/404 with a detail
    - agents list only their own invoices and submit payments for verification
    - anonymous requests are rejected
    """

    def setUp(self):
        clear_active_chart_cache()
        call_command("seed_logistics_chart", verbosity=0)

        self.manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.accountant = User.objects.create_user(
            email="acc@example.com", password="x", role="accountant"
        )
        self.agent = User.objects.create_user(
            email="agent@example.com", password="x", role="agent", region="india"
        )
        self.customer = Customer.objects.create(name="Juma Freight Clients")
        self.bank_a = BankAccount.objects.create(
            account_name="CRDB USD",
            currency="USD",
            ledger_account=Account.objects.get(chart__code=FREIGHT_CHART_CODE, code="1130"),
        )
        self.bank_b = BankAccount.objects.create(
            account_name="Petty cash",
            currency="USD",
            ledger_account=Account.objects.get(chart__code=FREIGHT_CHART_CODE, code="1110"),
        )

        self.client = APIClient()

    def _as(self, user):
        self.client.force_authenticate(user=user)

    def _create_invoice(self, **overrides):
        payload = {
            "direction": Invoice.DIRECTION_TO_CUSTOMER,
            "amount": "150.00",
            "currency": "USD",
            "customer_id": str(self.customer.id),
        }
        payload.update(overrides)
        self._as(self.manager)
        res = self.client.post("/api/billing/invoices/", payload, format="json")
        self.assertEqual(res.status_code, 201, res.data)
        return res.data

    def test_create_and_settle_with_split(self):
        invoice = self._create_invoice()
        self.assertTrue(invoice["invoice_number"].startswith("INV-"))

        res = self.client.post(
            f"/api/billing/invoices/{invoice['id']}/payments/",
            {
                "amount": "150.00",
                "payment_currency": "USD",
                "payment_method": "bank_transfer",
                "splits": [
                    {"bank_account_id": str(self.bank_a.id), "amount": "100.00"},
                    {"bank_account_id": str(self.bank_b.id), "amount": "50.00"},
                ],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["status"], "paid")
        self.assertEqual(res.data["journal_status"], "posted")
        self.assertEqual(len(res.data["payment_ids"]), 2)

        listing = self.client.get(f"/api/billing/invoices/{invoice['id']}/payments/")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(len(listing.data), 2)

        detail = self.client.get(f"/api/billing/invoices/{invoice['id']}/")
        self.assertEqual(detail.data["balance_due"], "0.00")
        self.assertEqual(len(detail.data["payments"]), 2)

    def test_payment_without_rate_is_flagged_degraded(self):
        invoice = self._create_invoice(amount="500.00", currency="TZS")

        with self.assertLogs("currency", level="WARNING"):
            res = self.client.post(
                f"/api/billing/invoices/{invoice['id']}/payments/",
                {"amount": "20.00", "payment_currency": "XYZ", "payment_method": "cash"},
                format="json",
            )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertTrue(res.data["rate_degraded"])
        self.assertEqual(res.data["amount_paid"], "20.00")

        listing = self.client.get(f"/api/billing/invoices/{invoice['id']}/payments/")
        self.assertTrue(listing.data[0]["rate_degraded"])
        self.assertEqual(listing.data[0]["amount_in_base"], "20.00")

    def test_split_mismatch_is_400(self):
        invoice = self._create_invoice()

        res = self.client.post(
            f"/api/billing/invoices/{invoice['id']}/payments/",
            {
                "amount": "150.00",
                "payment_currency": "USD",
                "payment_method": "bank_transfer",
                "splits": [{"bank_account_id": str(self.bank_a.id), "amount": "100.00"}],
            },
            format="json",
        )

        self.assertEqual(res.status_code, 400)
        self.assertIn("mismatch", res.data["detail"])
        self.assertFalse(Payment.objects.exists())

    def test_unknown_invoice_is_404(self):
        self._as(self.manager)
        res = self.client.post(
            f"/api/billing/invoices/{uuid.uuid4()}/payments/",
            {"amount": "1.00", "payment_currency": "USD", "payment_method": "cash"},
            format="json",
        )
        self.assertEqual(res.status_code, 404)

    def test_filter_by_status(self):
        paid = self._create_invoice()
        self._create_invoice()
        self.client.post(
            f"/api/billing/invoices/{paid['id']}/payments/",
            {"amount": "150.00", "payment_currency": "USD", "payment_method": "cash"},
            format="json",
        )

        res = self.client.get("/api/billing/invoices/", {"status": "paid"})

        self.assertEqual(res.status_code, 200)
        self.assertEqual([row["id"] for row in res.data["results"]], [paid["id"]])

    def test_status_correction(self):
        invoice = self._create_invoice()

        res = self.client.post(
            f"/api/billing/invoices/{invoice['id']}/status/", {"status": "cancelled"}, format="json"
        )

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "cancelled")

    def test_agent_submits_and_accountant_verifies(self):
        invoice = self._create_invoice(
            direction=Invoice.DIRECTION_TO_AGENT, customer_id=None, agent_id=str(self.agent.id)
        )
        self._create_invoice()

        self._as(self.agent)
        listing = self.client.get("/api/billing/invoices/")
        self.assertEqual([row["id"] for row in listing.data["results"]], [invoice["id"]])

        submitted = self.client.post(
            f"/api/billing/invoices/{invoice['id']}/payments/",
            {
                "amount": "150.00",
                "payment_currency": "USD",
                "payment_method": "bank_transfer",
                "bank_account_id": str(self.bank_a.id),
            },
            format="json",
        )
        self.assertEqual(submitted.status_code, 201, submitted.data)
        self.assertEqual(submitted.data["verification_status"], "pending")

        self._as(self.accountant)
        res = self.client.post(
            f"/api/billing/payments/{submitted.data['payment_ids'][0]}/verify/",
            {"status": "verified"},
            format="json",
        )

        self.assertEqual(res.status_code, 200, res.data)
        self.assertEqual(res.data["status"], "paid")
        self.bank_a.refresh_from_db()
        self.assertEqual(self.bank_a.current_balance, Decimal("150.00"))

    def test_agent_cannot_create_invoices(self):
        self._as(self.agent)
        res = self.client.post(
            "/api/billing/invoices/",
            {
                "direction": "to_customer",
                "amount": "10.00",
                "currency": "USD",
                "customer_id": str(self.customer.id),
            },
            format="json",
        )
        self.assertEqual(res.status_code, 403)

    def test_customer_create_assigns_code(self):
        self._as(self.manager)
        res = self.client.post("/api/billing/customers/", {"name": "New Client"}, format="json")

        self.assertEqual(res.status_code, 201, res.data)
        self.assertTrue(res.data["customer_code"].startswith("CT"))

    def test_anonymous_is_rejected(self):
        res = self.client.get("/api/billing/invoices/")
        self.assertEqual(res.status_code, 401)

    def test_agents_cannot_list_customers(self):
        self._as(self.agent)
        self.assertEqual(self.client.get("/api/billing/customers/").status_code, 403)
