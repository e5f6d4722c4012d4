# billing/tests/test_allocation.py

from decimal import Decimal
from types import SimpleNamespace

from django.test import SimpleTestCase

from accounting.flow import FlowDirection
from billing.models.invoice import Invoice
from billing.services.allocation import (
    InvoiceSnapshot,
    PaymentSplit,
    allocate,
    apply_allocation,
    flow_for_direction,
)
from billing.services.exceptions import PaymentValidationError


def _invoice(amount="100", paid="0", direction=Invoice.DIRECTION_TO_CUSTOMER):
    return InvoiceSnapshot(
        amount=Decimal(amount), amount_paid=Decimal(paid), direction=direction, currency="USD"
    )


class PaymentAllocatorTests(SimpleTestCase):
    """
    GUARANTEES:
    - amount_paid accumulates; full payment flips is_fully_paid
    - overpayment is accepted
    - one signed delta per split; from_agent invoices pay money out
    - negative or non-numeric amounts are rejected
    """

    def test_full_payment(self):
        result = allocate(_invoice("100"), Decimal("100"), account_id="bank-1")

        self.assertTrue(result.is_fully_paid)
        self.assertEqual(result.new_amount_paid, Decimal("100"))
        [delta] = result.per_account_deltas
        self.assertEqual((delta.account_id, delta.delta), ("bank-1", Decimal("100")))

    def test_two_partial_payments(self):
        first = allocate(_invoice("100"), Decimal("60"))
        self.assertFalse(first.is_fully_paid)
        self.assertEqual(first.new_amount_paid, Decimal("60"))

        second = allocate(_invoice("100", paid=first.new_amount_paid), Decimal("40"))
        self.assertTrue(second.is_fully_paid)
        self.assertEqual(second.new_amount_paid, Decimal("100"))

    def test_overpayment_is_accepted(self):
        result = allocate(_invoice("100", paid="90"), Decimal("25"))

        self.assertTrue(result.is_fully_paid)
        self.assertEqual(result.new_amount_paid, Decimal("115"))

    def test_split_gives_one_delta_per_leg(self):
        splits = [PaymentSplit("a", Decimal("100")), PaymentSplit("b", Decimal("50"))]

        result = allocate(_invoice("150"), Decimal("150"), splits)

        self.assertEqual(
            [(d.account_id, d.delta) for d in result.per_account_deltas],
            [("a", Decimal("100")), ("b", Decimal("50"))],
        )
        self.assertTrue(result.is_fully_paid)

    def test_agent_invoice_moves_money_out(self):
        splits = [PaymentSplit("a", Decimal("30")), PaymentSplit("b", Decimal("20"))]

        result = allocate(
            _invoice("50", direction=Invoice.DIRECTION_FROM_AGENT), Decimal("50"), splits
        )

        self.assertIs(result.flow, FlowDirection.OUTGOING)
        self.assertEqual([d.delta for d in result.per_account_deltas], [Decimal("-30"), Decimal("-20")])
        self.assertEqual(result.new_amount_paid, Decimal("50"))

    def test_billing_an_agent_is_incoming(self):
        self.assertIs(flow_for_direction(Invoice.DIRECTION_TO_AGENT), FlowDirection.INCOMING)
        self.assertIs(flow_for_direction(Invoice.DIRECTION_TO_CUSTOMER), FlowDirection.INCOMING)

    def test_no_bank_account_means_no_delta(self):
        self.assertEqual(allocate(_invoice(), Decimal("10")).per_account_deltas, ())

    def test_negative_amounts_are_rejected(self):
        with self.assertRaises(PaymentValidationError):
            allocate(_invoice(), Decimal("-1"))
        with self.assertRaises(PaymentValidationError):
            allocate(_invoice(), Decimal("10"), [PaymentSplit("a", Decimal("-10"))])

    def test_non_numeric_amounts_are_rejected(self):
        with self.assertRaises(PaymentValidationError):
            allocate(_invoice(), "ten")
        with self.assertRaises(PaymentValidationError):
            allocate(_invoice(), Decimal("NaN"))
        with self.assertRaises(PaymentValidationError):
            allocate(_invoice(), Decimal("10"), [PaymentSplit("a", "x")])

    def test_apply_allocation_marks_paid(self):
        row = SimpleNamespace(amount_paid=Decimal("0"), status=Invoice.STATUS_PENDING, paid_at=None)
        stamp = object()

        fields = apply_allocation(row, allocate(_invoice("100"), Decimal("100")), paid_at=stamp)

        self.assertEqual(fields, ["amount_paid", "status", "paid_at"])
        self.assertEqual(row.status, Invoice.STATUS_PAID)
        self.assertIs(row.paid_at, stamp)

    def test_apply_partial_allocation_keeps_status(self):
        row = SimpleNamespace(amount_paid=Decimal("0"), status=Invoice.STATUS_OVERDUE, paid_at=None)

        fields = apply_allocation(row, allocate(_invoice("100"), Decimal("30")), paid_at=None)

        self.assertEqual(fields, ["amount_paid"])
        self.assertEqual(row.status, Invoice.STATUS_OVERDUE)
        self.assertEqual(row.amount_paid, Decimal("30"))
