# billing/services/allocation.py

"""
======================================================
PATH: billing/services/allocation.py
======================================================
PAYMENT ALLOCATOR (PURE)

Works out what one settlement does to an invoice and to the bank accounts
it moved through. Nothing here reads or writes the database; the
settlement service locks rows, calls allocate(), then applies the result.

Rules:
- new_amount_paid = amount_paid + payment_amount (never decreases)
- is_fully_paid  = new_amount_paid >= invoice amount (overpayment accepted)
- bank deltas are signed by FlowDirection: from_agent invoices pay money
  OUT (negative delta), every other direction brings money IN
- one delta per split leg; the split sum is the caller's responsibility
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable

from accounting.flow import FlowDirection
from billing.models.invoice import Invoice
from billing.services.exceptions import PaymentValidationError

ZERO = Decimal("0")


def flow_for_direction(direction: str) -> FlowDirection:
    if direction == Invoice.DIRECTION_FROM_AGENT:
        return FlowDirection.OUTGOING
    return FlowDirection.INCOMING


@dataclass(frozen=True)
class InvoiceSnapshot:
    amount: Decimal
    amount_paid: Decimal
    direction: str
    currency: str = ""

    @classmethod
    def from_invoice(cls, invoice) -> "InvoiceSnapshot":
        return cls(
            amount=invoice.amount,
            amount_paid=invoice.amount_paid,
            direction=invoice.direction,
            currency=invoice.currency,
        )


@dataclass(frozen=True)
class PaymentSplit:
    account_id: object
    amount: Decimal


@dataclass(frozen=True)
class AccountDelta:
    account_id: object
    delta: Decimal


@dataclass(frozen=True)
class Allocation:
    new_amount_paid: Decimal
    is_fully_paid: bool
    per_account_deltas: tuple[AccountDelta, ...]
    flow: FlowDirection
    payment_amount: Decimal


def _amount(value, label: str) -> Decimal:
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise PaymentValidationError(f"Invalid {label}: {value!r}") from exc
    if not d.is_finite():
        raise PaymentValidationError(f"Invalid {label}: {value!r}")
    if d < ZERO:
        raise PaymentValidationError(f"{label} cannot be negative")
    return d


def allocate(
    invoice: InvoiceSnapshot,
    payment_amount,
    splits: Iterable[PaymentSplit] | None = None,
    *,
    account_id=None,
) -> Allocation:
    amount = _amount(payment_amount, "payment amount")
    flow = flow_for_direction(invoice.direction)

    split_list = list(splits or [])
    if split_list:
        deltas = tuple(
            AccountDelta(s.account_id, flow.signed(_amount(s.amount, "split amount")))
            for s in split_list
        )
    elif account_id is not None:
        deltas = (AccountDelta(account_id, flow.signed(amount)),)
    else:
        deltas = ()

    new_paid = invoice.amount_paid + amount
    return Allocation(
        new_amount_paid=new_paid,
        is_fully_paid=new_paid >= invoice.amount,
        per_account_deltas=deltas,
        flow=flow,
        payment_amount=amount,
    )


def apply_allocation(invoice: Invoice, allocation: Allocation, *, paid_at: datetime) -> list[str]:
    """
    Copy the allocation onto the (locked) invoice row. Does not save.

    Returns the fields that changed, for save(update_fields=...).
    """
    invoice.amount_paid = allocation.new_amount_paid
    fields = ["amount_paid"]

    if allocation.is_fully_paid:
        invoice.status = Invoice.STATUS_PAID
        invoice.paid_at = paid_at
        fields += ["status", "paid_at"]

    return fields
