# billing/services/invoice_service.py

"""
INVOICE SERVICE

- create_invoice(): numbering, base-currency snapshot, issue posting
- update_invoice_status(): staff corrections (pending / overdue / paid / cancelled)
- invoices_visible_to(): row scoping per role

Settlements (amount_paid) live in payment_service.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from billing.models.customer import Customer
from billing.models.invoice import Invoice
from billing.services.exceptions import (
    InvoiceNotFoundError,
    InvoiceStateError,
    InvoiceValidationError,
)
from billing.services.journal_hooks import post_invoice_issue
from billing.services.numbering import next_invoice_number
from currency.services.converter import convert
from currency.services.rates import get_rate_snapshot
from permissions.context import RequestContext
from permissions.roles import CAP_INVOICES_MANAGE, CAP_INVOICES_VIEW, ROLE_AGENT, ROLE_CUSTOMER

logger = logging.getLogger("billing")

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvoiceValidationError(f"Invalid amount: {v!r}") from exc


def invoices_visible_to(context: RequestContext):
    qs = Invoice.objects.select_related("customer", "agent")
    if context.role == ROLE_AGENT:
        return qs.filter(agent_id=context.user_id)
    if context.role == ROLE_CUSTOMER:
        return qs.filter(customer__user_id=context.user_id)
    if context.has(CAP_INVOICES_VIEW):
        return qs
    return qs.none()


@transaction.atomic
def create_invoice(
    *,
    context: RequestContext,
    direction: str,
    amount,
    currency: str,
    customer_id=None,
    agent_id=None,
    invoice_type: str = Invoice.TYPE_SHIPPING,
    origin_region: str = "",
    shipment_reference: str = "",
    due_date=None,
    notes: str = "",
) -> Invoice:
    context.require(CAP_INVOICES_MANAGE)

    amount = _money(amount)
    if amount <= 0:
        raise InvoiceValidationError("amount must be > 0")
    if direction not in dict(Invoice.DIRECTION_CHOICES):
        raise InvoiceValidationError(f"Unknown direction: {direction}")

    customer = None
    if customer_id:
        customer = Customer.objects.filter(pk=customer_id, is_active=True).first()
        if customer is None:
            raise InvoiceValidationError("Customer not found")

    agent = None
    if agent_id:
        agent = get_user_model().objects.filter(pk=agent_id, role=ROLE_AGENT).first()
        if agent is None:
            raise InvoiceValidationError("Agent not found")

    snapshot = convert(amount, currency, get_rate_snapshot())

    invoice = Invoice.objects.create(
        invoice_number=next_invoice_number(),
        invoice_type=invoice_type,
        direction=direction,
        amount=amount,
        currency=currency,
        exchange_rate=snapshot.rate,
        amount_in_base=_money(snapshot.amount),
        customer=customer,
        agent=agent,
        origin_region=origin_region or (agent.region if agent else ""),
        shipment_reference=shipment_reference,
        due_date=due_date,
        notes=notes,
        created_by=context.user,
    )

    journal_status = post_invoice_issue(invoice, created_by=context.user)

    logger.info(
        "Invoice created",
        extra={
            "invoice_id": str(invoice.id),
            "invoice_number": invoice.invoice_number,
            "direction": direction,
            "amount": str(amount),
            "currency": invoice.currency,
            "rate_degraded": snapshot.degraded,
            "journal_status": journal_status,
        },
    )
    return invoice


@transaction.atomic
def update_invoice_status(
    *,
    context: RequestContext,
    invoice_id,
    status: str,
    notes: str | None = None,
) -> Invoice:
    """
    Staff status correction. Marking paid stamps paid_at; moving away from
    paid clears it. amount_paid is left alone.
    """
    context.require(CAP_INVOICES_MANAGE)

    if status not in dict(Invoice.STATUS_CHOICES):
        raise InvoiceValidationError(f"Unknown status: {status}")

    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise InvoiceNotFoundError("Invoice not found")

    previous = invoice.status
    if previous == status and notes is None:
        raise InvoiceStateError(f"Invoice is already {status}")

    invoice.status = status
    if status == Invoice.STATUS_PAID:
        invoice.paid_at = invoice.paid_at or timezone.now()
    else:
        invoice.paid_at = None
    if notes is not None:
        invoice.notes = notes

    invoice.save(update_fields=["status", "paid_at", "notes", "updated_at"])

    logger.info(
        "Invoice status changed",
        extra={
            "invoice_id": str(invoice.id),
            "previous_status": previous,
            "status": status,
            "user_id": str(context.user_id) if context.user_id else None,
        },
    )
    return invoice
