# billing/services/payment_service.py

"""
======================================================
PATH: billing/services/payment_service.py
======================================================
SETTLEMENT SERVICE (APPLICATION SERVICE)

record_invoice_payment() settles an invoice, fully or partly, in one
database transaction:

    1. validate the request (no writes yet)
    2. lock the invoice row
    3. take one exchange-rate snapshot
    4. allocate (pure) and lock the bank accounts involved
    5. write one Payment per leg (shared settlement_id)
    6. move bank balances (F() updates) and update the invoice
    7. post one journal entry per leg inside a savepoint

Staff payments are verified at once. Agents paying their own invoices
submit legs as `pending`: nothing moves until verify_payment() approves
the whole settlement.

Journal failures:
- JournalImbalanceError propagates and the whole settlement rolls back
- anything else recoverable is queued in the outbox; the settlement commits
  and the result says journal_status="queued"
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from accounting.models.bank_account import BankAccount
from accounting.services.bank_service import apply_bank_delta
from billing.models.invoice import Invoice
from billing.models.payment import Payment
from billing.services.allocation import (
    InvoiceSnapshot,
    PaymentSplit,
    allocate,
    apply_allocation,
)
from billing.services.exceptions import (
    InvoiceNotFoundError,
    InvoiceStateError,
    PaymentValidationError,
    PermissionDeniedError,
)
from billing.services.journal_hooks import post_settlement_legs
from currency.services.converter import (
    CurrencyValidationError,
    RateTable,
    convert,
    convert_between,
)
from currency.services.rates import get_rate_snapshot
from permissions.context import RequestContext
from permissions.roles import (
    CAP_INVOICES_RECORD_PAYMENT,
    CAP_PAYMENTS_SUBMIT,
    CAP_PAYMENTS_VERIFY,
)

logger = logging.getLogger("payments")

TWOPLACES = Decimal("0.01")

JOURNAL_AWAITING_VERIFICATION = "awaiting_verification"
JOURNAL_NOT_POSTED = "not_posted"


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise PaymentValidationError(f"Invalid amount: {v!r}") from exc


@dataclass(frozen=True)
class _Leg:
    bank_account_id: object
    amount: Decimal


# ============================================================
# VALIDATION (before any write)
# ============================================================


def _bank_id(value, label: str):
    if not value:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError as exc:
        raise PaymentValidationError(f"{label} is not a valid bank account id") from exc


def _validate_legs(*, amount: Decimal, bank_account_id, splits) -> list[_Leg]:
    if amount <= 0:
        raise PaymentValidationError("Payment amount must be > 0")

    if not splits:
        return [_Leg(_bank_id(bank_account_id, "bank_account_id"), amount)]

    legs = []
    for idx, split in enumerate(splits):
        leg_amount = _money(split.get("amount"))
        if leg_amount <= 0:
            raise PaymentValidationError(f"Split amount at index {idx} must be > 0")
        account_id = _bank_id(
            split.get("bank_account_id") or split.get("account_id"), f"Split at index {idx}"
        )
        if not account_id:
            raise PaymentValidationError(f"Split at index {idx} needs a bank account")
        legs.append(_Leg(account_id, leg_amount))

    total = sum((leg.amount for leg in legs), Decimal("0.00"))
    if total != amount:
        raise PaymentValidationError(
            f"Split payment mismatch: splits sum({total}) != payment amount({amount})"
        )
    return legs


def _validate_bank_accounts(legs: list[_Leg]) -> None:
    ids = {leg.bank_account_id for leg in legs if leg.bank_account_id}
    if not ids:
        return
    found = set(
        BankAccount.objects.filter(id__in=ids, is_active=True).values_list("id", flat=True)
    )
    missing = {str(i) for i in ids} - {str(i) for i in found}
    if missing:
        raise PaymentValidationError(
            f"Bank account(s) not found or inactive: {', '.join(sorted(missing))}"
        )


def _check_can_pay(context: RequestContext, invoice: Invoice) -> bool:
    """True when the payment is verified immediately, False when it is a submission."""
    if context.has(CAP_INVOICES_RECORD_PAYMENT):
        return True

    if context.has(CAP_PAYMENTS_SUBMIT):
        if (
            context.is_agent
            and invoice.agent_id == context.user_id
            and invoice.direction == Invoice.DIRECTION_TO_AGENT
        ):
            return False
        raise PermissionDeniedError("Agents can only pay invoices billed to them")

    raise PermissionDeniedError(f"Missing capability: {CAP_INVOICES_RECORD_PAYMENT}")


def _check_payable(invoice: Invoice) -> None:
    if invoice.status == Invoice.STATUS_CANCELLED:
        raise InvoiceStateError("Cannot record a payment against a cancelled invoice")
    if invoice.status == Invoice.STATUS_PAID:
        raise InvoiceStateError("Invoice is already paid")


# ============================================================
# SETTLEMENT
# ============================================================


def _bank_amount(payment: Payment, bank: BankAccount, rate_table: RateTable) -> Decimal:
    if bank.currency == payment.currency:
        return payment.amount
    return _money(convert_between(payment.amount, payment.currency, bank.currency, rate_table).amount)


def _apply_settlement(
    *,
    invoice: Invoice,
    payments: list[Payment],
    rate_table: RateTable,
    created_by=None,
) -> tuple[list, str]:
    """
    Move money for verified legs: bank balances, invoice, journal.

    Caller holds the invoice lock. Returns (account deltas, journal status).
    """
    bank_ids = sorted({str(p.bank_account_id) for p in payments if p.bank_account_id})
    banks = {
        str(b.id): b
        for b in BankAccount.objects.select_for_update().filter(id__in=bank_ids).order_by("id")
    }

    applied_total = sum((p.amount_applied for p in payments), Decimal("0.00"))
    splits = [
        PaymentSplit(str(p.bank_account_id), _bank_amount(p, banks[str(p.bank_account_id)], rate_table))
        for p in payments
        if p.bank_account_id
    ]
    allocation = allocate(InvoiceSnapshot.from_invoice(invoice), applied_total, splits)

    for delta in allocation.per_account_deltas:
        apply_bank_delta(delta.account_id, delta.delta)

    paid_at = max(p.paid_at for p in payments)
    fields = apply_allocation(invoice, allocation, paid_at=paid_at)
    invoice.payment_method = payments[0].method
    invoice.payment_currency = payments[0].currency
    invoice.save(update_fields=fields + ["payment_method", "payment_currency", "updated_at"])

    journal_status = post_settlement_legs(invoice, payments, created_by=created_by)

    deltas = [
        {
            "bank_account_id": d.account_id,
            "currency": banks[d.account_id].currency,
            "delta": d.delta,
        }
        for d in allocation.per_account_deltas
    ]
    return deltas, journal_status


def _result(invoice: Invoice, payments: list[Payment], *, deltas, journal_status: str) -> dict:
    return {
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "status": invoice.status,
        "amount": invoice.amount,
        "amount_paid": invoice.amount_paid,
        "balance_due": invoice.balance_due,
        "is_fully_paid": invoice.amount_paid >= invoice.amount,
        "settlement_id": payments[0].settlement_id,
        "payment_ids": [p.id for p in payments],
        "verification_status": payments[0].verification_status,
        "account_deltas": deltas,
        "rate_degraded": any(p.rate_degraded for p in payments),
        "journal_status": journal_status,
    }


@transaction.atomic
def record_invoice_payment(
    *,
    context: RequestContext,
    invoice_id,
    amount,
    payment_currency: str,
    payment_method: str,
    bank_account_id=None,
    splits=None,
    payment_date=None,
    reference: str = "",
    notes: str = "",
) -> dict:
    amount = _money(amount)
    if payment_method not in dict(Payment.METHOD_CHOICES):
        raise PaymentValidationError(f"Unknown payment method: {payment_method}")
    currency = (payment_currency or "").strip().upper()
    if len(currency) != 3:
        raise PaymentValidationError("payment_currency must be a 3-letter ISO code")

    legs = _validate_legs(amount=amount, bank_account_id=bank_account_id, splits=splits)
    _validate_bank_accounts(legs)

    invoice = Invoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise InvoiceNotFoundError("Invoice not found")

    verified = _check_can_pay(context, invoice)
    _check_payable(invoice)

    rate_table = get_rate_snapshot()
    paid_at = payment_date or timezone.now()
    settlement_id = uuid.uuid4()

    try:
        payments = []
        for leg in legs:
            to_base = convert(leg.amount, currency, rate_table)
            applied = convert_between(leg.amount, currency, invoice.currency, rate_table)
            payments.append(
                Payment.objects.create(
                    invoice=invoice,
                    settlement_id=settlement_id,
                    amount=leg.amount,
                    currency=currency,
                    method=payment_method,
                    bank_account_id=leg.bank_account_id,
                    exchange_rate=to_base.rate,
                    amount_in_base=_money(to_base.amount),
                    amount_applied=_money(applied.amount),
                    rate_degraded=to_base.degraded or applied.degraded,
                    verification_status=(
                        Payment.VERIFICATION_VERIFIED if verified else Payment.VERIFICATION_PENDING
                    ),
                    verified_by=context.user if verified else None,
                    verified_at=timezone.now() if verified else None,
                    paid_at=paid_at,
                    reference=reference,
                    notes=notes,
                    created_by=context.user,
                )
            )
    except CurrencyValidationError as exc:
        raise PaymentValidationError(str(exc)) from exc

    if verified:
        deltas, journal_status = _apply_settlement(
            invoice=invoice, payments=payments, rate_table=rate_table, created_by=context.user
        )
    else:
        deltas, journal_status = [], JOURNAL_AWAITING_VERIFICATION

    logger.info(
        "Invoice payment recorded",
        extra={
            "invoice_id": str(invoice.id),
            "settlement_id": str(settlement_id),
            "amount": str(amount),
            "currency": currency,
            "legs": len(payments),
            "verified": verified,
            "status": invoice.status,
            "journal_status": journal_status,
        },
    )
    return _result(invoice, payments, deltas=deltas, journal_status=journal_status)


@transaction.atomic
def verify_payment(*, context: RequestContext, payment_id, status: str) -> dict:
    """
    Approve or reject an agent-submitted settlement (every leg sharing the
    payment's settlement_id). Approval applies it exactly like a staff
    payment; rejection only flags the legs.
    """
    context.require(CAP_PAYMENTS_VERIFY)

    if status not in (Payment.VERIFICATION_VERIFIED, Payment.VERIFICATION_REJECTED):
        raise PaymentValidationError(f"Unknown verification status: {status}")

    payment = Payment.objects.filter(pk=payment_id).only("invoice_id", "settlement_id").first()
    if payment is None:
        raise InvoiceNotFoundError("Payment not found")

    invoice = Invoice.objects.select_for_update().get(pk=payment.invoice_id)
    payments = list(
        Payment.objects.select_for_update()
        .filter(settlement_id=payment.settlement_id)
        .order_by("created_at", "id")
    )

    if any(p.verification_status != Payment.VERIFICATION_PENDING for p in payments):
        raise InvoiceStateError("Payment has already been verified or rejected")

    if status == Payment.VERIFICATION_VERIFIED:
        _check_payable(invoice)

    now = timezone.now()
    for p in payments:
        p.verification_status = status
        p.verified_by = context.user
        p.verified_at = now
        p.save(update_fields=["verification_status", "verified_by", "verified_at"])

    if status == Payment.VERIFICATION_VERIFIED:
        deltas, journal_status = _apply_settlement(
            invoice=invoice,
            payments=payments,
            rate_table=get_rate_snapshot(),
            created_by=context.user,
        )
    else:
        deltas, journal_status = [], JOURNAL_NOT_POSTED

    logger.info(
        "Payment verification recorded",
        extra={
            "invoice_id": str(invoice.id),
            "settlement_id": str(payment.settlement_id),
            "verification_status": status,
            "journal_status": journal_status,
        },
    )
    return _result(invoice, payments, deltas=deltas, journal_status=journal_status)
