# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Header of one balanced accounting transaction.

Guarantees:
- Immutable once created (no updates, no deletes)
- Idempotency via reference uniqueness ("TYPE:id", when provided)
- posted_at is the accounting effective date
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class JournalEntry(models.Model):
    SOURCE_MANUAL = "manual"
    SOURCE_INVOICE = "invoice"
    SOURCE_PAYMENT = "payment"
    SOURCE_AGENT_INVOICE = "agent_invoice"
    SOURCE_AGENT_PAYMENT = "agent_payment"

    SOURCE_TYPES = [
        (SOURCE_MANUAL, "Manual"),
        (SOURCE_INVOICE, "Invoice issued"),
        (SOURCE_PAYMENT, "Customer payment"),
        (SOURCE_AGENT_INVOICE, "Agent invoice received"),
        (SOURCE_AGENT_PAYMENT, "Agent payment"),
    ]

    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="Idempotency key, e.g. PAYMENT:<uuid>",
    )

    source_type = models.CharField(
        max_length=20, choices=SOURCE_TYPES, default=SOURCE_MANUAL
    )

    description = models.TextField()

    posted_at = models.DateTimeField(default=timezone.now)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    is_posted = models.BooleanField(default=True)

    class Meta:
        ordering = ["-posted_at", "-created_at"]
        indexes = [
            models.Index(fields=["posted_at"], name="journal_posted_at_idx"),
            models.Index(fields=["source_type", "posted_at"], name="journal_source_posted_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["reference"],
                condition=Q(reference__isnull=False) & ~Q(reference=""),
                name="uniq_journal_reference_not_blank",
            )
        ]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"

    def __str__(self):
        return f"JE #{self.id} {self.reference or ''} ({self.posted_at.date()})"

    def clean(self):
        if self.reference is not None:
            self.reference = str(self.reference).strip() or None

        self.description = (self.description or "").strip()
        if not self.description:
            raise ValidationError("Journal entry description is required")

        if self.posted_at and timezone.is_naive(self.posted_at):
            self.posted_at = timezone.make_aware(
                self.posted_at, timezone.get_current_timezone()
            )

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValidationError("JournalEntry records are immutable once created")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("JournalEntry records are immutable and cannot be deleted")
