# accounting/models/outbox.py

"""
======================================================
PATH: accounting/models/outbox.py
======================================================
PENDING JOURNAL POSTING (OUTBOX)

A settlement that committed without its journal entry leaves one row here.

- (posting_kind, source_id) is unique: one pending posting per source
- the retry command re-runs the posting and flips status to POSTED
- rows that keep failing past JOURNAL_OUTBOX_MAX_ATTEMPTS become FAILED
  and show up on the reconciliation report
"""

from __future__ import annotations

from django.db import models


class PendingJournalPosting(models.Model):
    KIND_INVOICE_ISSUED = "invoice_issued"
    KIND_SETTLEMENT_LEG = "settlement_leg"

    KINDS = [
        (KIND_INVOICE_ISSUED, "Invoice issued"),
        (KIND_SETTLEMENT_LEG, "Settlement leg"),
    ]

    STATUS_PENDING = "pending"
    STATUS_POSTED = "posted"
    STATUS_FAILED = "failed"

    STATUSES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_POSTED, "Posted"),
        (STATUS_FAILED, "Failed"),
    ]

    posting_kind = models.CharField(max_length=32, choices=KINDS)
    source_id = models.CharField(max_length=64)

    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_PENDING)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["posting_kind", "source_id"],
                name="uniq_outbox_kind_source",
            )
        ]
        indexes = [models.Index(fields=["status", "created_at"], name="outbox_status_created_idx")]

    def __str__(self):
        return f"{self.posting_kind}:{self.source_id} [{self.status}]"
