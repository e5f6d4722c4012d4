# accounting/services/outbox_service.py

"""
======================================================
PATH: accounting/services/outbox_service.py
======================================================
JOURNAL OUTBOX

Postings that failed at settlement time are queued here and retried later
by `manage.py retry_journal_postings`.

Handlers:
- each posting kind has one handler, registered by the app that owns the
  source rows (billing registers invoice + settlement handlers in ready())
- a handler takes the source_id and returns the JournalEntry it posted,
  or the one that already exists for that source

Retry outcomes:
- handler returns an entry / IdempotencyError  -> POSTED
- JournalImbalanceError                         -> FAILED at once (bug, not transient)
- other AccountingServiceError                  -> attempts += 1; FAILED at max
"""

from __future__ import annotations

import logging
from typing import Callable

from django.conf import settings
from django.db import transaction

from accounting.models.journal import JournalEntry
from accounting.models.outbox import PendingJournalPosting
from accounting.services.exceptions import (
    AccountingServiceError,
    IdempotencyError,
    JournalImbalanceError,
)
from accounting.services.journal_poster import posting_enabled

logger = logging.getLogger(__name__)

OutboxHandler = Callable[[str], JournalEntry | None]

_HANDLERS: dict[str, OutboxHandler] = {}


def register_outbox_handler(kind: str, handler: OutboxHandler) -> None:
    _HANDLERS[kind] = handler


def get_outbox_handler(kind: str) -> OutboxHandler | None:
    return _HANDLERS.get(kind)


def max_attempts() -> int:
    return int(getattr(settings, "JOURNAL_OUTBOX_MAX_ATTEMPTS", 5))


def enqueue_posting(*, kind: str, source_id, error: Exception | str) -> PendingJournalPosting:
    """Queue (or re-queue) one posting. Call inside the settlement transaction."""
    message = str(error)[:2000]
    row, created = PendingJournalPosting.objects.get_or_create(
        posting_kind=kind,
        source_id=str(source_id),
        defaults={"last_error": message},
    )
    if not created and row.status != PendingJournalPosting.STATUS_POSTED:
        row.status = PendingJournalPosting.STATUS_PENDING
        row.last_error = message
        row.save(update_fields=["status", "last_error", "updated_at"])

    logger.warning(
        "Journal posting queued",
        extra={"posting_kind": kind, "source_id": str(source_id), "error": message},
    )
    return row


def _mark_posted(row: PendingJournalPosting, entry: JournalEntry | None) -> None:
    row.status = PendingJournalPosting.STATUS_POSTED
    row.journal_entry = entry
    row.last_error = ""
    row.attempts += 1
    row.save(update_fields=["status", "journal_entry", "last_error", "attempts", "updated_at"])


def _mark_attempt_failed(row: PendingJournalPosting, error: Exception, *, final: bool = False) -> None:
    row.attempts += 1
    row.last_error = str(error)[:2000]
    if final or row.attempts >= max_attempts():
        row.status = PendingJournalPosting.STATUS_FAILED
    row.save(update_fields=["status", "attempts", "last_error", "updated_at"])


@transaction.atomic
def retry_posting(row_id) -> str:
    """Retry one queued posting. Returns its resulting status."""
    row = PendingJournalPosting.objects.select_for_update().get(pk=row_id)
    if row.status != PendingJournalPosting.STATUS_PENDING:
        return row.status

    handler = get_outbox_handler(row.posting_kind)
    if handler is None:
        _mark_attempt_failed(
            row, AccountingServiceError(f"No handler for {row.posting_kind}"), final=True
        )
        logger.error("No outbox handler registered", extra={"posting_kind": row.posting_kind})
        return row.status

    try:
        with transaction.atomic():
            entry = handler(row.source_id)
    except IdempotencyError:
        _mark_posted(row, None)
    except JournalImbalanceError as exc:
        _mark_attempt_failed(row, exc, final=True)
        logger.error(
            "Queued posting is unbalanced",
            extra={"posting_kind": row.posting_kind, "source_id": row.source_id, "error": str(exc)},
        )
    except AccountingServiceError as exc:
        _mark_attempt_failed(row, exc)
        logger.warning(
            "Queued posting retry failed",
            extra={
                "posting_kind": row.posting_kind,
                "source_id": row.source_id,
                "attempts": row.attempts,
                "error": str(exc),
            },
        )
    else:
        _mark_posted(row, entry)
        logger.info(
            "Queued posting written",
            extra={"posting_kind": row.posting_kind, "source_id": row.source_id},
        )

    return row.status


def retry_pending_postings(limit: int | None = None) -> dict[str, int]:
    """Retry pending rows oldest first; one transaction per row."""
    counts = {
        PendingJournalPosting.STATUS_POSTED: 0,
        PendingJournalPosting.STATUS_PENDING: 0,
        PendingJournalPosting.STATUS_FAILED: 0,
    }
    if not posting_enabled():
        logger.info("Accounting posting disabled; outbox retry skipped")
        return counts

    ids = PendingJournalPosting.objects.filter(
        status=PendingJournalPosting.STATUS_PENDING
    ).values_list("id", flat=True)
    if limit:
        ids = ids[:limit]

    for row_id in list(ids):
        counts[retry_posting(row_id)] += 1
    return counts


def outstanding_postings():
    return PendingJournalPosting.objects.exclude(
        status=PendingJournalPosting.STATUS_POSTED
    ).order_by("status", "created_at")
