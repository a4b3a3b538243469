"""
SciSubmit Review Core
Notification Service.

The review core never talks to a mail server. Domain operations call
``NotificationService.enqueue`` which only adds an ``EmailNotification``
outbox row to the current session; the row commits or rolls back together
with the state change that caused it. Delivery happens later through
``dispatch_pending`` and a ``NotificationEmitter`` supplied by the host
application. Delivery results never change submission or assignment state.

When no emitter is configured, ``LoggingEmitter`` logs each notification and
reports success (dev/test mode).
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from flask import current_app, has_app_context
from sqlalchemy import or_

from scisubmit.core.clock import get_clock
from scisubmit.models import db
from scisubmit.models.identity import User, UserRole
from scisubmit.models.notification import EmailNotification, NotificationKind

logger = logging.getLogger(__name__)


class NotificationEmitter(Protocol):
    def notify(
        self,
        kind: str,
        to_email: str,
        submission_id: int | None,
        reviewer_id: int | None,
        payload: dict,
    ) -> bool:
        """Deliver one notification; return False (or raise) on failure."""


class LoggingEmitter:
    """Log-only emitter used when no real delivery channel is wired in."""

    def __init__(self, sender: str | None = None) -> None:
        self.sender = sender

    def notify(self, kind, to_email, submission_id, reviewer_id, payload) -> bool:
        logger.info(
            "Notification (log only): kind=%s from=%s to=%s submission=%s reviewer=%s",
            kind, self.sender, to_email, submission_id, reviewer_id,
        )
        return True


# ═══════════════════════════════════════════════════════════════════════════
#  Subject templates
# ═══════════════════════════════════════════════════════════════════════════

_SUBJECTS: dict[str, str] = {
    NotificationKind.ABSTRACT_SUBMITTED: "Abstract received: {title}",
    NotificationKind.ABSTRACT_APPROVED: "Abstract approved: {title}",
    NotificationKind.ABSTRACT_REJECTED: "Abstract not accepted: {title}",
    NotificationKind.FULL_PAPER_SUBMITTED: "Full paper received: {title} (v{version_number})",
    NotificationKind.REVIEW_INVITATION: "Invitation to review: {title}",
    NotificationKind.REVIEW_ACCEPTED: "Reviewer accepted: {title}",
    NotificationKind.REVIEW_REJECTED: "Reviewer declined: {title}",
    NotificationKind.REVIEW_COMPLETED: "Review completed: {title}",
    NotificationKind.FINAL_DECISION: "Decision on your submission: {title}",
    NotificationKind.SUBMISSION_WITHDRAWN: "Submission withdrawn: {title}",
}


class _SafeDict(dict):
    """dict subclass that returns '{key}' for missing keys in format_map."""

    def __missing__(self, key):
        return "{" + key + "}"


def _jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for key, value in payload.items():
        out[key] = value.isoformat() if hasattr(value, "isoformat") else value
    return out


class NotificationService:
    """Stateless service class for outbox operations."""

    # ── Enqueue ───────────────────────────────────────────────────────────

    @staticmethod
    def enqueue(
        kind: NotificationKind | str,
        *,
        to_email: str,
        submission_id: int | None = None,
        reviewer_id: int | None = None,
        payload: dict | None = None,
    ) -> EmailNotification:
        """
        Add one outbox row to the current session.

        Does NOT commit: the caller's unit of work decides whether the
        notification exists.
        """
        kind = NotificationKind(kind)
        data = _jsonable(payload or {})
        row = EmailNotification(
            kind=kind.value,
            to_email=to_email,
            subject=_SUBJECTS[kind].format_map(_SafeDict(data)),
            body="",
            payload=data,
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            status="pending",
            attempts=0,
        )
        db.session.add(row)
        return row

    @staticmethod
    def enqueue_for_admins(kind, *, submission_id=None, reviewer_id=None, payload=None):
        """Enqueue one row per active admin."""
        admins = (
            User.query.filter_by(role=UserRole.ADMIN.value, is_active=True)
            .order_by(User.id)
            .all()
        )
        return [
            NotificationService.enqueue(
                kind,
                to_email=admin.email,
                submission_id=submission_id,
                reviewer_id=reviewer_id,
                payload=payload,
            )
            for admin in admins
        ]

    # ── Query ─────────────────────────────────────────────────────────────

    @staticmethod
    def list_pending(limit=50, max_attempts=None):
        """Pending rows plus failed rows that still have attempts left, oldest first."""
        q = EmailNotification.query
        if max_attempts:
            q = q.filter(or_(
                EmailNotification.status == "pending",
                (EmailNotification.status == "failed") & (EmailNotification.attempts < max_attempts),
            ))
        else:
            q = q.filter_by(status="pending")
        return q.order_by(EmailNotification.id).limit(limit).all()

    # ── Dispatch ──────────────────────────────────────────────────────────

    @staticmethod
    def dispatch_pending(emitter: NotificationEmitter | None = None, limit: int | None = None, *, clock=None):
        """
        Deliver queued notifications through ``emitter``.

        Returns:
            {"sent": int, "failed": int}
        """
        if emitter is None:
            sender = current_app.config.get("MAIL_DEFAULT_SENDER") if has_app_context() else None
            emitter = LoggingEmitter(sender)
        max_attempts = None
        if has_app_context():
            if limit is None:
                limit = current_app.config.get("NOTIFICATION_BATCH_SIZE", 50)
            max_attempts = current_app.config.get("NOTIFICATION_MAX_ATTEMPTS")
        limit = limit or 50

        now = get_clock(clock).now()
        sent = failed = 0
        for row in NotificationService.list_pending(limit=limit, max_attempts=max_attempts):
            row.attempts = (row.attempts or 0) + 1
            try:
                ok = emitter.notify(row.kind, row.to_email, row.submission_id, row.reviewer_id, row.payload or {})
                error = None if ok else "emitter reported failure"
            except Exception as exc:
                ok = False
                error = str(exc)[:1000]

            if ok:
                row.status = "sent"
                row.sent_at = now
                row.error_message = None
                sent += 1
                logger.info("Notification sent: kind=%s to=%s", row.kind, row.to_email,
                            extra={"notification_id": row.id, "submission_id": row.submission_id})
            else:
                row.status = "failed"
                row.error_message = error
                failed += 1
                logger.error(
                    "Notification failed: id=%s kind=%s to=%s attempts=%s error=%s",
                    row.id, row.kind, row.to_email, row.attempts, error,
                )
        db.session.commit()
        return {"sent": sent, "failed": failed}
