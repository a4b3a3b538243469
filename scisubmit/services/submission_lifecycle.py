"""
Submission Lifecycle Service.

Manages submission status transitions with:
  - Transition validation against SUBMISSION_TRANSITIONS
  - Status re-read from storage before every mutation
  - Outbox notifications written in the same unit of work

7 actions:
  submit_abstract, approve_abstract, reject_abstract, submit_full_paper,
  start_review, decide, withdraw

``start_review`` is only driven by reviewer assignment and ``decide`` only by
the final decision service; neither is exposed as a free-standing endpoint.

Usage:
    from scisubmit.services.submission_lifecycle import submit_abstract

    submission = submit_abstract(submission_id=12, author_id=4)
"""

import logging

from scisubmit.core.clock import get_clock
from scisubmit.core.exceptions import InvalidTransition, SubmissionNotFound
from scisubmit.models import db
from scisubmit.models.conference import Conference
from scisubmit.models.identity import User
from scisubmit.models.keyword import Keyword, SubmissionKeyword
from scisubmit.models.notification import NotificationKind
from scisubmit.models.submission import (
    SUBMISSION_TRANSITIONS,
    FullPaperVersion,
    Submission,
    SubmissionStatus,
)
from scisubmit.services.helpers.unit_of_work import unit_of_work
from scisubmit.services.notification import NotificationService

logger = logging.getLogger(__name__)

ENTITY = "submission"


# ── Validation ───────────────────────────────────────────────────────────


def validate_transition(submission: Submission, action: str, new_status=None) -> dict:
    """Validate whether an action is valid for the submission's current status.

    Never mutates. ``to`` is the single target, or None for ``decide``
    (three targets) unless ``new_status`` narrows it.
    """
    current = submission.status
    rule = SUBMISSION_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": current, "to": None,
                "reason": f"Unknown action: {action}"}

    targets = rule["to"]
    target = next(iter(targets)).value if len(targets) == 1 else None

    if current not in {s.value for s in rule["from"]}:
        return {"valid": False, "from": current, "to": target,
                "reason": f"Cannot '{action}' from status '{current}'"}

    if new_status is not None:
        new_status = SubmissionStatus(new_status)
        if new_status not in targets:
            return {"valid": False, "from": current, "to": new_status.value,
                    "reason": f"'{action}' cannot lead to '{new_status.value}'"}
        target = new_status.value

    return {"valid": True, "from": current, "to": target, "reason": None}


def available_actions(status) -> list[str]:
    """Actions whose source set contains ``status``."""
    status = SubmissionStatus(status)
    return [action for action, rule in SUBMISSION_TRANSITIONS.items() if status in rule["from"]]


def get_submission(submission_id, *, author_id=None) -> Submission:
    """Load a submission with its persisted status, optionally scoped to its author.

    A submission owned by someone else is indistinguishable from a missing one.
    """
    submission = db.session.get(Submission, submission_id)
    if submission is None or (author_id is not None and submission.author_id != author_id):
        raise SubmissionNotFound(submission_id)
    db.session.refresh(submission)
    return submission


def _apply(submission: Submission, action: str, new_status=None) -> str:
    """Validate and set the new status. Returns the previous status."""
    validation = validate_transition(submission, action, new_status)
    if not validation["valid"]:
        logger.warning(
            "Rejected submission transition: id=%s action=%s status=%s",
            submission.id, action, submission.status,
        )
        raise InvalidTransition(ENTITY, submission.id, action, submission.status, validation["reason"])
    previous = submission.status
    submission.status = validation["to"]
    return previous


def _notify_author(submission: Submission, kind: NotificationKind, **extra):
    payload = {"submission_id": submission.id, "title": submission.title, "status": submission.status}
    payload.update(extra)
    NotificationService.enqueue(
        kind, to_email=submission.author.email, submission_id=submission.id, payload=payload,
    )


def _resolve_keywords(conference_id, keyword_ids) -> list[int]:
    ids = list(dict.fromkeys(int(k) for k in keyword_ids))
    if not ids:
        return []
    found = {
        kw.id for kw in Keyword.query.filter(Keyword.id.in_(ids)).all()
        if kw.conference_id in (None, conference_id)
    }
    missing = [k for k in ids if k not in found]
    if missing:
        raise ValueError(f"Unknown keyword ids for conference {conference_id}: {missing}")
    return ids


def _replace_keywords(submission: Submission, keyword_ids) -> None:
    SubmissionKeyword.query.filter_by(submission_id=submission.id).delete()
    for kid in keyword_ids:
        db.session.add(SubmissionKeyword(submission_id=submission.id, keyword_id=kid))


# ── Draft (author) ───────────────────────────────────────────────────────


def create_draft(author_id, conference_id, title, abstract="", keywords=None, *, abstract_file_url=None):
    """Create a new submission in ``draft``."""
    if not (title or "").strip():
        raise ValueError("title is required")
    if db.session.get(User, author_id) is None:
        raise ValueError(f"Author not found: {author_id}")
    if db.session.get(Conference, conference_id) is None:
        raise ValueError(f"Conference not found: {conference_id}")
    keyword_ids = _resolve_keywords(conference_id, keywords or [])

    with unit_of_work():
        submission = Submission(
            conference_id=conference_id,
            author_id=author_id,
            title=title.strip(),
            abstract=abstract or "",
            abstract_file_url=abstract_file_url,
            status=SubmissionStatus.DRAFT.value,
        )
        db.session.add(submission)
        db.session.flush()
        _replace_keywords(submission, keyword_ids)

    logger.info("Draft created: submission=%s author=%s conference=%s", submission.id, author_id, conference_id)
    return submission


def update_draft(submission_id, author_id, *, title=None, abstract=None, keywords=None, abstract_file_url=None):
    """Edit a draft. Only fields that are passed change."""
    submission = get_submission(submission_id, author_id=author_id)
    if submission.status != SubmissionStatus.DRAFT:
        logger.warning("Rejected draft edit: id=%s status=%s", submission.id, submission.status)
        raise InvalidTransition(ENTITY, submission.id, "update_draft", submission.status,
                                "only drafts can be edited")
    if title is not None and not title.strip():
        raise ValueError("title is required")
    keyword_ids = _resolve_keywords(submission.conference_id, keywords) if keywords is not None else None

    with unit_of_work():
        if title is not None:
            submission.title = title.strip()
        if abstract is not None:
            submission.abstract = abstract
        if abstract_file_url is not None:
            submission.abstract_file_url = abstract_file_url
        if keyword_ids is not None:
            _replace_keywords(submission, keyword_ids)

    db.session.refresh(submission)
    logger.info("Draft updated: submission=%s", submission.id)
    return submission


# ── Abstract phase ───────────────────────────────────────────────────────


def submit_abstract(submission_id, author_id, *, clock=None):
    """draft → pending_abstract_review."""
    submission = get_submission(submission_id, author_id=author_id)
    now = get_clock(clock).now()

    with unit_of_work():
        previous = _apply(submission, "submit_abstract")
        submission.abstract_submitted_at = now
        _notify_author(submission, NotificationKind.ABSTRACT_SUBMITTED)

    logger.info("Abstract submitted: submission=%s %s → %s", submission.id, previous, submission.status)
    return submission


def approve_abstract(submission_id, admin_id, *, clock=None):
    """pending_abstract_review → abstract_approved."""
    submission = get_submission(submission_id)
    now = get_clock(clock).now()

    with unit_of_work():
        previous = _apply(submission, "approve_abstract")
        submission.abstract_reviewed_at = now
        _notify_author(submission, NotificationKind.ABSTRACT_APPROVED)

    logger.info("Abstract approved: submission=%s admin=%s %s → %s",
                submission.id, admin_id, previous, submission.status)
    return submission


def reject_abstract(submission_id, admin_id, reason, *, clock=None):
    """pending_abstract_review → abstract_rejected. ``reason`` is required."""
    submission = get_submission(submission_id)
    if not (reason or "").strip():
        raise InvalidTransition(ENTITY, submission.id, "reject_abstract", submission.status,
                                "reason is required")
    now = get_clock(clock).now()

    with unit_of_work():
        previous = _apply(submission, "reject_abstract")
        submission.abstract_reviewed_at = now
        submission.abstract_rejection_reason = reason.strip()
        _notify_author(submission, NotificationKind.ABSTRACT_REJECTED, reason=reason.strip())

    logger.info("Abstract rejected: submission=%s admin=%s %s → %s",
                submission.id, admin_id, previous, submission.status)
    return submission


# ── Full paper ───────────────────────────────────────────────────────────


def submit_full_paper(submission_id, author_id, file_url, file_name, file_size=None, *, clock=None):
    """abstract_approved → full_paper_submitted, storing a new current version."""
    submission = get_submission(submission_id, author_id=author_id)
    if not file_url:
        raise ValueError("file_url is required")
    now = get_clock(clock).now()

    with unit_of_work():
        previous = _apply(submission, "submit_full_paper")
        last = (
            FullPaperVersion.query.filter_by(submission_id=submission.id)
            .order_by(FullPaperVersion.version_number.desc())
            .first()
        )
        FullPaperVersion.query.filter_by(submission_id=submission.id, is_current_version=True).update(
            {"is_current_version": False}, synchronize_session="fetch",
        )
        version = FullPaperVersion(
            submission_id=submission.id,
            version_number=(last.version_number + 1) if last else 1,
            file_url=file_url,
            file_name=file_name or "",
            file_size=file_size,
            uploaded_by=author_id,
            uploaded_at=now,
            is_current_version=True,
        )
        db.session.add(version)
        submission.full_paper_submitted_at = now
        _notify_author(submission, NotificationKind.FULL_PAPER_SUBMITTED,
                       version_number=version.version_number, file_name=version.file_name)

    logger.info("Full paper submitted: submission=%s version=%s %s → %s",
                submission.id, version.version_number, previous, submission.status)
    return submission


# ── Withdrawal ───────────────────────────────────────────────────────────


def withdraw_submission(submission_id, author_id, reason=None):
    """Any non-terminal status → withdrawn."""
    submission = get_submission(submission_id, author_id=author_id)

    with unit_of_work():
        previous = _apply(submission, "withdraw")
        submission.withdrawal_reason = (reason or "").strip() or None
        _notify_author(submission, NotificationKind.SUBMISSION_WITHDRAWN, reason=submission.withdrawal_reason)

    logger.info("Submission withdrawn: submission=%s %s → %s", submission.id, previous, submission.status)
    return submission


# ── Internal transitions (no commit: the caller owns the unit of work) ───


def start_review(submission: Submission) -> bool:
    """Move to under_review if allowed. Returns True when the status changed.

    Already under_review is a no-op; pending_abstract_review stays put.
    """
    if submission.status == SubmissionStatus.UNDER_REVIEW:
        return False
    validation = validate_transition(submission, "start_review")
    if not validation["valid"]:
        return False
    previous = _apply(submission, "start_review")
    logger.info("Review started: submission=%s %s → %s", submission.id, previous, submission.status)
    return True


def apply_decision_status(submission: Submission, new_status) -> str:
    """``decide``: under_review → accepted | revision_required | rejected."""
    return _apply(submission, "decide", new_status)
