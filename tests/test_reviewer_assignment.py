"""
Reviewer assignment engine.

Precondition order (first failure wins):
    deadline → submission exists → submission status → reviewer eligibility → duplicate

Plus status side effects, outbox atomicity, candidate ranking and the
reviewer's accept / decline responses.
"""

from datetime import timedelta
from unittest import mock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from factories import make_assignment, make_submission, make_user
from scisubmit.core.exceptions import (
    AlreadyAssigned,
    AssignmentNotFound,
    DeadlineNotFuture,
    InvalidSubmissionStatus,
    InvalidTransition,
    PersistenceError,
    ReviewerNotEligible,
    SubmissionNotFound,
)
from scisubmit.models import db
from scisubmit.models.notification import EmailNotification
from scisubmit.models.review import ReviewAssignment
from scisubmit.models.submission import Submission
from scisubmit.services import assignment_service as svc
from scisubmit.utils.deadlines import ensure_utc


def _future(clock, days=14):
    return clock.now() + timedelta(days=days)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Preconditions and their order
# ═════════════════════════════════════════════════════════════════════════════


class TestPreconditions:
    def test_deadline_checked_before_everything(self, world, clock):
        # Unknown submission and unknown reviewer, but the deadline fails first.
        with pytest.raises(DeadlineNotFuture):
            svc.assign_reviewer(999, 888, clock.now(), world.admin.id)

    def test_deadline_equal_to_now_is_not_future(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        with pytest.raises(DeadlineNotFuture):
            svc.assign_reviewer(sub.id, world.reviewer_a.id, clock.now(), world.admin.id)

    def test_naive_deadline_is_read_in_server_zone(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        # 16:30 Ho Chi Minh wall clock is 09:30 UTC, 30 minutes after NOW.
        assignment = svc.assign_reviewer(sub.id, world.reviewer_a.id, "2026-03-02T16:30", world.admin.id)
        assert ensure_utc(assignment.deadline) == clock.now() + timedelta(minutes=30)

    def test_naive_deadline_in_the_past_for_server_zone(self, world):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        # 15:30 wall clock is 08:30 UTC, already past although it would be future if read as UTC.
        with pytest.raises(DeadlineNotFuture):
            svc.assign_reviewer(sub.id, world.reviewer_a.id, "2026-03-02T15:30", world.admin.id)

    def test_submission_not_found(self, world, clock):
        with pytest.raises(SubmissionNotFound):
            svc.assign_reviewer(999, 888, _future(clock), world.admin.id)

    @pytest.mark.parametrize("status", [
        "draft", "abstract_rejected", "revision_required", "accepted", "rejected", "withdrawn",
    ])
    def test_status_checked_before_reviewer(self, world, clock, status):
        sub = make_submission(world.author, world.conference, status=status)
        with pytest.raises(InvalidSubmissionStatus):
            svc.assign_reviewer(sub.id, 888, _future(clock), world.admin.id)

    def test_reviewer_not_found(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        with pytest.raises(ReviewerNotEligible) as exc_info:
            svc.assign_reviewer(sub.id, 888, _future(clock), world.admin.id)
        assert exc_info.value.reason == "not_found"

    def test_reviewer_wrong_role(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        with pytest.raises(ReviewerNotEligible) as exc_info:
            svc.assign_reviewer(sub.id, world.author.id, _future(clock), world.admin.id)
        assert exc_info.value.reason == "wrong_role"

    def test_reviewer_inactive(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        retired = make_user("reviewer", active=False)
        with pytest.raises(ReviewerNotEligible) as exc_info:
            svc.assign_reviewer(sub.id, retired.id, _future(clock), world.admin.id)
        assert exc_info.value.reason == "inactive"

    def test_duplicate_pair(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock), world.admin.id)

        with pytest.raises(AlreadyAssigned):
            svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock, 20), world.admin.id)

        assert ReviewAssignment.query.filter_by(submission_id=sub.id).count() == 1
        assert EmailNotification.query.filter_by(kind="ReviewInvitation").count() == 1

    def test_declined_pair_still_counts_as_assigned(self, world, clock):
        sub = make_submission(world.author, world.conference, status="under_review")
        make_assignment(sub, world.reviewer_a, status="rejected")

        with pytest.raises(AlreadyAssigned):
            svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock), world.admin.id)


# ═════════════════════════════════════════════════════════════════════════════
# 2. Success path and status side effects
# ═════════════════════════════════════════════════════════════════════════════


class TestAssignSuccess:
    @pytest.mark.parametrize("status,expected", [
        ("abstract_approved", "under_review"),
        ("full_paper_submitted", "under_review"),
        ("under_review", "under_review"),
        ("pending_abstract_review", "pending_abstract_review"),
    ])
    def test_status_side_effect(self, world, clock, status, expected):
        sub = make_submission(world.author, world.conference, status=status)

        assignment = svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock), world.admin.id)

        assert assignment.status == "pending"
        assert db.session.get(Submission, sub.id).status == expected

    def test_assignment_fields_and_invitation(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved", title="Deep Widgets")
        deadline = _future(clock)

        assignment = svc.assign_reviewer(sub.id, world.reviewer_a.id, deadline, world.admin.id)

        assert ensure_utc(assignment.invited_at) == clock.now()
        assert assignment.invited_by == world.admin.id
        assert ensure_utc(assignment.deadline) == deadline
        row = EmailNotification.query.one()
        assert row.kind == "ReviewInvitation"
        assert row.to_email == world.reviewer_a.email
        assert row.reviewer_id == world.reviewer_a.id
        assert row.payload["title"] == "Deep Widgets"
        assert row.payload["deadline"] == deadline.isoformat()
        assert "Deep Widgets" in row.subject


# ═════════════════════════════════════════════════════════════════════════════
# 3. Atomicity
# ═════════════════════════════════════════════════════════════════════════════


class TestAtomicity:
    def test_concurrent_duplicate_surfaces_as_already_assigned(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with mock.patch.object(db.session, "commit", side_effect=err):
            with pytest.raises(AlreadyAssigned):
                svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock), world.admin.id)

        assert ReviewAssignment.query.count() == 0
        assert EmailNotification.query.count() == 0
        assert db.session.get(Submission, sub.id).status == "abstract_approved"

    def test_storage_failure_is_persistence_error_with_no_partial_writes(self, world, clock):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        err = OperationalError("COMMIT", {}, Exception("database is locked"))

        with mock.patch.object(db.session, "commit", side_effect=err):
            with pytest.raises(PersistenceError):
                svc.assign_reviewer(sub.id, world.reviewer_a.id, _future(clock), world.admin.id)

        assert ReviewAssignment.query.count() == 0
        assert EmailNotification.query.count() == 0
        assert db.session.get(Submission, sub.id).status == "abstract_approved"


# ═════════════════════════════════════════════════════════════════════════════
# 4. Candidate ranking
# ═════════════════════════════════════════════════════════════════════════════


class TestAvailableReviewers:
    def test_ranking_by_score_then_load(self, world):
        kw = world.kw
        sub = make_submission(world.author, world.conference, status="abstract_approved",
                              keywords=(kw.ml, kw.nlp, kw.db))
        # reviewer_d covers the same keyword as reviewer_b but is busier.
        reviewer_d = make_user("reviewer", keywords=(kw.ml,))
        other = make_submission(world.author, world.conference, status="under_review")
        make_assignment(other, reviewer_d, status="accepted")

        ranked = svc.get_available_reviewers(sub.id)

        assert [r.reviewer_id for r in ranked] == [
            world.reviewer_a.id, world.reviewer_b.id, reviewer_d.id, world.reviewer_c.id,
        ]
        assert [r.match_score for r in ranked] == [66, 33, 33, 0]
        assert [r.active_load for r in ranked] == [0, 0, 1, 0]
        assert ranked[0].matched_keywords == ["machine learning", "nlp"]

    def test_only_approved_keywords_count(self, world):
        kw = world.kw
        sub = make_submission(world.author, world.conference, status="abstract_approved",
                              keywords=(kw.ml, kw.pending))
        expert = make_user("reviewer", keywords=(kw.pending,))

        ranked = {r.reviewer_id: r for r in svc.get_available_reviewers(sub.id)}

        assert ranked[expert.id].match_score == 0
        assert ranked[world.reviewer_b.id].match_score == 100

    def test_completed_and_pending_work_is_not_load(self, world):
        sub = make_submission(world.author, world.conference, status="under_review")
        make_assignment(sub, world.reviewer_c, status="completed")
        other = make_submission(world.author, world.conference, status="under_review")
        make_assignment(other, world.reviewer_c, status="pending")

        ranked = {r.reviewer_id: r for r in svc.get_available_reviewers(sub.id)}

        assert ranked[world.reviewer_c.id].active_load == 0
        assert ranked[world.reviewer_c.id].already_assigned is True

    def test_inactive_and_non_reviewers_excluded(self, world):
        sub = make_submission(world.author, world.conference, status="abstract_approved")
        retired = make_user("reviewer", active=False)

        ids = {r.reviewer_id for r in svc.get_available_reviewers(sub.id)}

        assert retired.id not in ids
        assert world.admin.id not in ids
        assert ids == {world.reviewer_a.id, world.reviewer_b.id, world.reviewer_c.id}

    def test_unknown_submission(self):
        with pytest.raises(SubmissionNotFound):
            svc.get_available_reviewers(4242)


# ═════════════════════════════════════════════════════════════════════════════
# 5. Reviewer response
# ═════════════════════════════════════════════════════════════════════════════


class TestReviewerResponse:
    def test_accept(self, world, clock):
        sub = make_submission(world.author, world.conference, status="under_review")
        assignment = make_assignment(sub, world.reviewer_a)

        svc.accept_assignment(assignment.id, world.reviewer_a.id)

        assert assignment.status == "accepted"
        assert ensure_utc(assignment.accepted_at) == clock.now()
        rows = EmailNotification.query.filter_by(kind="ReviewAccepted").all()
        assert [r.to_email for r in rows] == [world.admin.email]

    def test_decline_records_reason(self, world):
        sub = make_submission(world.author, world.conference, status="under_review")
        assignment = make_assignment(sub, world.reviewer_a)

        svc.decline_assignment(assignment.id, world.reviewer_a.id, "Conflict of interest")

        assert assignment.status == "rejected"
        assert assignment.rejection_reason == "Conflict of interest"
        assert EmailNotification.query.filter_by(kind="ReviewRejected").count() == 1

    def test_other_reviewer_cannot_respond(self, world):
        sub = make_submission(world.author, world.conference, status="under_review")
        assignment = make_assignment(sub, world.reviewer_a)

        with pytest.raises(AssignmentNotFound):
            svc.accept_assignment(assignment.id, world.reviewer_b.id)

    @pytest.mark.parametrize("status", ["accepted", "rejected", "completed"])
    def test_only_pending_can_be_answered(self, world, status):
        sub = make_submission(world.author, world.conference, status="under_review")
        assignment = make_assignment(sub, world.reviewer_a, status=status)

        with pytest.raises(InvalidTransition):
            svc.accept_assignment(assignment.id, world.reviewer_a.id)
        with pytest.raises(InvalidTransition):
            svc.decline_assignment(assignment.id, world.reviewer_a.id)
        assert db.session.get(ReviewAssignment, assignment.id).status == status

    def test_list_and_overdue(self, world, clock):
        sub = make_submission(world.author, world.conference, status="under_review")
        a = make_assignment(sub, world.reviewer_a)
        make_assignment(sub, world.reviewer_b, status="accepted")

        assert [x.id for x in svc.list_assignments(submission_id=sub.id, status="pending")] == [a.id]
        assert len(svc.list_assignments(reviewer_id=world.reviewer_b.id)) == 1

        assert svc.is_overdue(a) is False
        clock.advance(timedelta(days=15))
        assert svc.is_overdue(a) is True
        # Overdue is informational: nothing changed.
        assert db.session.get(ReviewAssignment, a.id).status == "pending"
