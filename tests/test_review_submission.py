"""
Review submission: scorecard validation, averaging and assignment completion.
"""

from decimal import Decimal

import pytest

from factories import CRITERIA, make_assignment, make_submission
from scisubmit.core.exceptions import AssignmentNotFound, IncompleteOrOutOfRange, NotEligible
from scisubmit.models import db
from scisubmit.models.conference import ReviewCriteria
from scisubmit.models.notification import EmailNotification
from scisubmit.models.review import Review, ReviewAssignment, ReviewScore
from scisubmit.services.review_service import average, list_reviews, submit_review, validate_scores
from scisubmit.utils.deadlines import ensure_utc

FULL = {"Originality": 4, "Methodology": 5, "Clarity": 3}


@pytest.fixture()
def accepted(world):
    sub = make_submission(world.author, world.conference, status="under_review", title="Sparse Widgets")
    return make_assignment(sub, world.reviewer_a, status="accepted")


class TestValidateScores:
    def _criteria(self, world):
        return world.conference.active_criteria()

    def test_full_scorecard(self, world):
        assert validate_scores(self._criteria(world), FULL) == FULL

    def test_first_missing_criterion_is_named(self, world):
        with pytest.raises(IncompleteOrOutOfRange) as exc_info:
            validate_scores(self._criteria(world), {"Clarity": 3})
        assert exc_info.value.criterion == "Originality"

    @pytest.mark.parametrize("bad", [0, 6, -1, 3.5, "4", True, None])
    def test_out_of_range_or_wrong_type(self, world, bad):
        with pytest.raises(IncompleteOrOutOfRange) as exc_info:
            validate_scores(self._criteria(world), dict(FULL, Methodology=bad))
        assert exc_info.value.criterion == "Methodology"

    def test_unknown_criterion_is_rejected(self, world):
        with pytest.raises(IncompleteOrOutOfRange, match="unknown criterion 'Humour'") as exc_info:
            validate_scores(self._criteria(world), dict(FULL, Humour=1))
        assert exc_info.value.criterion == "Humour"

    def test_missing_criterion_is_reported_before_unknown_key(self, world):
        with pytest.raises(IncompleteOrOutOfRange) as exc_info:
            validate_scores(self._criteria(world), {"Originality": 4, "Humour": 1})
        assert exc_info.value.criterion == "Methodology"

    def test_inactive_criterion_not_required(self, world):
        crit = ReviewCriteria.query.filter_by(conference_id=world.conference.id, name="Clarity").one()
        crit.is_active = False
        db.session.commit()

        criteria = world.conference.active_criteria()

        assert [c.name for c in criteria] == list(CRITERIA[:2])
        assert validate_scores(criteria, {"Originality": 4, "Methodology": 5}) == {"Originality": 4, "Methodology": 5}


class TestAverage:
    def test_two_places(self):
        assert average([4, 5, 3]) == Decimal("4.00")
        assert average([4, 5, 5]) == Decimal("4.67")

    def test_empty(self):
        assert average([]) is None


class TestSubmitReview:
    def test_completes_assignment(self, world, accepted, clock):
        review = submit_review(accepted.id, world.reviewer_a.id, FULL, "accept", "Nice work", "Solid")

        assert review.average_score == Decimal("4.00")
        assert review.recommendation == "Accept"
        assert ensure_utc(review.submitted_at) == clock.now()
        assignment = db.session.get(ReviewAssignment, accepted.id)
        assert assignment.status == "completed"
        assert ensure_utc(assignment.completed_at) == clock.now()
        stored = {s.criteria_name: s.score for s in ReviewScore.query.filter_by(review_id=review.id)}
        assert stored == FULL

    def test_notifies_author_and_admins(self, world, accepted):
        submit_review(accepted.id, world.reviewer_a.id, FULL, "Minor")

        rows = EmailNotification.query.filter_by(kind="ReviewCompleted").order_by(EmailNotification.id).all()
        assert [r.to_email for r in rows] == [world.author.email, world.admin.email]
        assert rows[0].payload["recommendation"] == "MinorRevision"
        assert rows[0].payload["average_score"] == 4.0

    def test_unknown_recommendation_is_stored_as_none(self, world, accepted):
        review = submit_review(accepted.id, world.reviewer_a.id, FULL, "maybe?")
        assert review.recommendation is None

    @pytest.mark.parametrize("status", ["pending", "rejected", "completed"])
    def test_not_eligible_unless_accepted(self, world, status):
        sub = make_submission(world.author, world.conference, status="under_review")
        assignment = make_assignment(sub, world.reviewer_a, status=status)

        with pytest.raises(NotEligible):
            submit_review(assignment.id, world.reviewer_a.id, FULL)

        assert Review.query.count() == 0
        assert EmailNotification.query.count() == 0

    def test_other_reviewer(self, world, accepted):
        with pytest.raises(AssignmentNotFound):
            submit_review(accepted.id, world.reviewer_b.id, FULL)

    def test_unknown_assignment(self, world):
        with pytest.raises(AssignmentNotFound):
            submit_review(4242, world.reviewer_a.id, FULL)

    def test_invalid_scorecard_leaves_assignment_open(self, world, accepted):
        with pytest.raises(IncompleteOrOutOfRange):
            submit_review(accepted.id, world.reviewer_a.id, {"Originality": 9, "Methodology": 1})

        assert db.session.get(ReviewAssignment, accepted.id).status == "accepted"
        assert Review.query.count() == 0

    def test_list_reviews_only_completed(self, world, accepted):
        submit_review(accepted.id, world.reviewer_a.id, FULL, "Accept")

        reviews = list_reviews(accepted.submission_id)

        assert [r.reviewer_id for r in reviews] == [world.reviewer_a.id]
