"""
Keyword matcher.

Pure scoring of reviewer expertise against a submission's keywords. No
database access: callers pass keyword ids (or names) already filtered to
approved keywords.

    score = floor(100 * |S ∩ R| / |S|)     when both sets are non-empty
          = 0                              otherwise

Usage:
    from scisubmit.services.keyword_matcher import match_score, rank_reviewers

    match_score({1, 2, 3}, {2, 3, 9})   # 66
"""


def match_score(submission_keywords, reviewer_keywords) -> int:
    """Percentage of the submission's keywords the reviewer covers (0-100)."""
    s = set(submission_keywords or ())
    r = set(reviewer_keywords or ())
    if not s or not r:
        return 0
    return 100 * len(s & r) // len(s)


def ranking_key(candidate):
    """Sort key: best match first, then lightest load, then reviewer id."""
    return (-candidate.match_score, candidate.active_load, candidate.reviewer_id)


def rank_reviewers(candidates):
    """Return candidates ordered for the admin's picker.

    Each candidate needs ``match_score``, ``active_load`` and ``reviewer_id``.
    """
    return sorted(candidates, key=ranking_key)
