"""
Conference plan updates.

Admin-entered timeline dates are wall-clock values in the server timezone
unless marked otherwise; they are normalised with ``to_utc`` before storage,
the same way reviewer deadlines are.
"""

import logging

from scisubmit.models import db
from scisubmit.models.conference import PLAN_DATE_FIELDS, Conference, ConferencePlan
from scisubmit.services.helpers.unit_of_work import unit_of_work
from scisubmit.utils.deadlines import normalize_input

logger = logging.getLogger(__name__)


def get_current_plan(conference_id):
    """Latest plan of a conference, or None."""
    return (
        ConferencePlan.query.filter_by(conference_id=conference_id)
        .order_by(ConferencePlan.id.desc())
        .first()
    )


def update_conference_plan(conference_id, dates: dict, *, kind=None) -> ConferencePlan:
    """
    Set the provided timeline dates; fields not in ``dates`` keep their value.

    Args:
        dates: {field name: datetime | ISO string | None}. None clears a date.
        kind: Optional DateTimeKind applied to every value.

    Raises:
        ValueError: unknown conference or unknown field name.
    """
    if db.session.get(Conference, conference_id) is None:
        raise ValueError(f"Conference not found: {conference_id}")
    unknown = sorted(set(dates) - set(PLAN_DATE_FIELDS))
    if unknown:
        raise ValueError(f"Unknown plan fields: {unknown}")

    normalized = {
        name: (normalize_input(value, kind) if value is not None else None)
        for name, value in dates.items()
    }

    with unit_of_work():
        plan = get_current_plan(conference_id)
        if plan is None:
            plan = ConferencePlan(conference_id=conference_id)
            db.session.add(plan)
        for name, value in normalized.items():
            setattr(plan, name, value)

    logger.info("Conference plan updated: conference=%s fields=%s", conference_id, sorted(normalized))
    return plan
