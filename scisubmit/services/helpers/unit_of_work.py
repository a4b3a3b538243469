"""
Unit-of-work helper.

Every public review-core operation runs its reads, writes and outbox rows in
one transaction. The block commits on success and rolls back on any failure;
storage exceptions never leak to callers as raw SQLAlchemy errors.

Usage:
    with unit_of_work(on_integrity_error=lambda: AlreadyAssigned(sid, rid)):
        db.session.add(assignment)
        NotificationService.enqueue(...)

IntegrityError   → ``on_integrity_error()`` if given, else PersistenceError
SQLAlchemyError  → PersistenceError
ReviewCoreError  → rolled back, re-raised unchanged
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from scisubmit.core.exceptions import PersistenceError
from scisubmit.models import db

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(on_integrity_error=None):
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if on_integrity_error is not None:
            logger.warning("Integrity error on commit: %s", exc.orig)
            raise on_integrity_error() from exc
        logger.exception("Integrity error on commit")
        raise PersistenceError("Constraint violation", {"error": str(exc.orig)}) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on commit")
        raise PersistenceError("Database error") from exc
    except Exception:
        db.session.rollback()
        raise
