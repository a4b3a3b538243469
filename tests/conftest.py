"""
Shared pytest fixtures for the SciSubmit review-core test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - clock: FixedClock installed on the app for each test (autouse)
    - client: Flask test client (function-scoped)
    - world: conference, admin, author and reviewers ready for a review round
"""

from datetime import datetime, timezone

import pytest

from factories import seed_world
from scisubmit import create_app
from scisubmit.core.clock import CLOCK_EXTENSION_KEY, FixedClock
from scisubmit.models import db as _db

# Monday 2 March 2026, 09:00 UTC (16:00 in the Asia/Ho_Chi_Minh test zone).
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing", clock=FixedClock(NOW))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture(autouse=True)
def clock(app):
    """Fresh frozen clock per test; tests may ``clock.advance(...)``."""
    fixed = FixedClock(NOW)
    previous = app.extensions[CLOCK_EXTENSION_KEY]
    app.extensions[CLOCK_EXTENSION_KEY] = fixed
    yield fixed
    app.extensions[CLOCK_EXTENSION_KEY] = previous


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def world():
    """Conference with three criteria, keywords, one admin, one author, three reviewers."""
    return seed_world()
