"""
Deadline normalisation: server-timezone reading of wall-clock input.

The testing config pins SERVER_TIMEZONE to Asia/Ho_Chi_Minh (UTC+7, no DST).
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from scisubmit.models.conference import ConferencePlan
from scisubmit.services.conference_service import update_conference_plan
from scisubmit.utils.deadlines import (
    DateTimeKind,
    ensure_utc,
    normalize_input,
    parse_datetime,
    server_timezone,
    to_utc,
)

WALL = datetime(2026, 5, 1, 17, 0)
WALL_AS_UTC = datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)


class TestToUtc:
    def test_unspecified_and_local_agree(self):
        assert to_utc(WALL, DateTimeKind.UNSPECIFIED) == to_utc(WALL, DateTimeKind.LOCAL) == WALL_AS_UTC

    def test_utc_is_unchanged(self):
        value = datetime(2026, 5, 1, 17, 0, tzinfo=timezone.utc)
        assert to_utc(value, DateTimeKind.UTC) == value

    def test_naive_utc_hint_is_stamped(self):
        assert to_utc(WALL, "utc") == WALL.replace(tzinfo=timezone.utc)

    def test_naive_without_hint_is_local(self):
        assert to_utc(WALL) == WALL_AS_UTC

    def test_aware_without_hint_keeps_instant(self):
        paris = datetime(2026, 5, 1, 12, 0, tzinfo=ZoneInfo("Europe/Paris"))
        assert to_utc(paris) == datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_explicit_zone_overrides_config(self):
        assert to_utc(WALL, DateTimeKind.LOCAL, tz="UTC") == WALL.replace(tzinfo=timezone.utc)

    def test_dst_zone(self):
        # New York is UTC-4 in May.
        assert to_utc(WALL, DateTimeKind.LOCAL, tz="America/New_York") == WALL_AS_UTC + timedelta(hours=11)

    def test_unknown_zone(self):
        with pytest.raises(ValueError):
            server_timezone("Mars/Olympus_Mons")

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            to_utc(WALL, "browser")


class TestParse:
    def test_z_suffix(self):
        value, kind = parse_datetime("2026-05-01T10:00:00Z")
        assert kind is DateTimeKind.UTC
        assert value == WALL_AS_UTC

    def test_offset_is_absolute(self):
        value, kind = parse_datetime("2026-05-01T12:00:00+02:00")
        assert kind is DateTimeKind.UTC
        assert value == WALL_AS_UTC

    def test_no_offset_is_unspecified(self):
        value, kind = parse_datetime("2026-05-01T17:00")
        assert kind is DateTimeKind.UNSPECIFIED
        assert value == WALL

    def test_normalize_input_string_reads_server_zone(self):
        assert normalize_input("2026-05-01T17:00") == WALL_AS_UTC

    def test_empty_string(self):
        with pytest.raises(ValueError):
            parse_datetime("  ")

    def test_ensure_utc(self):
        assert ensure_utc(WALL) == WALL.replace(tzinfo=timezone.utc)
        assert ensure_utc(None) is None


class TestConferencePlan:
    def test_dates_are_normalised_and_merged(self, world):
        update_conference_plan(world.conference.id, {
            "abstract_submission_deadline": "2026-04-01T23:59",
            "review_deadline": "2026-06-01T00:00:00Z",
        })
        plan = update_conference_plan(world.conference.id, {
            "conference_date": datetime(2026, 9, 10, 8, 0),
        }, kind=DateTimeKind.LOCAL)

        assert ConferencePlan.query.count() == 1
        assert ensure_utc(plan.abstract_submission_deadline) == datetime(2026, 4, 1, 16, 59, tzinfo=timezone.utc)
        assert ensure_utc(plan.review_deadline) == datetime(2026, 6, 1, 0, 0, tzinfo=timezone.utc)
        assert ensure_utc(plan.conference_date) == datetime(2026, 9, 10, 1, 0, tzinfo=timezone.utc)

    def test_unknown_field(self, world):
        with pytest.raises(ValueError):
            update_conference_plan(world.conference.id, {"party_date": "2026-01-01"})

    def test_unknown_conference(self):
        with pytest.raises(ValueError):
            update_conference_plan(424242, {"review_deadline": "2026-01-01T00:00Z"})
