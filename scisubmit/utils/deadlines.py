"""Deadline normalisation.

Every deadline and conference-plan date accepted by the core goes through
``to_utc`` so that wall-clock input from the admin UI is read in the
*server's* configured timezone, never the browser's, and stored as an
absolute UTC instant.

Rules
-----
* ``DateTimeKind.UTC``          value already in UTC; passes through unchanged.
* ``DateTimeKind.LOCAL``        wall clock in the server timezone; converted.
* ``DateTimeKind.UNSPECIFIED``  no marker; treated exactly like LOCAL.

With no hint, a naive datetime is UNSPECIFIED and an aware datetime keeps its
instant (it is simply expressed in UTC).
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context

DEFAULT_SERVER_TIMEZONE = "UTC"


class DateTimeKind(str, enum.Enum):
    UTC = "utc"
    LOCAL = "local"
    UNSPECIFIED = "unspecified"


def server_timezone(tz: str | ZoneInfo | None = None) -> ZoneInfo:
    """Resolve the server timezone: explicit argument, then app config, then UTC."""
    if isinstance(tz, ZoneInfo):
        return tz
    name = tz
    if name is None and has_app_context():
        name = current_app.config.get("SERVER_TIMEZONE")
    try:
        return ZoneInfo(name or DEFAULT_SERVER_TIMEZONE)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Unknown SERVER_TIMEZONE: {name!r}") from exc


def to_utc(
    value: datetime,
    kind: DateTimeKind | str | None = None,
    *,
    tz: str | ZoneInfo | None = None,
) -> datetime:
    """Convert ``value`` to an aware UTC datetime following the kind rules."""
    if kind is not None:
        kind = DateTimeKind(kind)

    if kind is None:
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        kind = DateTimeKind.UNSPECIFIED

    if kind is DateTimeKind.UTC:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    # LOCAL / UNSPECIFIED: the wall-clock fields are read in the server zone.
    wall_clock = value.replace(tzinfo=None)
    return wall_clock.replace(tzinfo=server_timezone(tz)).astimezone(timezone.utc)


def parse_datetime(raw: str) -> tuple[datetime, DateTimeKind]:
    """Parse an ISO-8601 string and report which kind its marker implies.

    ``...Z`` / ``+00:00`` → UTC, any other offset → absolute instant (returned
    already converted to UTC with kind UTC), no offset → UNSPECIFIED.
    """
    text = raw.strip()
    if not text:
        raise ValueError("empty datetime string")
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value, DateTimeKind.UNSPECIFIED
    return value.astimezone(timezone.utc), DateTimeKind.UTC


def normalize_input(raw, kind: DateTimeKind | str | None = None, *, tz=None) -> datetime:
    """Accept a datetime or an ISO string from a caller and return UTC."""
    if isinstance(raw, str):
        value, parsed_kind = parse_datetime(raw)
        return to_utc(value, kind or parsed_kind, tz=tz)
    if isinstance(raw, datetime):
        return to_utc(raw, kind, tz=tz)
    raise TypeError(f"Expected datetime or ISO string, got {type(raw).__name__}")


def ensure_utc(value: datetime | None) -> datetime | None:
    """Re-stamp naive datetimes read back from storage (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
