"""Parsing of ``--since`` style time specifications into absolute ranges."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Callable, Final, Mapping

from msgraph_cli.graph.errors import InvalidTimeSpecError

_MINUTES_PATTERN: Final[re.Pattern[str]] = re.compile(r"^last(\d+)min$", re.IGNORECASE)
_HOURS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^last(\d+)hours?$", re.IGNORECASE
)
_DAYS_PATTERN: Final[re.Pattern[str]] = re.compile(r"^last(\d+)days?$", re.IGNORECASE)

_LOCALTIME: Final[str] = "/etc/localtime"

_RELATIVE_UNITS: Final[tuple[tuple[re.Pattern[str], Callable[[int], timedelta]], ...]] = (
    (_MINUTES_PATTERN, lambda count: timedelta(minutes=count)),
    (_HOURS_PATTERN, lambda count: timedelta(hours=count)),
    (_DAYS_PATTERN, lambda count: timedelta(days=count)),
)


@dataclass(frozen=True, slots=True)
class TimeRange:
    start: datetime
    end: datetime | None = None

    @property
    def start_iso(self) -> str:
        return format_instant(self.start)

    @property
    def end_iso(self) -> str | None:
        if self.end is None:
            return None
        return format_instant(self.end)


def format_instant(value: datetime) -> str:
    """Render an aware datetime as a UTC ISO string with millisecond precision."""

    instant = value.astimezone(UTC)
    millis = instant.microsecond // 1000
    return f"{instant:%Y-%m-%dT%H:%M:%S}.{millis:03d}Z"


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def parse_time_range(
    spec: str,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> TimeRange:
    """Turn a relative or absolute time specification into a :class:`TimeRange`.

    ``now`` defaults to the current instant and ``tz`` to the system zone; both
    are injectable so results are reproducible. Calendar keywords
    (``today``/``yesterday``) are evaluated in ``tz``.
    """

    reference = _aware(now or datetime.now(UTC), tz)
    value = spec.strip()

    for pattern, unit in _RELATIVE_UNITS:
        match = pattern.match(value)
        if match:
            try:
                return TimeRange(start=reference - unit(int(match.group(1))))
            except (OverflowError, ValueError) as exc:
                raise InvalidTimeSpecError(spec) from exc

    keyword = value.lower()
    wall = _wall_clock(reference, tz)
    if keyword == "yesterday":
        previous = wall - timedelta(days=1)
        return TimeRange(
            start=_localize(start_of_day(previous), tz),
            end=_localize(end_of_day(previous), tz),
        )
    if keyword == "today":
        return TimeRange(start=_localize(start_of_day(wall), tz))

    return TimeRange(start=_parse_absolute(spec, tz))


def default_event_window(
    *, now: datetime | None = None, tz: tzinfo | None = None, days: int = 7
) -> TimeRange:
    """From the start of today to the end of the day ``days`` days ahead."""

    wall = _wall_clock(_aware(now or datetime.now(UTC), tz), tz)
    return TimeRange(
        start=_localize(start_of_day(wall), tz),
        end=_localize(end_of_day(wall + timedelta(days=days)), tz),
    )


def _parse_absolute(spec: str, tz: tzinfo | None) -> datetime:
    value = spec.strip()
    if not value:
        raise InvalidTimeSpecError(spec)
    if value.endswith(("z", "Z")):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidTimeSpecError(spec) from exc
    return _aware(parsed, tz)


def _aware(value: datetime, tz: tzinfo | None) -> datetime:
    if value.tzinfo is not None:
        return value
    if tz is not None:
        return value.replace(tzinfo=tz)
    return value.astimezone()


def _wall_clock(value: datetime, tz: tzinfo | None) -> datetime:
    """Naive local time of ``value`` in ``tz`` (or the system zone)."""

    local = value.astimezone(tz) if tz is not None else value.astimezone()
    return local.replace(tzinfo=None)


def _localize(wall: datetime, tz: tzinfo | None) -> datetime:
    # Offset is resolved for the wall time itself, not carried over from now.
    if tz is not None:
        return wall.replace(tzinfo=tz)
    return wall.astimezone()


def local_time_zone(environ: Mapping[str, str] | None = None) -> str:
    """Best-effort IANA name of the system zone, for the Graph `Prefer` header.

    Falls back to ``UTC`` when the zone cannot be named.
    """

    env = os.environ if environ is None else environ
    configured = (env.get("TZ") or "").lstrip(":")
    if configured and "/" in configured:
        return configured
    try:
        target = str(Path(_LOCALTIME).resolve())
    except OSError:
        return "UTC"
    marker = "zoneinfo/"
    if marker in target:
        return target.split(marker, 1)[1]
    return "UTC"


__all__ = [
    "TimeRange",
    "default_event_window",
    "end_of_day",
    "format_instant",
    "local_time_zone",
    "parse_time_range",
    "start_of_day",
]
