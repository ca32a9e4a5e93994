from __future__ import annotations

import re
from datetime import date

from .errors import InvalidArgument, ValidationError

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{1,2})(?::(\d{1,2}))?$", re.ASCII)
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_ID_PART_RE = re.compile(r"\d+", re.ASCII)


def normalize_time_record(value) -> str:
    """Validate a race time and return it as zero-padded HH:MM:SS.

    Accepts H:MM[:SS] and HH:MM[:SS]; seconds default to 0.
    """
    if value is None:
        raise ValidationError("timeRecord is required")
    match = _TIME_RE.match(str(value).strip())
    if not match:
        raise ValidationError("invalid time format, use HH:MM:SS or HH:MM")
    hours = int(match.group(1))
    minutes = int(match.group(2))
    seconds = int(match.group(3)) if match.group(3) is not None else 0
    if hours > 23:
        raise ValidationError("hours must be 0-23")
    if minutes > 59:
        raise ValidationError("minutes must be 0-59")
    if seconds > 59:
        raise ValidationError("seconds must be 0-59")
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _as_int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def parse_standings(value) -> int:
    parsed = _as_int(value)
    if parsed is None:
        raise ValidationError("standings must be a number")
    return parsed


def parse_entry_number(value) -> int:
    parsed = _as_int(value)
    if parsed is None or parsed <= 0:
        raise InvalidArgument("entry number must be a positive integer")
    return parsed


def parse_participation_id(raw: str) -> tuple[int, int]:
    """Split a composite "<marathonId>-<userId>" URL id."""
    parts = str(raw).split("-")
    if len(parts) != 2 or not all(_ID_PART_RE.fullmatch(p) for p in parts):
        raise ValidationError("invalid participation id format")
    return int(parts[0]), int(parts[1])


def format_participation_id(marathon_id: int, user_id: int) -> str:
    return f"{marathon_id}-{user_id}"


def is_before_race_day(race_date: date, as_of: date) -> bool:
    return race_date > as_of
