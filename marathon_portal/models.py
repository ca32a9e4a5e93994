from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Optional


class MarathonStatus(str, Enum):
    ACTIVE = "Active"
    CANCELLED = "Cancelled"
    POSTPONED = "Postponed"
    COMPLETED = "Completed"


class Role(str, Enum):
    ADMIN = "ADMIN"
    PARTICIPANT = "PARTICIPANT"


class ParticipationStatus(str, Enum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    RESULTED = "Resulted"


def _coerce_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # accept "YYYY-MM-DD" as well as full ISO timestamps
    return datetime.fromisoformat(str(value).strip()[:10]).date()


@dataclass
class Marathon:
    id: Optional[int]
    race_name: str
    race_date: date
    status: MarathonStatus = MarathonStatus.ACTIVE

    def __post_init__(self) -> None:
        self.race_date = _coerce_date(self.race_date)
        self.status = MarathonStatus(self.status)

    @property
    def key(self) -> Optional[int]:
        return self.id


@dataclass
class User:
    id: Optional[int]
    full_name: str
    email: str
    password_hash: str
    role: Role = Role.PARTICIPANT
    nationality: Optional[str] = None
    sex: Optional[str] = None
    birth_year: Optional[int] = None
    passport_no: Optional[str] = None
    mobile: Optional[str] = None
    current_address: Optional[str] = None
    best_record: Optional[str] = None

    def __post_init__(self) -> None:
        self.role = Role(self.role)

    @property
    def key(self) -> Optional[int]:
        return self.id

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass
class Participation:
    marathon_id: int
    user_id: int
    entry_number: int
    hotel: Optional[str] = None
    time_record: Optional[str] = None  # HH:MM:SS
    standings: Optional[int] = None

    @property
    def key(self) -> tuple[int, int]:
        return (self.marathon_id, self.user_id)

    @property
    def is_pending(self) -> bool:
        return self.entry_number <= 0

    @property
    def has_result(self) -> bool:
        return self.time_record is not None and self.standings is not None

    @property
    def status(self) -> ParticipationStatus:
        if self.has_result:
            return ParticipationStatus.RESULTED
        if self.is_pending:
            return ParticipationStatus.PENDING
        return ParticipationStatus.ACCEPTED

    @property
    def entry_number_display(self) -> str:
        return "Pending" if self.is_pending else str(self.entry_number)


@dataclass
class CurrentUser:
    """The authenticated caller, as decoded from an access token."""
    id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def to_plain(record) -> dict:
    """Record as a JSON-friendly dict (dates as ISO strings, enums as values)."""
    out = {}
    for k, v in asdict(record).items():
        if isinstance(v, Enum):
            v = v.value
        elif isinstance(v, date):
            v = v.isoformat()
        out[k] = v
    return out
