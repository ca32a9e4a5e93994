from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .errors import Conflict, NotFound, ValidationError
from .models import Marathon, MarathonStatus, Participation, Role, User
from .security import hash_password, verify_password
from .settings import Settings
from .storage import Storage
from .utils import format_participation_id

logger = logging.getLogger(__name__)

# ---------------------------
# Users / auth
# ---------------------------

PROFILE_FIELDS = (
    "full_name",
    "email",
    "nationality",
    "sex",
    "birth_year",
    "passport_no",
    "mobile",
    "current_address",
    "best_record",
)

_UNIQUE_FIELDS = {
    "email": "Email already registered",
    "passport_no": "Passport number already registered",
    "mobile": "Mobile number already registered",
}


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and str(a).strip().lower() == str(b).strip().lower()


def find_user_by_email(storage: Storage, email: str) -> Optional[User]:
    for u in storage.users.list():
        if _same(u.email, email):
            return u
    return None


def _check_unique(storage: Storage, values: dict, exclude_id: Optional[int] = None) -> None:
    users = [u for u in storage.users.list() if u.id != exclude_id]
    for field, message in _UNIQUE_FIELDS.items():
        value = values.get(field)
        if value and any(_same(getattr(u, field), value) for u in users):
            raise Conflict(message)


def _clean(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def register_user(
    storage: Storage,
    *,
    full_name: str,
    email: str,
    password: str,
    nationality: Optional[str] = None,
    sex: Optional[str] = None,
    birth_year: Optional[int] = None,
    passport_no: Optional[str] = None,
    mobile: Optional[str] = None,
    current_address: Optional[str] = None,
) -> User:
    """Sign up a participant. New accounts never get the admin role."""
    full_name, email = _clean(full_name), _clean(email)
    if not full_name or not email or not password:
        raise ValidationError("fullName, email, password are required")

    values = {
        "email": email,
        "nationality": _clean(nationality),
        "sex": _clean(sex),
        "birth_year": birth_year,
        "passport_no": _clean(passport_no),
        "mobile": _clean(mobile),
        "current_address": _clean(current_address),
    }
    _check_unique(storage, values)

    user = storage.users.insert(
        User(
            id=None,
            full_name=full_name,
            password_hash=hash_password(password),
            role=Role.PARTICIPANT,
            **values,
        )
    )
    logger.info("Registered participant %s (%s)", user.id, user.email)
    return user


def authenticate(storage: Storage, email: str, password: str) -> Optional[User]:
    u = find_user_by_email(storage, email)
    if not u:
        return None
    if verify_password(password, u.password_hash):
        return u
    return None


def ensure_admin_user(storage: Storage, settings: Settings) -> User:
    """Ensure the configured admin account exists and holds the admin role."""
    existing = find_user_by_email(storage, settings.MARATHON_ADMIN_EMAIL)
    if existing:
        if existing.role != Role.ADMIN:
            existing = storage.users.update(existing.id, role=Role.ADMIN)
            logger.info("Promoted %s to admin", existing.email)
        return existing

    admin = storage.users.insert(
        User(
            id=None,
            full_name=settings.MARATHON_ADMIN_NAME,
            email=settings.MARATHON_ADMIN_EMAIL,
            password_hash=hash_password(settings.MARATHON_ADMIN_PASSWORD),
            role=Role.ADMIN,
        )
    )
    logger.info("Created admin account %s", admin.email)
    return admin


def get_user(storage: Storage, user_id: int) -> User:
    u = storage.users.get(user_id)
    if not u:
        raise NotFound("User not found")
    return u


def update_profile(storage: Storage, user_id: int, changes: dict) -> User:
    """Apply profile changes; unknown keys and role changes are ignored."""
    user = get_user(storage, user_id)
    update = {k: _clean(v) for k, v in changes.items() if k in PROFILE_FIELDS}
    if "full_name" in update and not update["full_name"]:
        raise ValidationError("fullName cannot be empty")
    if "email" in update and not update["email"]:
        raise ValidationError("email cannot be empty")
    _check_unique(storage, update, exclude_id=user.id)
    if not update:
        return user
    return storage.users.update(user.id, **update)


def list_users(storage: Storage) -> list[User]:
    return sorted(storage.users.list(), key=lambda u: (u.role != Role.ADMIN, u.id))


# ---------------------------
# Marathons
# ---------------------------

def _parse_race_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError("raceDate must be YYYY-MM-DD")


def _parse_status(value) -> MarathonStatus:
    try:
        return MarathonStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in MarathonStatus)
        raise ValidationError(f"status must be one of: {allowed}")


def list_marathons(storage: Storage, include_inactive: bool = False) -> list[Marathon]:
    marathons = storage.marathons.list()
    if not include_inactive:
        marathons = [m for m in marathons if m.status == MarathonStatus.ACTIVE]
    return sorted(marathons, key=lambda m: (m.race_date, m.id))


def get_marathon(storage: Storage, marathon_id: int) -> Marathon:
    m = storage.marathons.get(marathon_id)
    if not m:
        raise NotFound("Marathon not found")
    return m


def create_marathon(storage: Storage, race_name: str, race_date) -> Marathon:
    race_name = _clean(race_name)
    if not race_name or not race_date:
        raise ValidationError("raceName and raceDate are required")
    m = storage.marathons.insert(
        Marathon(id=None, race_name=race_name, race_date=_parse_race_date(race_date))
    )
    logger.info("Created marathon %s (%s on %s)", m.id, m.race_name, m.race_date)
    return m


def update_marathon(
    storage: Storage,
    marathon_id: int,
    race_name: Optional[str] = None,
    race_date=None,
    status=None,
) -> Marathon:
    get_marathon(storage, marathon_id)
    changes = {}
    if race_name is not None:
        if not _clean(race_name):
            raise ValidationError("raceName cannot be empty")
        changes["race_name"] = _clean(race_name)
    if race_date is not None:
        changes["race_date"] = _parse_race_date(race_date)
    if status is not None:
        changes["status"] = _parse_status(status)
    if not changes:
        return get_marathon(storage, marathon_id)
    return storage.marathons.update(marathon_id, **changes)


# ---------------------------
# Participation listings
# ---------------------------

@dataclass
class ParticipationRow:
    marathon_id: int
    user_id: int
    entry_number: int
    entry_number_display: str
    status: str
    hotel: Optional[str]
    time_record: Optional[str]
    standings: Optional[int]
    race_name: Optional[str] = None
    race_date: Optional[date] = None
    marathon_status: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None

    @property
    def id(self) -> str:
        return format_participation_id(self.marathon_id, self.user_id)


def _row(p: Participation, marathon: Optional[Marathon], user: Optional[User] = None) -> ParticipationRow:
    return ParticipationRow(
        marathon_id=p.marathon_id,
        user_id=p.user_id,
        entry_number=p.entry_number,
        entry_number_display=p.entry_number_display,
        status=p.status.value,
        hotel=p.hotel,
        time_record=p.time_record,
        standings=p.standings,
        race_name=marathon.race_name if marathon else None,
        race_date=marathon.race_date if marathon else None,
        marathon_status=marathon.status.value if marathon else None,
        full_name=user.full_name if user else None,
        email=user.email if user else None,
    )


def my_participations(storage: Storage, user_id: int) -> list[ParticipationRow]:
    marathons = {m.id: m for m in storage.marathons.list()}
    rows = [_row(p, marathons.get(p.marathon_id)) for p in storage.participations.list(user_id=user_id)]
    rows.sort(key=lambda r: (r.race_date or date.min, r.marathon_id))
    return rows


def all_participations(storage: Storage, marathon_id: Optional[int] = None) -> list[ParticipationRow]:
    marathons = {m.id: m for m in storage.marathons.list()}
    users = {u.id: u for u in storage.users.list()}
    filters = {"marathon_id": marathon_id} if marathon_id is not None else {}
    rows = [
        _row(p, marathons.get(p.marathon_id), users.get(p.user_id))
        for p in storage.participations.list(**filters)
    ]
    # by race date, then bib; pending entries last
    rows.sort(
        key=lambda r: (
            r.race_date or date.min,
            r.marathon_id,
            r.entry_number <= 0,
            r.entry_number if r.entry_number > 0 else -r.entry_number,
        )
    )
    return rows
