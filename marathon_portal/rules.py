"""Participation lifecycle: register -> accept -> result, or cancel.

Every operation validates against current state before it writes, so a
failed call leaves storage untouched. Functions take the storage handle
first, the way the service layer takes a session.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from .errors import Conflict, Forbidden, InvalidState, NotFound
from .models import CurrentUser, Marathon, MarathonStatus, Participation
from .storage import Storage
from .utils import is_before_race_day, normalize_time_record, parse_entry_number, parse_standings

logger = logging.getLogger(__name__)

_CLOSED_STATUS_MESSAGES = {
    MarathonStatus.CANCELLED: "This marathon has been cancelled",
    MarathonStatus.POSTPONED: "This marathon has been postponed",
    MarathonStatus.COMPLETED: "This marathon has already been completed",
}


def _get_marathon(storage: Storage, marathon_id: int) -> Marathon:
    marathon = storage.marathons.get(marathon_id)
    if not marathon:
        raise NotFound("Marathon not found")
    return marathon


def _get_participation(storage: Storage, marathon_id: int, user_id: int) -> Participation:
    p = storage.participations.get((marathon_id, user_id))
    if not p:
        raise NotFound("Participation not found")
    return p


def register(storage: Storage, marathon_id: int, user_id: int, hotel: Optional[str] = None) -> Participation:
    marathon = _get_marathon(storage, marathon_id)
    if marathon.status != MarathonStatus.ACTIVE:
        raise InvalidState(
            _CLOSED_STATUS_MESSAGES.get(marathon.status, "This marathon is not available for registration")
        )
    hotel = (hotel or "").strip() or None
    with storage.account_lock(user_id):
        if not storage.users.get(user_id):
            raise NotFound("User not found")
        if storage.participations.get((marathon_id, user_id)):
            raise Conflict("You already registered this marathon")

        p = storage.participations.insert(
            Participation(
                marathon_id=int(marathon_id),
                user_id=int(user_id),
                entry_number=-int(user_id),
                hotel=hotel,
            )
        )
    logger.info("User %s registered for marathon %s (pending)", user_id, marathon_id)
    return p


def next_entry_number(storage: Storage, marathon_id: int) -> int:
    taken = [p.entry_number for p in storage.participations.list(marathon_id=marathon_id) if p.entry_number > 0]
    return max(taken, default=0) + 1


def accept(storage: Storage, marathon_id: int, user_id: int, entry_number=None) -> Participation:
    """Assign a bib number, explicit or the next free one in the marathon."""
    requested = parse_entry_number(entry_number) if entry_number is not None else None

    with storage.allocation_lock(marathon_id):
        p = _get_participation(storage, marathon_id, user_id)

        if requested is None:
            # already holding a bib: keep it
            final = p.entry_number if not p.is_pending else next_entry_number(storage, marathon_id)
        else:
            holders = [
                other
                for other in storage.participations.list(marathon_id=marathon_id, entry_number=requested)
                if other.user_id != p.user_id
            ]
            if holders:
                raise Conflict(f"Entry number {requested} already exists for this marathon")
            final = requested

        if p.has_result and not p.is_pending and final != p.entry_number:
            raise InvalidState("cannot change entry number after a result is recorded")
        if final == p.entry_number:
            return p

        p = storage.participations.update(p.key, entry_number=final)
    logger.info("Accepted user %s for marathon %s with entry number %s", user_id, marathon_id, final)
    return p


def set_result(storage: Storage, marathon_id: int, user_id: int, time_record, standings) -> Participation:
    p = _get_participation(storage, marathon_id, user_id)
    normalized = normalize_time_record(time_record)
    parsed_standings = parse_standings(standings)

    p = storage.participations.update(p.key, time_record=normalized, standings=parsed_standings)
    logger.info(
        "Result recorded for user %s in marathon %s: %s (standings %s)",
        user_id, marathon_id, normalized, parsed_standings,
    )
    return p


def cancel(
    storage: Storage,
    marathon_id: int,
    user_id: int,
    actor: CurrentUser,
    as_of: Optional[date] = None,
) -> None:
    """Withdraw a registration. Only allowed strictly before race day."""
    if not actor.is_admin and actor.id != int(user_id):
        raise Forbidden("Cannot cancel others participation")

    p = _get_participation(storage, marathon_id, user_id)
    marathon = _get_marathon(storage, marathon_id)

    as_of = as_of or date.today()
    if not is_before_race_day(marathon.race_date, as_of):
        raise InvalidState("cannot cancel on or after race date")
    if p.has_result:
        raise InvalidState("cannot cancel a participation with a recorded result")

    storage.participations.delete(p.key)
    logger.info("Participation of user %s in marathon %s cancelled by user %s", user_id, marathon_id, actor.id)


def delete_participant(storage: Storage, user_id: int) -> int:
    """Delete a participant account and its result-free registrations.

    Returns the number of participations removed.
    """
    with storage.account_lock(user_id):
        user = storage.users.get(user_id)
        if not user:
            raise NotFound("Participant not found")
        if user.is_admin:
            raise InvalidState("Cannot delete admin account")

        participations = storage.participations.list(user_id=user.id)
        if any(p.has_result for p in participations):
            raise Conflict("cannot delete participant with existing race results")

        for p in participations:
            storage.participations.delete(p.key)
        storage.users.delete(user.id)
    logger.info("Deleted participant %s and %d participation(s)", user.id, len(participations))
    return len(participations)


def cancel_marathon(storage: Storage, marathon_id: int) -> Marathon:
    _get_marathon(storage, marathon_id)
    marathon = storage.marathons.update(marathon_id, status=MarathonStatus.CANCELLED)
    logger.info("Marathon %s cancelled; participations preserved", marathon_id)
    return marathon


def delete_marathon(storage: Storage, marathon_id: int) -> None:
    _get_marathon(storage, marathon_id)
    if storage.participations.list(marathon_id=marathon_id):
        raise Conflict(
            "Cannot delete marathon with existing participations. Consider marking it as cancelled instead."
        )
    storage.marathons.delete(marathon_id)
    logger.info("Marathon %s deleted", marathon_id)
