from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from . import rules, services
from .auth import admin_required
from .deps import get_storage
from .models import CurrentUser
from .schemas import (
    AcceptIn,
    MarathonCreate,
    MarathonOut,
    MarathonUpdate,
    ParticipationOut,
    ParticipationRowOut,
    ProfileUpdate,
    ResultIn,
    UserOut,
    dump,
    ok,
)
from .storage import Storage
from .utils import parse_participation_id

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(admin_required)])

# ---------------------------
# Marathons
# ---------------------------

@router.get("/marathons")
def list_marathons(storage: Storage = Depends(get_storage)):
    return ok([dump(MarathonOut, m) for m in services.list_marathons(storage, include_inactive=True)])

@router.post("/marathons", status_code=201)
def create_marathon(payload: MarathonCreate, storage: Storage = Depends(get_storage)):
    m = services.create_marathon(storage, payload.race_name, payload.race_date)
    return ok(dump(MarathonOut, m))

@router.put("/marathons/{marathon_id}")
def update_marathon(marathon_id: int, payload: MarathonUpdate, storage: Storage = Depends(get_storage)):
    m = services.update_marathon(
        storage,
        marathon_id,
        race_name=payload.race_name,
        race_date=payload.race_date,
        status=payload.status,
    )
    return ok(dump(MarathonOut, m))

@router.post("/marathons/{marathon_id}/cancel")
def cancel_marathon(marathon_id: int, storage: Storage = Depends(get_storage)):
    m = rules.cancel_marathon(storage, marathon_id)
    return ok(
        dump(MarathonOut, m),
        message="Marathon cancelled successfully. All participations and data are preserved.",
    )

@router.delete("/marathons/{marathon_id}")
def delete_marathon(marathon_id: int, storage: Storage = Depends(get_storage)):
    rules.delete_marathon(storage, marathon_id)
    return ok(message="Marathon deleted")

# ---------------------------
# Participations
# ---------------------------

@router.get("/participations")
def list_participations(
    marathon_id: Optional[int] = Query(default=None, alias="marathonId"),
    storage: Storage = Depends(get_storage),
):
    rows = services.all_participations(storage, marathon_id=marathon_id)
    return ok([dump(ParticipationRowOut, r) for r in rows])

@router.post("/participations/{participation_id}/accept")
def accept_participation(
    participation_id: str,
    payload: Optional[AcceptIn] = None,
    storage: Storage = Depends(get_storage),
):
    marathon_id, user_id = parse_participation_id(participation_id)
    requested = payload.entry_number if payload else None
    if requested == "":
        requested = None
    p = rules.accept(storage, marathon_id, user_id, requested)
    if requested is not None:
        message = f"Participation accepted with entry number {p.entry_number}"
    else:
        message = f"Participation accepted, entry number {p.entry_number} assigned automatically"
    return ok(dump(ParticipationOut, p), message=message)

@router.post("/participations/{participation_id}/result")
def set_result(participation_id: str, payload: ResultIn, storage: Storage = Depends(get_storage)):
    marathon_id, user_id = parse_participation_id(participation_id)
    p = rules.set_result(storage, marathon_id, user_id, payload.time_record, payload.standings)
    return ok(dump(ParticipationOut, p), message="Result updated")

@router.delete("/participations/{participation_id}")
def cancel_participation(
    participation_id: str,
    user: CurrentUser = Depends(admin_required),
    storage: Storage = Depends(get_storage),
):
    marathon_id, user_id = parse_participation_id(participation_id)
    rules.cancel(storage, marathon_id, user_id, actor=user)
    return ok(message="Participation cancelled successfully")

# ---------------------------
# Participants
# ---------------------------

@router.get("/participants")
def list_participants(storage: Storage = Depends(get_storage)):
    return ok([dump(UserOut, u) for u in services.list_users(storage)])

@router.put("/participants/{user_id}")
def update_participant(user_id: int, payload: ProfileUpdate, storage: Storage = Depends(get_storage)):
    u = services.update_profile(storage, user_id, payload.model_dump(exclude_unset=True))
    return ok(dump(UserOut, u))

@router.delete("/participants/{user_id}")
def delete_participant(user_id: int, storage: Storage = Depends(get_storage)):
    removed = rules.delete_participant(storage, user_id)
    return ok(
        {"participationsRemoved": removed},
        message="Participant and related participation records (without results) deleted successfully",
    )
