from __future__ import annotations

import csv
from io import StringIO

from fastapi import APIRouter, Depends
from starlette.responses import Response

from . import services
from .auth import admin_required
from .deps import get_storage
from .storage import Storage

router = APIRouter(prefix="/api/admin/export", tags=["csv"], dependencies=[Depends(admin_required)])

def _csv_response(filename: str, text: str) -> Response:
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.get("/marathons.csv")
def marathons_csv(storage: Storage = Depends(get_storage)):
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow(["marathon_id", "race_name", "race_date", "status"])
    for m in services.list_marathons(storage, include_inactive=True):
        w.writerow([m.id, m.race_name, m.race_date.isoformat(), m.status.value])
    return _csv_response("marathons.csv", buf.getvalue())

@router.get("/participants.csv")
def participants_csv(storage: Storage = Depends(get_storage)):
    # password hashes never leave the server
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow([
        "user_id", "full_name", "email", "role", "nationality", "sex",
        "birth_year", "passport_no", "mobile", "current_address", "best_record",
    ])
    for u in services.list_users(storage):
        w.writerow([
            u.id,
            u.full_name,
            u.email,
            u.role.value,
            u.nationality or "",
            u.sex or "",
            u.birth_year or "",
            u.passport_no or "",
            u.mobile or "",
            u.current_address or "",
            u.best_record or "",
        ])
    return _csv_response("participants.csv", buf.getvalue())

@router.get("/participations.csv")
def participations_csv(marathon_id: int | None = None, storage: Storage = Depends(get_storage)):
    buf = StringIO()
    w = csv.writer(buf)
    w.writerow([
        "marathon_id", "race_name", "race_date", "user_id", "full_name",
        "entry_number", "status", "hotel", "time_record", "standings",
    ])
    for r in services.all_participations(storage, marathon_id=marathon_id):
        w.writerow([
            r.marathon_id,
            r.race_name or "",
            r.race_date.isoformat() if r.race_date else "",
            r.user_id,
            r.full_name or "",
            r.entry_number_display,
            r.status,
            r.hotel or "",
            r.time_record or "",
            r.standings if r.standings is not None else "",
        ])
    suffix = f"_{marathon_id}" if marathon_id is not None else ""
    return _csv_response(f"participations{suffix}.csv", buf.getvalue())
