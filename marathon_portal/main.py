from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import rules, services
from .auth import issue_token, login_required
from .deps import get_settings, get_storage
from .admin import router as admin_router
from .csv_export import router as csv_router
from .errors import Unauthorized, ValidationError, register_error_handlers
from .logging_setup import setup_logging
from .models import CurrentUser
from .schemas import (
    Login,
    MarathonOut,
    ParticipationOut,
    ParticipationRowOut,
    ProfileUpdate,
    RegistrationCreate,
    SignUp,
    UserOut,
    dump,
    ok,
)
from .settings import Settings, settings as default_settings
from .storage import Storage, open_storage
from .utils import parse_participation_id

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings)

    app = FastAPI(title="Marathon Portal")
    app.state.settings = settings
    app.state.storage = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.on_event("startup")
    def _startup() -> None:
        storage = open_storage(settings)
        app.state.storage = storage
        services.ensure_admin_user(storage, settings)
        logger.info("Marathon portal started with %s store", settings.MARATHON_STORE)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        if app.state.storage is not None:
            app.state.storage.close()
            app.state.storage = None

    app.include_router(router)
    app.include_router(admin_router)
    app.include_router(csv_router)
    return app


router = APIRouter()

@router.get("/health")
@router.get("/api/health")
def health():
    return {"status": "ok"}

# ---------------------------
# Auth
# ---------------------------

def _auth_payload(settings: Settings, user) -> dict:
    return {"token": issue_token(settings, user), "user": dump(UserOut, user)}

@router.post("/api/auth/register", status_code=201)
def sign_up(
    payload: SignUp,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    user = services.register_user(storage, **payload.model_dump())
    return ok(_auth_payload(settings, user))

@router.post("/api/auth/login")
def login(
    payload: Login,
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    if not payload.email or not payload.password:
        raise ValidationError("email and password are required")
    user = services.authenticate(storage, payload.email.strip(), payload.password)
    if not user:
        raise Unauthorized("Invalid credentials")
    return ok(_auth_payload(settings, user))

# ---------------------------
# Participant
# ---------------------------

@router.get("/api/me")
def get_me(user: CurrentUser = Depends(login_required), storage: Storage = Depends(get_storage)):
    return ok(dump(UserOut, services.get_user(storage, user.id)))

@router.put("/api/me")
def update_me(
    payload: ProfileUpdate,
    user: CurrentUser = Depends(login_required),
    storage: Storage = Depends(get_storage),
):
    u = services.update_profile(storage, user.id, payload.model_dump(exclude_unset=True))
    return ok(dump(UserOut, u))

@router.get("/api/marathons", dependencies=[Depends(login_required)])
def list_marathons(storage: Storage = Depends(get_storage)):
    return ok([dump(MarathonOut, m) for m in services.list_marathons(storage)])

@router.get("/api/marathons/{marathon_id}", dependencies=[Depends(login_required)])
def get_marathon(marathon_id: int, storage: Storage = Depends(get_storage)):
    return ok(dump(MarathonOut, services.get_marathon(storage, marathon_id)))

@router.post("/api/participations", status_code=201)
def register_for_marathon(
    payload: RegistrationCreate,
    user: CurrentUser = Depends(login_required),
    storage: Storage = Depends(get_storage),
):
    p = rules.register(storage, payload.marathon_id, user.id, hotel=payload.hotel)
    return ok(dump(ParticipationOut, p), message="Registered successfully")

@router.get("/api/participations/my")
def my_participations(user: CurrentUser = Depends(login_required), storage: Storage = Depends(get_storage)):
    rows = services.my_participations(storage, user.id)
    return ok([dump(ParticipationRowOut, r) for r in rows])

@router.post("/api/participations/{participation_id}/cancel")
def cancel_participation(
    participation_id: str,
    user: CurrentUser = Depends(login_required),
    storage: Storage = Depends(get_storage),
):
    marathon_id, user_id = parse_participation_id(participation_id)
    rules.cancel(storage, marathon_id, user_id, actor=user)
    return ok(message="Participation cancelled successfully")


app = create_app()
