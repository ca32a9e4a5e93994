from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from .errors import Forbidden, Unauthorized
from .models import CurrentUser, Role, User
from .settings import Settings

TOKEN_SALT = "marathon-portal-auth"

def _serializer(settings: Settings) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.MARATHON_SECRET_KEY, salt=TOKEN_SALT)

def issue_token(settings: Settings, user: User) -> str:
    return _serializer(settings).dumps({"id": user.id, "e": user.email, "r": user.role.value})

def read_token(settings: Settings, token: str) -> Optional[CurrentUser]:
    try:
        data = _serializer(settings).loads(token, max_age=settings.MARATHON_TOKEN_MAX_AGE)
        return CurrentUser(
            id=int(data["id"]),
            email=str(data.get("e") or ""),
            role=Role(data.get("r")),
        )
    except (BadSignature, KeyError, TypeError, ValueError):
        # SignatureExpired is a BadSignature
        return None

def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

def get_current_user(request: Request) -> Optional[CurrentUser]:
    token = _bearer_token(request)
    if not token:
        return None
    return read_token(request.app.state.settings, token)

def login_required(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
    if not user:
        raise Unauthorized("Authorization token missing or invalid")
    return user

def admin_required(user: CurrentUser = Depends(login_required)) -> CurrentUser:
    if not user.is_admin:
        raise Forbidden("Admin required")
    return user
