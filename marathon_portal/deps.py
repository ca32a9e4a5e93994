from fastapi import Request

from .settings import Settings
from .storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
