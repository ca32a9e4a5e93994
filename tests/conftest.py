from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from marathon_portal.db import SqlStorage
from marathon_portal.json_store import JsonStorage
from marathon_portal.main import create_app
from marathon_portal.models import Marathon, MarathonStatus, Role, User
from marathon_portal.settings import Settings

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin@123"


@pytest.fixture(params=["sql", "json"])
def storage(request, tmp_path):
    """Each storage adapter, opened on a fresh location."""
    if request.param == "sql":
        s = SqlStorage(f"sqlite:///{tmp_path / 'portal.db'}")
    else:
        s = JsonStorage(tmp_path / "data")
    s.open()
    yield s
    s.close()


@pytest.fixture
def make_user(storage):
    counter = {"n": 0}

    def _make(role: Role = Role.PARTICIPANT, **kw) -> User:
        counter["n"] += 1
        n = counter["n"]
        values = {
            "full_name": f"Runner {n}",
            "email": f"runner{n}@example.com",
            "password_hash": "x",
            "role": role,
        }
        values.update(kw)
        return storage.users.insert(User(id=None, **values))

    return _make


@pytest.fixture
def make_marathon(storage):
    def _make(
        race_date: date | None = None,
        status: MarathonStatus = MarathonStatus.ACTIVE,
        race_name: str = "City Marathon",
    ) -> Marathon:
        race_date = race_date or date.today() + timedelta(days=30)
        return storage.marathons.insert(
            Marathon(id=None, race_name=race_name, race_date=race_date, status=status)
        )

    return _make


@pytest.fixture(params=["sql", "json"])
def app_settings(request, tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        MARATHON_STORE=request.param,
        MARATHON_DB_URL=f"sqlite:///{tmp_path / 'api.db'}",
        MARATHON_DATA_DIR=str(tmp_path / "api-data"),
        MARATHON_SECRET_KEY="test-secret",
        MARATHON_ADMIN_EMAIL=ADMIN_EMAIL,
        MARATHON_ADMIN_PASSWORD=ADMIN_PASSWORD,
    )


@pytest.fixture
def client(app_settings):
    with TestClient(create_app(app_settings)) as c:
        yield c


def login(client: TestClient, email: str, password: str) -> dict:
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


@pytest.fixture
def admin_headers(client) -> dict:
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def sign_up(client):
    counter = {"n": 0}

    def _sign_up(**kw) -> tuple[dict, dict]:
        """Register a participant; returns (user json, auth headers)."""
        counter["n"] += 1
        body = {
            "fullName": f"Runner {counter['n']}",
            "email": f"runner{counter['n']}@example.com",
            "password": "secret-pw",
        }
        body.update(kw)
        resp = client.post("/api/auth/register", json=body)
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _sign_up
