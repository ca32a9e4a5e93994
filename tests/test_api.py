"""
HTTP surface: auth, participant and admin routes, error envelope.
"""

from __future__ import annotations

from datetime import date, timedelta

from conftest import ADMIN_EMAIL, login


def _create_marathon(client, admin_headers, days_ahead: int = 30, name: str = "City Marathon") -> dict:
    race_date = (date.today() + timedelta(days=days_ahead)).isoformat()
    resp = client.post(
        "/api/admin/marathons", json={"raceName": name, "raceDate": race_date}, headers=admin_headers
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/health").status_code == 200


def test_sign_up_and_login(client, sign_up) -> None:
    user, headers = sign_up(email="ana@example.com", nationality="ADMIN")
    assert user["role"] == "PARTICIPANT"
    assert "passwordHash" not in user

    me = client.get("/api/me", headers=headers).json()["data"]
    assert me["email"] == "ana@example.com"

    again = client.post("/api/auth/register", json={"fullName": "X", "email": "ANA@example.com", "password": "p"})
    assert again.status_code == 409
    assert again.json()["error"] == "Conflict"

    bad = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})
    assert bad.status_code == 401


def test_auth_is_required(client) -> None:
    assert client.get("/api/marathons").status_code == 401
    resp = client.get("/api/marathons", headers={"Authorization": "Bearer not-a-token"})
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_participant_cannot_use_admin_routes(client, sign_up) -> None:
    _, headers = sign_up()
    resp = client.get("/api/admin/marathons", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Forbidden"


def test_registration_flow(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers)
    user, headers = sign_up()
    pid = f"{m['id']}-{user['id']}"

    resp = client.post("/api/participations", json={"marathonId": m["id"], "hotel": "Inn"}, headers=headers)
    assert resp.status_code == 201
    assert resp.json()["data"]["entryNumber"] == -user["id"]

    dup = client.post("/api/participations", json={"marathonId": m["id"]}, headers=headers)
    assert dup.status_code == 409

    mine = client.get("/api/participations/my", headers=headers).json()["data"]
    assert mine[0]["entryNumberDisplay"] == "Pending"
    assert mine[0]["raceName"] == "City Marathon"

    accepted = client.post(f"/api/admin/participations/{pid}/accept", headers=admin_headers)
    assert accepted.status_code == 200
    assert accepted.json()["data"]["entryNumber"] == 1

    result = client.post(
        f"/api/admin/participations/{pid}/result",
        json={"timeRecord": "3:45:10", "standings": 12},
        headers=admin_headers,
    )
    assert result.status_code == 200
    data = result.json()["data"]
    assert (data["timeRecord"], data["standings"], data["status"]) == ("03:45:10", 12, "Resulted")

    cancel = client.post(f"/api/participations/{pid}/cancel", headers=headers)
    assert cancel.status_code == 409


def test_accept_with_explicit_numbers(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers)
    ids = []
    for _ in range(2):
        user, headers = sign_up()
        client.post("/api/participations", json={"marathonId": m["id"]}, headers=headers)
        ids.append(f"{m['id']}-{user['id']}")

    first = client.post(f"/api/admin/participations/{ids[0]}/accept", json={"entryNumber": 42}, headers=admin_headers)
    assert first.json()["data"]["entryNumber"] == 42

    taken = client.post(f"/api/admin/participations/{ids[1]}/accept", json={"entryNumber": 42}, headers=admin_headers)
    assert taken.status_code == 409

    bad = client.post(f"/api/admin/participations/{ids[1]}/accept", json={"entryNumber": "zero"}, headers=admin_headers)
    assert bad.status_code == 400
    assert bad.json()["error"] == "InvalidArgument"

    auto = client.post(f"/api/admin/participations/{ids[1]}/accept", json={}, headers=admin_headers)
    assert auto.json()["data"]["entryNumber"] == 43


def test_bad_result_and_bad_ids(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers)
    user, headers = sign_up()
    client.post("/api/participations", json={"marathonId": m["id"]}, headers=headers)
    pid = f"{m['id']}-{user['id']}"

    resp = client.post(
        f"/api/admin/participations/{pid}/result",
        json={"timeRecord": "25:00", "standings": 1},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "ValidationError", "message": "hours must be 0-23"}

    assert client.post("/api/admin/participations/oops/accept", headers=admin_headers).status_code == 400
    assert client.post("/api/admin/participations/999-999/accept", headers=admin_headers).status_code == 404

    # superscript two: a unicode digit that int() cannot read
    resp = client.post(f"/api/participations/{m['id']}-%C2%B2/cancel", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"
    assert client.post(f"/api/admin/participations/{m['id']}-%C2%B2/accept", headers=admin_headers).status_code == 400


def test_cancel_rules_over_http(client, admin_headers, sign_up) -> None:
    soon = _create_marathon(client, admin_headers, days_ahead=0, name="Today Run")
    later = _create_marathon(client, admin_headers, days_ahead=1, name="Tomorrow Run")
    owner, owner_headers = sign_up()
    _, other_headers = sign_up()
    for m in (soon, later):
        client.post("/api/participations", json={"marathonId": m["id"]}, headers=owner_headers)

    today_id = f"{soon['id']}-{owner['id']}"
    tomorrow_id = f"{later['id']}-{owner['id']}"
    assert client.post(f"/api/participations/{today_id}/cancel", headers=owner_headers).status_code == 409
    assert client.post(f"/api/participations/{tomorrow_id}/cancel", headers=other_headers).status_code == 403
    assert client.post(f"/api/participations/{tomorrow_id}/cancel", headers=owner_headers).status_code == 200
    assert len(client.get("/api/participations/my", headers=owner_headers).json()["data"]) == 1


def test_marathon_admin_routes(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers)
    user, headers = sign_up()
    client.post("/api/participations", json={"marathonId": m["id"]}, headers=headers)

    assert client.delete(f"/api/admin/marathons/{m['id']}", headers=admin_headers).status_code == 409

    cancelled = client.post(f"/api/admin/marathons/{m['id']}/cancel", headers=admin_headers)
    assert cancelled.json()["data"]["status"] == "Cancelled"
    assert client.get("/api/marathons", headers=headers).json()["data"] == []
    all_rows = client.get("/api/admin/participations", headers=admin_headers).json()["data"]
    assert [r["userId"] for r in all_rows] == [user["id"]]

    other = _create_marathon(client, admin_headers, name="Spare")
    put = client.put(f"/api/admin/marathons/{other['id']}", json={"status": "Postponed"}, headers=admin_headers)
    assert put.json()["data"]["status"] == "Postponed"
    assert client.delete(f"/api/admin/marathons/{other['id']}", headers=admin_headers).status_code == 200


def test_delete_participant_routes(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers)
    finisher, f_headers = sign_up()
    quitter, q_headers = sign_up()
    for h in (f_headers, q_headers):
        client.post("/api/participations", json={"marathonId": m["id"]}, headers=h)
    client.post(
        f"/api/admin/participations/{m['id']}-{finisher['id']}/result",
        json={"timeRecord": "4:00", "standings": 3},
        headers=admin_headers,
    )

    assert client.delete(f"/api/admin/participants/{finisher['id']}", headers=admin_headers).status_code == 409
    resp = client.delete(f"/api/admin/participants/{quitter['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"participationsRemoved": 1}

    admins = [u for u in client.get("/api/admin/participants", headers=admin_headers).json()["data"] if u["role"] == "ADMIN"]
    assert admins[0]["email"] == ADMIN_EMAIL
    assert client.delete(f"/api/admin/participants/{admins[0]['id']}", headers=admin_headers).status_code == 409


def test_profile_updates(client, admin_headers, sign_up) -> None:
    user, headers = sign_up(email="ana@example.com", password="pw1")
    resp = client.put("/api/me", json={"bestRecord": "2:59:59", "mobile": "123"}, headers=headers)
    assert resp.json()["data"]["bestRecord"] == "2:59:59"

    resp = client.put(f"/api/admin/participants/{user['id']}", json={"fullName": "Ana B"}, headers=admin_headers)
    assert resp.json()["data"]["fullName"] == "Ana B"
    assert login(client, "ana@example.com", "pw1")


def test_csv_exports(client, admin_headers, sign_up) -> None:
    m = _create_marathon(client, admin_headers, name="Harbour Run")
    user, headers = sign_up()
    client.post("/api/participations", json={"marathonId": m["id"]}, headers=headers)

    resp = client.get("/api/admin/export/participations.csv", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().splitlines()
    assert lines[0].startswith("marathon_id,race_name")
    assert "Harbour Run" in lines[1] and "Pending" in lines[1]

    people = client.get("/api/admin/export/participants.csv", headers=admin_headers).text
    assert "pbkdf2" not in people
    assert user["email"] in people

    races = client.get("/api/admin/export/marathons.csv", headers=admin_headers).text
    assert "Harbour Run" in races

    _, participant_headers = sign_up()
    assert client.get("/api/admin/export/marathons.csv", headers=participant_headers).status_code == 403
