from fastapi.testclient import TestClient

from factories import PASSWORD, make_admin
from leeder.api.app import create_app
from leeder.db.repositories import Repository
from leeder.db.session import SessionLocal


def _sign_up(client: TestClient, email: str, name: str, role: str) -> dict:
    resp = client.post(
        "/api/auth/sign-up",
        json={"email": email, "password": PASSWORD, "name": name, "role": role},
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_health() -> None:
    client = TestClient(create_app())
    assert client.get("/health").json() == {"status": "ok"}


def test_auth_endpoints_and_session() -> None:
    client = TestClient(create_app())
    headers = _sign_up(client, "eve@example.com", "Eve", "freelancer")

    session = client.get("/api/auth/session", headers=headers)
    assert session.status_code == 200
    assert session.json()["profile"]["role"] == "freelancer"
    assert session.json()["profile_completed"] is False

    duplicate = client.post(
        "/api/auth/sign-up",
        json={"email": "eve@example.com", "password": PASSWORD, "name": "Eve", "role": "freelancer"},
    )
    assert duplicate.status_code == 401

    bad_login = client.post("/api/auth/sign-in", json={"email": "eve@example.com", "password": "nope-nope"})
    assert bad_login.status_code == 401

    assert client.post("/api/auth/sign-out", headers=headers).status_code == 204
    assert client.get("/api/auth/session", headers=headers).status_code == 401


def test_mission_and_application_flow() -> None:
    client = TestClient(create_app())
    company = _sign_up(client, "shop@example.com", "Shop", "company")
    freelancer = _sign_up(client, "fred@example.com", "Fred", "freelancer")

    missing = client.post("/api/missions", headers=company, json={"title": "Inventaire"})
    assert missing.status_code == 422
    assert "hourly_rate" in missing.json()["missing_fields"]

    forbidden = client.post("/api/missions", headers=freelancer, json={"title": "x"})
    assert forbidden.status_code == 403

    created = client.post(
        "/api/missions",
        headers=company,
        json={
            "title": "Inventaire annuel",
            "description": "Comptage du stock",
            "location": "Lille",
            "hourly_rate": "13,5",
            "skills": "Inventaire, Facing",
        },
    )
    assert created.status_code == 201
    mission = created.json()
    assert mission["company_name"] == "Shop"
    assert mission["skills_required"] == ["Inventaire", "Facing"]

    listing = client.get("/api/missions", headers=freelancer)
    assert [item["id"] for item in listing.json()] == [mission["id"]]

    applied = client.post(
        f"/api/missions/{mission['id']}/applications",
        headers=freelancer,
        json={"message": "Dispo", "availability": "Semaine 12", "proposed_rate": 14},
    )
    assert applied.status_code == 201
    application_id = applied.json()["id"]

    again = client.post(f"/api/missions/{mission['id']}/applications", headers=freelancer, json={})
    assert again.status_code == 409
    assert again.json()["detail"] == "Vous avez déjà postulé à cette mission"

    received = client.get("/api/applications", headers=company).json()
    assert received[0]["freelancer"]["name"] == "Fred"
    assert received[0]["mission"]["title"] == "Inventaire annuel"
    assert received[0]["proposed_rate"] == 14

    accepted = client.post(f"/api/applications/{application_id}/status", headers=company, json={"status": "accepted"})
    assert accepted.json()["status"] == "accepted"

    reverted = client.post(f"/api/applications/{application_id}/status", headers=company, json={"status": "rejected"})
    assert reverted.status_code == 422

    mine = client.get("/api/applications/mine", headers=freelancer).json()
    assert mine[0]["status"] == "accepted"

    assert client.post(f"/api/missions/{mission['id']}/status", headers=company, json={"status": "closed"}).status_code == 422
    assert client.delete(f"/api/missions/{mission['id']}", headers=company).status_code == 204
    assert client.get("/api/applications/mine", headers=freelancer).json() == []


def test_onboarding_endpoints() -> None:
    client = TestClient(create_app())
    headers = _sign_up(client, "corp@example.com", "Corp", "company")

    wizard = client.get("/api/onboarding", headers=headers).json()
    assert wizard["current_step"] == 1
    assert wizard["values"]["company_name"] == "Corp"

    progress = client.put(
        "/api/onboarding/progress",
        headers=headers,
        json={"current_step": 2, "values": {"siret": "12345678900011", "activity": "Retail"}},
    )
    assert progress.status_code == 200
    assert progress.json()["missing_fields"] == ["address"]
    assert progress.json()["profile_completed"] is False

    incomplete = client.post("/api/onboarding/submit", headers=headers, json={"values": {}})
    assert incomplete.status_code == 422

    done = client.post(
        "/api/onboarding/submit",
        headers=headers,
        json={
            "values": {
                "address": "2 quai de Saône",
                "sector": "Retail",
                "location": "Lyon",
                "mission_types": ["Formation"],
            }
        },
    )
    assert done.status_code == 200
    assert done.json()["profile_completed"] is True
    assert client.get("/api/auth/session", headers=headers).json()["profile_completed"] is True


def test_admin_endpoints_require_confirmation() -> None:
    with SessionLocal() as db:
        make_admin(Repository(db), email="boss@example.com")

    client = TestClient(create_app())
    token = client.post("/api/auth/sign-in", json={"email": "boss@example.com", "password": PASSWORD}).json()
    admin = {"Authorization": f"Bearer {token['access_token']}"}
    freelancer = _sign_up(client, "gil@example.com", "Gil", "freelancer")
    gil_id = client.get("/api/auth/session", headers=freelancer).json()["profile"]["id"]

    assert client.get("/api/admin/overview", headers=freelancer).status_code == 403
    overview = client.get("/api/admin/overview", headers=admin).json()
    assert {item["id"] for item in overview["profiles"]} >= {gil_id}

    cancelled = client.delete(f"/api/admin/user/{gil_id}", headers=admin)
    assert cancelled.json()["deleted"] is False

    deleted = client.delete(f"/api/admin/user/{gil_id}", headers=admin, params={"confirm": "true"})
    assert deleted.json()["deleted"] is True
    assert client.delete(f"/api/admin/user/{gil_id}", headers=admin).status_code == 404


def test_onboarding_progress_cannot_skip_incomplete_steps() -> None:
    client = TestClient(create_app())
    headers = _sign_up(client, "skipper@example.com", "Skipper", "company")

    jumped = client.put("/api/onboarding/progress", headers=headers, json={"current_step": 4, "values": {}})
    assert jumped.status_code == 200
    assert jumped.json()["current_step"] == 1
    assert jumped.json()["missing_fields"] == ["siret", "activity"]

    partial = client.put(
        "/api/onboarding/progress",
        headers=headers,
        json={"current_step": 4, "values": {"siret": "12345678900011", "activity": "Retail"}},
    )
    assert partial.json()["current_step"] == 2
