import pytest

from casedesk.app.services import user_service


def _headers(user_id: str) -> dict:
    return {"X-User-Id": user_id}


@pytest.fixture()
def people(make_user):
    return {
        "admin": make_user("SUPER_ADMIN", "Root Admin"),
        "manager": make_user("MANAGER", "Mia Manager"),
        "l1": make_user("LAWYER", "Luis Lawyer"),
        "l2": make_user("LAWYER", "Lara Lawyer"),
        "inactive": make_user("LAWYER", "Gone Lawyer", is_active=False),
    }


def _create_case(api_client, actor, **overrides):
    body = {"full_name": "Api Client", "phone_number": "5550100500"}
    body.update(overrides)
    return api_client.post("/api/cases", json=body, headers=_headers(actor.id))


def test_identity_headers_are_required(api_client, people):
    assert api_client.get("/api/cases").status_code == 401
    assert api_client.get("/api/cases", headers={"X-User-Id": "nobody"}).status_code == 401
    assert api_client.get("/api/cases", headers=_headers(people["inactive"].id)).status_code == 401

    me = api_client.get("/api/me", headers={"X-User-Email": "Mia.Manager@firm.test"})
    assert me.status_code == 200
    assert me.json()["role"] == "MANAGER"


def test_create_case_returns_default_folders(api_client, people):
    resp = _create_case(api_client, people["manager"], assigned_lawyer_id=people["l1"].id)
    assert resp.status_code == 201
    payload = resp.json()
    assert payload["case_number"].startswith("TEMP-")
    assert sorted(folder["name"] for folder in payload["folders"]) == [
        "Case Files",
        "Contracts",
        "Evidences",
        "Identity Files",
    ]


def test_error_statuses(api_client, people):
    created = _create_case(api_client, people["manager"], case_number="API-1", assigned_lawyer_id=people["l1"].id)
    case_id = created.json()["id"]

    duplicate = _create_case(api_client, people["manager"], case_number="API-1")
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "duplicate_case_number"

    hidden = api_client.get(f"/api/cases/{case_id}", headers=_headers(people["l2"].id))
    assert hidden.status_code == 404

    reassign = api_client.patch(
        f"/api/cases/{case_id}",
        json={"assigned_lawyer_id": people["l2"].id},
        headers=_headers(people["l1"].id),
    )
    assert reassign.status_code == 403
    assert reassign.json()["code"] == "access_denied"

    lawyer_delete = api_client.delete(f"/api/cases/{case_id}", headers=_headers(people["l1"].id))
    assert lawyer_delete.status_code == 403

    bad_phone = _create_case(api_client, people["manager"], phone_number="not a phone")
    assert bad_phone.status_code == 400
    assert bad_phone.json()["code"] == "validation_error"

    bad_page = api_client.get("/api/cases?limit=500", headers=_headers(people["manager"].id))
    assert bad_page.status_code == 400


def test_list_pagination_over_http(api_client, people):
    for idx in range(12):
        _create_case(api_client, people["manager"], full_name=f"Client {idx:02d}")

    resp = api_client.get(
        "/api/cases?page=2&limit=5&sort_by=full_name&sort_order=asc",
        headers=_headers(people["manager"].id),
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["total"] == 12
    assert payload["total_pages"] == 3
    assert [item["full_name"] for item in payload["items"]] == [f"Client {idx:02d}" for idx in range(5, 10)]


def test_delete_case_then_not_found(api_client, people):
    case_id = _create_case(api_client, people["manager"]).json()["id"]

    assert api_client.delete(f"/api/cases/{case_id}", headers=_headers(people["admin"].id)).status_code == 204
    assert api_client.get(f"/api/cases/{case_id}", headers=_headers(people["admin"].id)).status_code == 404
    assert api_client.delete(f"/api/cases/{case_id}", headers=_headers(people["admin"].id)).status_code == 404


def test_folder_rules_over_http(api_client, people):
    case = _create_case(api_client, people["manager"], assigned_lawyer_id=people["l1"].id).json()
    lawyer = _headers(people["l1"].id)
    default_id = next(folder["id"] for folder in case["folders"] if folder["name"] == "Contracts")

    assert api_client.delete(f"/api/folders/{default_id}", headers=lawyer).status_code == 400

    created = api_client.post(f"/api/cases/{case['id']}/folders", json={"name": "Letters"}, headers=lawyer)
    assert created.status_code == 201
    folder_id = created.json()["id"]

    upload = api_client.post(
        f"/api/folders/{folder_id}/files",
        json={"file_name": "letter.pdf", "file_path": "store/letter.pdf"},
        headers=lawyer,
    )
    assert upload.status_code == 201

    blocked = api_client.delete(f"/api/folders/{folder_id}", headers=lawyer)
    assert blocked.status_code == 400
    assert blocked.json()["code"] == "folder_rule"

    listing = api_client.get(f"/api/cases/{case['id']}/folders", headers=lawyer)
    assert listing.json()["total"] == 5


def test_statistics_and_case_number_check(api_client, people):
    _create_case(api_client, people["manager"], case_number="STAT-1", assigned_lawyer_id=people["l1"].id)
    _create_case(api_client, people["manager"], case_number="STAT-2")

    stats = api_client.get("/api/cases/statistics", headers=_headers(people["l1"].id)).json()
    assert stats["total"] == 1

    check = api_client.get("/api/cases/check-case-number/STAT-2", headers=_headers(people["l1"].id)).json()
    assert check == {"case_number": "STAT-2", "exists": True}


def test_user_management(api_client, people, sqlite_session):
    admin = _headers(people["admin"].id)
    created = api_client.post(
        "/api/users", json={"email": "New.Lawyer@Firm.test", "role": "lawyer"}, headers=admin
    )
    assert created.status_code == 201
    assert created.json()["email"] == "new.lawyer@firm.test"
    assert created.json()["role"] == "LAWYER"

    duplicate = api_client.post("/api/users", json={"email": "new.lawyer@firm.test", "role": "LAWYER"}, headers=admin)
    assert duplicate.status_code == 400

    by_manager = api_client.post(
        "/api/users", json={"email": "x@firm.test", "role": "LAWYER"}, headers=_headers(people["manager"].id)
    )
    assert by_manager.status_code == 403

    lawyers = api_client.get("/api/users/lawyers", headers=_headers(people["l1"].id)).json()
    assert {row["email"] for row in lawyers} == {
        "luis.lawyer@firm.test",
        "lara.lawyer@firm.test",
        "new.lawyer@firm.test",
    }
    assert api_client.get("/api/users", headers=_headers(people["l1"].id)).status_code == 403

    assert user_service.seed_super_admin(sqlite_session, "root.admin@firm.test").id == people["admin"].id


def test_user_status_over_http(api_client, people):
    manager = _headers(people["manager"].id)
    target = people["l2"].id

    deactivated = api_client.patch(f"/api/users/{target}/status", json={"is_active": False}, headers=manager)
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False
    assert api_client.get("/api/cases", headers=_headers(target)).status_code == 401

    lawyers = api_client.get("/api/users/lawyers", headers=manager).json()
    assert target not in {row["id"] for row in lawyers}

    over_manager = api_client.patch(
        f"/api/users/{people['admin'].id}/status", json={"is_active": False}, headers=manager
    )
    assert over_manager.status_code == 403

    by_lawyer = api_client.patch(
        f"/api/users/{target}/status", json={"is_active": True}, headers=_headers(people["l1"].id)
    )
    assert by_lawyer.status_code == 403

    self_off = api_client.patch(
        f"/api/users/{people['admin'].id}/status", json={"is_active": False}, headers=_headers(people["admin"].id)
    )
    assert self_off.status_code == 403

    missing = api_client.patch("/api/users/nobody/status", json={"is_active": True}, headers=manager)
    assert missing.status_code == 404

    reactivated = api_client.patch(
        f"/api/users/{target}/status", json={"is_active": True}, headers=_headers(people["admin"].id)
    )
    assert reactivated.json()["is_active"] is True


def test_file_search_and_statistics_over_http(api_client, people):
    case = _create_case(api_client, people["manager"], assigned_lawyer_id=people["l1"].id).json()
    lawyer = _headers(people["l1"].id)
    folder_id = next(folder["id"] for folder in case["folders"] if folder["name"] == "Evidences")
    api_client.post(
        f"/api/folders/{folder_id}/files",
        json={"file_name": "photo.png", "file_path": "store/photo.png", "file_size": 40, "mime_type": "image/png"},
        headers=lawyer,
    )

    found = api_client.get(f"/api/folders/{folder_id}/files/search?q=photo", headers=lawyer)
    assert found.status_code == 200
    assert found.json()["total"] == 1

    stats = api_client.get(f"/api/folders/{folder_id}/files/statistics", headers=lawyer).json()
    assert stats == {"total_files": 1, "by_type": [{"mime_type": "image/png", "count": 1}], "total_size": 40}

    hidden = api_client.get(f"/api/folders/{folder_id}/files/statistics", headers=_headers(people["l2"].id))
    assert hidden.status_code == 404


def test_appointments_over_http(api_client, people):
    case = _create_case(api_client, people["manager"], assigned_lawyer_id=people["l1"].id).json()
    lawyer = _headers(people["l1"].id)

    created = api_client.post(
        "/api/appointments",
        json={
            "case_id": case["id"],
            "title": "Pretrial",
            "appointment_with": "both",
            "date": "2033-01-10T15:00:00-05:00",
        },
        headers=lawyer,
    )
    assert created.status_code == 201
    appointment = created.json()
    assert appointment["date"].startswith("2033-01-10T20:00:00")
    assert appointment["case"]["case_number"] == case["case_number"]
    assert appointment["user"]["id"] == people["l1"].id

    calendar = api_client.get(
        "/api/appointments/calendar?start_date=2033-01-01T00:00:00&end_date=2033-01-31T00:00:00",
        headers=lawyer,
    ).json()
    assert list(calendar) == ["2033-01-10"]

    upcoming = api_client.get("/api/appointments/status/upcoming", headers=lawyer).json()
    assert [row["id"] for row in upcoming] == [appointment["id"]]
    assert api_client.get("/api/appointments/status/someday", headers=lawyer).status_code == 400

    by_manager = api_client.patch(
        f"/api/appointments/{appointment['id']}/status", json={"status": "canceled"}, headers=_headers(people["manager"].id)
    )
    assert by_manager.status_code == 403

    canceled = api_client.patch(
        f"/api/appointments/{appointment['id']}/status", json={"status": "canceled"}, headers=lawyer
    )
    assert canceled.json()["status"] == "canceled"

    assert api_client.get(f"/api/appointments/{appointment['id']}", headers=_headers(people["l2"].id)).status_code == 404
    assert api_client.delete(f"/api/appointments/{appointment['id']}", headers=lawyer).status_code == 204


def test_unexpected_errors_become_internal_error(sqlite_engine, sqlite_session, people, monkeypatch):
    from fastapi.testclient import TestClient
    from sqlalchemy.exc import OperationalError

    from casedesk.app.db import get_db
    from casedesk.app.main import app
    from casedesk.app.services import case_service

    def _broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    def _get_test_db():
        yield sqlite_session

    monkeypatch.setattr(case_service, "get_statistics", _broken)
    app.dependency_overrides[get_db] = _get_test_db
    try:
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/api/cases/statistics", headers=_headers(people["manager"].id))
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert resp.status_code == 500
    assert resp.json() == {"detail": "internal error", "code": "internal_error"}
