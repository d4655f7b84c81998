"""Tests for the cold calling tab/row API."""
import json
import sqlite3

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from werkzeug.security import generate_password_hash

from app.ocl import create_app
from app.ocl import auth
from app.ocl.audit import events_for
from app.ocl.db import session_scope
from app.ocl.models import AuditEvent, Base, User
from scripts.init_db import seed_roles


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    auth._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        roles = seed_roles(s)
        admin = User(email="admin@example.com", name="Admin", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles["admin"])
        office = User(email="office@example.com", name="Office", password_hash=generate_password_hash("pw"), is_active=True)
        office.roles.append(roles["office_admin"])
        plain = User(email="nobody@example.com", name="Nobody", password_hash=generate_password_hash("pw"), is_active=True)
        s.add_all([admin, office, plain])

    return app.test_client()


def _auth(client, email="admin@example.com"):
    r = client.post("/auth/login", json={"email": email, "password": "pw"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json['data']['token']}"}


def _create(client, headers, tab="Master", **fields):
    r = client.post("/api/cold-calling", json={"tabName": tab, **fields}, headers=headers)
    assert r.status_code == 201, r.json
    return r.json["data"]


def test_requires_token(client):
    r = client.get("/api/cold-calling")
    assert r.status_code == 401
    assert r.json == {"success": False, "error": "Authentication required"}


def test_user_without_permission_is_forbidden(client):
    h = _auth(client, "nobody@example.com")
    r = client.get("/api/cold-calling", headers=h)
    assert r.status_code == 403
    assert r.json["success"] is False


def test_create_assigns_next_row_number(client):
    h = _auth(client)
    first = _create(client, h, concernName="Pradip - HO", companyName="KKB Projects Pvt. Ltd.")
    second = _create(client, h, concernName="Balvinder Singh", rowNumber=99)

    assert first["rowNumber"] == 1
    # rowNumber from the client is ignored on create
    assert second["rowNumber"] == 2
    assert first["tabName"] == "Master"
    assert first["broadcast"] == ""
    assert first["createdAt"] and first["updatedAt"]

    other_tab = _create(client, h, tab="Scrap")
    assert other_tab["rowNumber"] == 1


def test_create_validation(client):
    h = _auth(client)

    r = client.post("/api/cold-calling", json={"concernName": "x"}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "Tab name is required"

    r = client.post("/api/cold-calling", json={"tabName": "   "}, headers=h)
    assert r.status_code == 400

    r = client.post("/api/cold-calling", json={"tabName": "Master", "fax": "123"}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "Unknown field: fax"

    r = client.post("/api/cold-calling", json={"tabName": "Master", "broadcast": "MAYBE"}, headers=h)
    assert r.status_code == 400
    assert "broadcast" in r.json["error"]

    r = client.post("/api/cold-calling", json={"tabName": "Master", "status": "closed"}, headers=h)
    assert r.status_code == 400

    r = client.post("/api/cold-calling", data="not json", headers=h)
    assert r.status_code == 400


def test_list_tabs_counts_and_rows_order(client):
    h = _auth(client)
    a = _create(client, h, concernName="A")
    b = _create(client, h, concernName="B")
    _create(client, h, tab="Scrap", concernName="C")

    r = client.get("/api/cold-calling", headers=h)
    assert r.status_code == 200
    assert r.json["data"] == [{"tabName": "Master", "count": 2}, {"tabName": "Scrap", "count": 1}]

    # Move B in front of A
    r = client.put(f"/api/cold-calling/{b['id']}", json={"rowNumber": 0}, headers=h)
    assert r.status_code == 200

    r = client.get("/api/cold-calling/Master", headers=h)
    assert [row["id"] for row in r.json["data"]] == [b["id"], a["id"]]

    r = client.get("/api/cold-calling/Nope", headers=h)
    assert r.status_code == 200
    assert r.json["data"] == []


def test_rows_with_same_row_number_sort_by_creation(client):
    h = _auth(client)
    a = _create(client, h)
    b = _create(client, h)
    client.put(f"/api/cold-calling/{b['id']}", json={"rowNumber": 1}, headers=h)

    r = client.get("/api/cold-calling/Master", headers=h)
    assert [row["id"] for row in r.json["data"]] == [a["id"], b["id"]]


def test_update_is_partial(client):
    h = _auth(client)
    row = _create(client, h, concernName="Pradip", companyName="KKB", broadcast="YES")

    r = client.put(
        f"/api/cold-calling/{row['id']}",
        json={"companyName": "KKB Projects", "status": "pending", "id": row["id"], "createdAt": "ignored"},
        headers=h,
    )
    assert r.status_code == 200
    data = r.json["data"]
    assert data["companyName"] == "KKB Projects"
    assert data["status"] == "pending"
    assert data["concernName"] == "Pradip"
    assert data["broadcast"] == "YES"
    assert data["createdAt"] == row["createdAt"]
    assert data["updatedAt"] >= row["updatedAt"]


def test_update_rejects_tab_move_unknown_field_and_missing_row(client):
    h = _auth(client)
    row = _create(client, h)

    r = client.put(f"/api/cold-calling/{row['id']}", json={"tabName": "Scrap"}, headers=h)
    assert r.status_code == 400

    # Same tab name is accepted
    r = client.put(f"/api/cold-calling/{row['id']}", json={"tabName": "Master", "rating": "5 Star"}, headers=h)
    assert r.status_code == 200
    assert r.json["data"]["rating"] == "5 Star"

    r = client.put(f"/api/cold-calling/{row['id']}", json={"bogus": 1}, headers=h)
    assert r.status_code == 400

    r = client.put("/api/cold-calling/999999", json={"rating": "x"}, headers=h)
    assert r.status_code == 404
    assert r.json["error"] == "Row not found"


def test_bulk_update_reports_each_row(client):
    h = _auth(client)
    a = _create(client, h, concernName="A")
    b = _create(client, h, concernName="B")
    elsewhere = _create(client, h, tab="Scrap", concernName="S")

    r = client.put(
        "/api/cold-calling/bulk/Master",
        json={
            "rows": [
                {"id": a["id"], "status": "done"},
                {"id": 999999, "status": "done"},
                {"id": b["id"], "broadcast": "MAYBE"},
                {"id": elsewhere["id"], "status": "done"},
                {"concernName": "no id"},
            ]
        },
        headers=h,
    )
    assert r.status_code == 200
    data = r.json["data"]
    assert data["tabName"] == "Master"
    assert data["updated"] == 1
    assert data["failed"] == 4
    assert [item["success"] for item in data["results"]] == [True, False, False, False, False]
    assert data["results"][1]["error"] == "Row not found"
    assert data["results"][3]["error"] == "Row not found"
    assert "1 rows" in r.json["message"]

    rows = {row["id"]: row for row in client.get("/api/cold-calling/Master", headers=h).json["data"]}
    assert rows[a["id"]]["status"] == "done"
    assert rows[b["id"]]["broadcast"] == ""

    scrap = client.get("/api/cold-calling/Scrap", headers=h).json["data"]
    assert scrap[0]["status"] == ""


def test_bulk_update_requires_array(client):
    h = _auth(client)
    r = client.put("/api/cold-calling/bulk/Master", json={"rows": {"id": 1}}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "Rows must be an array"


def test_bulk_update_isolates_store_failures(client):
    h = _auth(client)
    a = _create(client, h, concernName="A")
    b = _create(client, h, concernName="B")
    c = _create(client, h, concernName="C")
    engine = client.application.extensions["sqlalchemy_engine"]

    def fail_marked_updates(conn, cursor, statement, parameters, context, executemany):
        if not statement.startswith("UPDATE cold_calling_rows"):
            return
        if "disk-full" in parameters:
            raise OperationalError(statement, parameters, sqlite3.OperationalError("database or disk is full"))
        if "driver-bug" in parameters:
            raise RuntimeError("driver bug")

    event.listen(engine, "before_cursor_execute", fail_marked_updates)
    try:
        r = client.put(
            "/api/cold-calling/bulk/Master",
            json={
                "rows": [
                    {"id": a["id"], "status": "done"},
                    {"id": b["id"], "concernName": "disk-full", "status": "done"},
                    {"id": c["id"], "concernName": "driver-bug"},
                    {"id": c["id"], "rating": "5 Star"},
                ]
            },
            headers=h,
        )
    finally:
        event.remove(engine, "before_cursor_execute", fail_marked_updates)

    assert r.status_code == 200
    data = r.json["data"]
    assert [item["success"] for item in data["results"]] == [True, False, False, True]
    assert data["results"][1] == {"id": b["id"], "success": False, "error": "Failed to update row"}
    assert data["results"][2]["error"] == "Failed to update row"

    rows = {row["id"]: row for row in client.get("/api/cold-calling/Master", headers=h).json["data"]}
    assert rows[a["id"]]["status"] == "done"
    assert rows[b["id"]]["concernName"] == "B"
    assert rows[b["id"]]["status"] == ""
    assert rows[c["id"]]["concernName"] == "C"
    assert rows[c["id"]]["rating"] == "5 Star"


@pytest.mark.parametrize("bad", ["--5", "²", "1.5", 2**70, -(2**31) - 1])
def test_update_rejects_malformed_row_number(client, bad):
    h = _auth(client)
    row = _create(client, h)

    r = client.put(f"/api/cold-calling/{row['id']}", json={"status": "done", "rowNumber": bad}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] in ("rowNumber must be an integer", "rowNumber is out of range")

    [stored] = client.get("/api/cold-calling/Master", headers=h).json["data"]
    assert stored["status"] == ""
    assert stored["rowNumber"] == 1

    r = client.put(f"/api/cold-calling/{row['id']}", json={"rowNumber": " 7 "}, headers=h)
    assert r.status_code == 200
    assert r.json["data"]["rowNumber"] == 7


def test_bulk_update_reports_malformed_row_numbers_per_item(client):
    h = _auth(client)
    a = _create(client, h)
    b = _create(client, h)

    r = client.put(
        "/api/cold-calling/bulk/Master",
        json={
            "rows": [
                {"id": a["id"], "status": "done"},
                {"id": b["id"], "rowNumber": "²"},
                {"id": b["id"], "rowNumber": 2**70},
                {"id": b["id"], "rowNumber": "--5"},
            ]
        },
        headers=h,
    )
    assert r.status_code == 200
    results = r.json["data"]["results"]
    assert [item["success"] for item in results] == [True, False, False, False]
    assert results[1]["error"] == "rowNumber must be an integer"
    assert results[2]["error"] == "rowNumber is out of range"

    rows = {row["id"]: row for row in client.get("/api/cold-calling/Master", headers=h).json["data"]}
    assert rows[a["id"]]["status"] == "done"
    assert rows[b["id"]]["rowNumber"] == 2


def test_over_long_values_are_rejected(client):
    h = _auth(client)

    r = client.post("/api/cold-calling", json={"tabName": "Master", "phone1": "9" * 65}, headers=h)
    assert r.status_code == 400
    assert r.json["error"] == "phone1 cannot be longer than 64 characters"

    r = client.post("/api/cold-calling", json={"tabName": "T" * 129}, headers=h)
    assert r.status_code == 400

    row = _create(client, h)
    r = client.put(f"/api/cold-calling/{row['id']}", json={"sujata": "s" * 513}, headers=h)
    assert r.status_code == 400

    r = client.put(
        "/api/cold-calling/bulk/Master",
        json={"rows": [{"id": row["id"], "backgroundColor": "#" * 33}]},
        headers=h,
    )
    assert r.json["data"]["results"][0]["success"] is False
    assert "backgroundColor" in r.json["data"]["results"][0]["error"]


def test_delete_row(client):
    h = _auth(client)
    row = _create(client, h)

    r = client.delete(f"/api/cold-calling/{row['id']}", headers=h)
    assert r.status_code == 200
    assert r.json["success"] is True

    r = client.delete(f"/api/cold-calling/{row['id']}", headers=h)
    assert r.status_code == 404


def test_delete_tab_removes_it_from_tab_list(client):
    h = _auth(client)
    _create(client, h, tab="Red Zone")
    _create(client, h, tab="Red Zone")
    _create(client, h, tab="Master")

    r = client.delete("/api/cold-calling/tab/Red%20Zone", headers=h)
    assert r.status_code == 200
    assert r.json["data"] == {"deletedCount": 2}

    tabs = client.get("/api/cold-calling", headers=h).json["data"]
    assert [t["tabName"] for t in tabs] == ["Master"]

    r = client.delete("/api/cold-calling/tab/Red%20Zone", headers=h)
    assert r.json["data"] == {"deletedCount": 0}


def test_office_admin_manages_rows_but_not_news(client):
    h = _auth(client, "office@example.com")
    _create(client, h, concernName="From the office")

    r = client.post("/api/ocl-news", json={"title": "t", "excerpt": "e", "content": "c"}, headers=h)
    assert r.status_code == 403


def test_writes_are_audited(client):
    h = _auth(client)
    row = _create(client, h)
    client.put(f"/api/cold-calling/{row['id']}", json={"rating": "4 Star"}, headers=h)
    client.delete("/api/cold-calling/tab/Master", headers=h)

    with session_scope(client.application) as s:
        actions = [e.action for e in s.query(AuditEvent).order_by(AuditEvent.id.asc()).all()]
        actor = s.query(AuditEvent).filter(AuditEvent.action == "cold_calling.create").one().actor_user_email
    assert actions == ["auth.login", "cold_calling.create", "cold_calling.update", "cold_calling.delete_tab"]
    assert actor == "admin@example.com"

    with session_scope(client.application) as s:
        history = events_for(s, "ColdCallingRow", str(row["id"]))
        assert [e.action for e in history] == ["cold_calling.create", "cold_calling.update"]
        changes = json.loads(history[1].metadata_json)["changes"]
    assert changes == {"rating": {"old": "", "new": "4 Star"}}


def test_sample_tab_seed_is_idempotent(tmp_path):
    from sqlalchemy import create_engine

    from scripts import seed_cold_calling

    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()

    assert seed_cold_calling.seed(url) == 2
    assert seed_cold_calling.seed(url) == 0
    assert seed_cold_calling.seed(url, reset=True) == 2
