"""Tests for newsletter subscribe/unsubscribe/list."""
import pytest
from werkzeug.security import generate_password_hash

from app.ocl import auth, create_app
from app.ocl.db import session_scope
from app.ocl.models import Base, User
from app.ocl.modules.newsletter.models import NewsEmail
from scripts.init_db import seed_roles


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    auth._login_attempts.clear()

    app = create_app()
    Base.metadata.create_all(bind=app.extensions["sqlalchemy_engine"])

    with session_scope(app) as s:
        roles = seed_roles(s)
        admin = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        admin.roles.append(roles["admin"])
        office = User(email="office@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        office.roles.append(roles["office_admin"])
        s.add_all([admin, office])

    return app.test_client()


def _auth(client, email):
    r = client.post("/auth/login", json={"email": email, "password": "pw"})
    return {"Authorization": f"Bearer {r.json['data']['token']}"}


def test_subscribe_new_address(client):
    r = client.post("/api/news-email/subscribe", json={"email": "  Reader@Example.COM "})
    assert r.status_code == 201
    assert r.json["data"]["email"] == "reader@example.com"
    assert r.json["data"]["subscribedAt"]

    with session_scope(client.application) as s:
        sub = s.query(NewsEmail).one()
        assert sub.email == "reader@example.com"
        assert sub.is_active is True


def test_subscribe_twice_reports_already_subscribed(client):
    client.post("/api/news-email/subscribe", json={"email": "reader@example.com"})
    r = client.post("/api/news-email/subscribe", json={"email": "READER@example.com"})
    assert r.status_code == 200
    assert r.json["alreadySubscribed"] is True


def test_unsubscribe_then_resubscribe(client):
    first = client.post("/api/news-email/subscribe", json={"email": "reader@example.com"}).json["data"]

    r = client.post("/api/news-email/unsubscribe", json={"email": "reader@example.com"})
    assert r.status_code == 200

    r = client.post("/api/news-email/subscribe", json={"email": "reader@example.com"})
    assert r.status_code == 200
    assert r.json["message"].startswith("Welcome back!")
    assert "alreadySubscribed" not in r.json

    with session_scope(client.application) as s:
        sub = s.query(NewsEmail).one()
        assert sub.is_active is True
        assert sub.subscribed_at.isoformat() >= first["subscribedAt"]


def test_invalid_emails(client):
    r = client.post("/api/news-email/subscribe", json={})
    assert r.status_code == 400
    assert r.json["error"] == "Email is required"

    r = client.post("/api/news-email/subscribe", json={"email": "not-an-email"})
    assert r.status_code == 400
    assert r.json["error"] == "Please enter a valid email address"

    r = client.post("/api/news-email/subscribe", data={"email": "a@b"})
    assert r.status_code == 400


def test_unsubscribe_unknown_address(client):
    r = client.post("/api/news-email/unsubscribe", json={"email": "ghost@example.com"})
    assert r.status_code == 404
    assert r.json["error"] == "Email is not subscribed"


def test_list_requires_newsletter_permission(client):
    client.post("/api/news-email/subscribe", json={"email": "one@example.com"})
    client.post("/api/news-email/subscribe", data={"email": "two@example.com"})
    client.post("/api/news-email/unsubscribe", json={"email": "one@example.com"})

    assert client.get("/api/news-email/list").status_code == 401
    assert client.get("/api/news-email/list", headers=_auth(client, "office@example.com")).status_code == 403

    h = _auth(client, "admin@example.com")
    r = client.get("/api/news-email/list", headers=h)
    assert r.status_code == 200
    assert r.json["total"] == 2
    assert [row["email"] for row in r.json["data"]] == ["two@example.com", "one@example.com"]

    r = client.get("/api/news-email/list?active=true", headers=h)
    assert [row["email"] for row in r.json["data"]] == ["two@example.com"]
