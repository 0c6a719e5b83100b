import logging

from prometheus_client import REGISTRY

from app import create_app
from models import db, User
import mailer


def test_first_sign_in_creates_user(app, client):
    r = client.post("/api/auth/session", json={"email": "Dave@Example.com", "image": "https://img/d.png"})
    assert r.status_code == 201
    assert r.json["data"]["email"] == "dave@example.com"
    assert r.json["data"]["name"] == "dave"

    r = client.get("/api/auth/session")
    assert r.status_code == 200
    assert r.json["data"]["image"] == "https://img/d.png"

    # signing in again finds the same row
    r = client.post("/api/auth/session", json={"email": "dave@example.com", "name": "Dave"})
    assert r.status_code == 200
    with app.app_context():
        assert User.query.filter_by(email="dave@example.com").count() == 1


def test_sign_out(client):
    client.post("/api/auth/session", json={"email": "dave@example.com"})
    assert client.get("/api/watchlist").status_code == 200
    assert client.delete("/api/auth/session").status_code == 200
    assert client.get("/api/auth/session").status_code == 401
    assert client.get("/api/watchlist").status_code == 401


def test_sign_in_validation(client):
    assert client.post("/api/auth/session", json={}).status_code == 400
    assert client.post("/api/auth/session", json={"email": "nope"}).status_code == 400
    assert client.post("/api/auth/session", data="email=x").status_code == 415


def test_session_for_deleted_user_is_unauthenticated(app, client):
    r = client.post("/api/auth/session", json={"email": "dave@example.com"})
    with app.app_context():
        db.session.delete(db.session.get(User, r.json["data"]["id"]))
        db.session.commit()
    assert client.get("/api/friends").status_code == 401


def test_sign_in_secret_enforced(app, client):
    app.config["SIGNIN_SECRET"] = "callback-secret"
    payload = {"email": "dave@example.com"}
    assert client.post("/api/auth/session", json=payload).status_code == 401
    r = client.post("/api/auth/session", json=payload, headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 403
    r = client.post("/api/auth/session", json=payload, headers={"Authorization": "Bearer callback-secret"})
    assert r.status_code == 201


def test_sign_in_refused_without_secret_outside_debug(app, client, users):
    app.config["TESTING"] = False
    app.config["DEBUG"] = False
    r = client.post("/api/auth/session", json={"email": "alice@example.com"})
    assert r.status_code == 403
    assert r.json == {"success": False, "error": "Sign-in is not configured"}
    assert client.get("/api/auth/session").status_code == 401

    # local development keeps the open callback
    app.config["DEBUG"] = True
    assert client.post("/api/auth/session", json={"email": "alice@example.com"}).status_code == 200


def test_health_and_metrics(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["database"] is True
    client.get("/api/friends")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert b"trackd_http_requests_total" in r.data


def test_unknown_route_uses_envelope(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json["success"] is False


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels or None) or 0.0


def test_activity_counters(users, as_user, outbox, monkeypatch, client):
    before = {
        "requests": _sample("trackd_friend_requests_total"),
        "accepted": _sample("trackd_friendships_accepted_total"),
        "invited": _sample("trackd_invitations_total", event="sent"),
        "suggested": _sample("trackd_suggestions_total", status="created"),
        "taken": _sample("trackd_suggestions_total", status="accepted"),
        "mail_failed": _sample("trackd_email_failures_total", kind="friend_request"),
    }

    alice, bob = as_user("alice"), as_user("bob")
    alice.post("/api/friends", json={"email": "bob@example.com"})
    rid = bob.get("/api/friends").json["data"]["requests"][0]["id"]
    bob.patch("/api/friends", json={"id": rid, "action": "accept"})
    alice.post("/api/friends", json={"email": "dave@example.com"})
    alice.post("/api/suggestions", json={"friendId": users["bob"], "tmdbId": "603", "title": "The Matrix"})
    sid = bob.get("/api/suggestions").json["data"][0]["id"]
    bob.patch("/api/suggestions", json={"id": sid, "status": "accepted"})

    def boom(*a, **kw):
        raise mailer.EmailError("provider down")
    monkeypatch.setattr(mailer, "send_friend_request", boom)
    alice.post("/api/friends", json={"email": "carol@example.com"})

    assert _sample("trackd_friend_requests_total") == before["requests"] + 2
    assert _sample("trackd_friendships_accepted_total") == before["accepted"] + 1
    assert _sample("trackd_invitations_total", event="sent") == before["invited"] + 1
    assert _sample("trackd_suggestions_total", status="created") == before["suggested"] + 1
    assert _sample("trackd_suggestions_total", status="accepted") == before["taken"] + 1
    assert _sample("trackd_email_failures_total", kind="friend_request") == before["mail_failed"] + 1

    body = client.get("/metrics").data
    assert b"trackd_friendships_accepted_total" in body
    assert b'trackd_email_failures_total{kind="friend_request"}' in body


def test_invalid_log_level_falls_back_to_info(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'log.db'}"})
    assert app.logger.level == logging.INFO

    monkeypatch.setenv("LOG_LEVEL", "debug")
    app = create_app({"TESTING": True, "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'log2.db'}"})
    assert app.logger.level == logging.DEBUG
