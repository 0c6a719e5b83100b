import pytest
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import BadRequest

from models import db, Friend, Suggestion, WatchItem

from trackd_core.errors import (
    normalize_email, validate_title, parse_year, parse_poster, parse_tmdb_id, parse_media_type,
    parse_status, parse_bool, parse_rating, parse_id
)


def test_normalize_email():
    assert normalize_email("  Bob@Example.COM ") == "bob@example.com"
    for bad in (None, "", "bob", "bob@", "@example.com", "a b@example.com", 7):
        with pytest.raises(BadRequest):
            normalize_email(bad)


def test_title_and_year():
    assert validate_title("  X  ") == "X"
    with pytest.raises(BadRequest):
        validate_title("  ")
    assert parse_year(None) is None
    assert parse_year("1999") == "1999"
    assert parse_year("1999-03-31") == "1999"
    with pytest.raises(BadRequest):
        parse_year("99")


def test_poster():
    assert parse_poster(None) is None
    assert parse_poster("  ") is None
    assert parse_poster(" /x.jpg ") == "/x.jpg"
    for bad in ({"x": 1}, [1], 7, "p" * 256):
        with pytest.raises(BadRequest):
            parse_poster(bad)


def test_ids_and_enums():
    assert parse_tmdb_id(603) == "603"
    assert parse_tmdb_id(" 27205 ") == "27205"
    for bad in (None, "", True, "abc"):
        with pytest.raises(BadRequest):
            parse_tmdb_id(bad)
    assert parse_media_type(None) == "movie"
    assert parse_media_type("tv") == "tv"
    with pytest.raises(BadRequest):
        parse_media_type(["tv"])
    assert parse_status("watched") == "watched"
    with pytest.raises(BadRequest):
        parse_status("wishlist")
    assert parse_id("12") == 12
    with pytest.raises(BadRequest):
        parse_id(True)


def test_bool_and_rating():
    assert parse_bool(True) is True
    assert parse_bool("no") is False
    with pytest.raises(BadRequest):
        parse_bool("maybe")
    assert parse_rating(None) is None
    assert parse_rating("") is None
    assert parse_rating(5) == 5
    for bad in (0, 6, "x", True):
        with pytest.raises(BadRequest):
            parse_rating(bad)


@pytest.fixture()
def failing_commit(monkeypatch):
    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))
    return lambda: monkeypatch.setattr(db.session, "commit", broken_commit)


def test_failed_commit_rolls_back_with_operation_message(app, users, as_user, outbox, failing_commit, caplog):
    alice = as_user("alice")
    failing_commit()

    r = alice.post("/api/friends", json={"email": "bob@example.com"})
    assert r.status_code == 500
    assert r.json == {"success": False, "error": "Failed to add friend"}
    assert outbox == []
    assert "Failed to add friend" in caplog.text

    with app.app_context():
        assert Friend.query.count() == 0


def test_failed_accept_keeps_suggestion_pending(app, users, as_user, outbox, failing_commit):
    as_user("alice").post("/api/suggestions", json={"friendId": users["bob"], "tmdbId": "603", "title": "The Matrix"})
    bob = as_user("bob")
    sid = bob.get("/api/suggestions").json["data"][0]["id"]
    failing_commit()

    r = bob.patch("/api/suggestions", json={"id": sid, "status": "accepted"})
    assert r.status_code == 500
    assert r.json == {"success": False, "error": "Failed to update suggestion"}

    with app.app_context():
        assert db.session.get(Suggestion, sid).status == "pending"
        assert WatchItem.query.count() == 0
