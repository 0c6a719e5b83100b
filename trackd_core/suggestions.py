from datetime import datetime

from flask import Blueprint, g, current_app
from werkzeug.exceptions import BadRequest, NotFound, Conflict

from models import db, User, Suggestion, WatchItem
from . import notify
from .metrics import SUGGESTIONS
from .errors import (
    expect_json, read_json, validate_title, parse_year, parse_poster, parse_tmdb_id, parse_media_type,
    parse_bool, parse_id, guarded
)
from .session_utils import require_login
from .watchlist import find_watch_item, watch_item_to_dict

suggestions_bp = Blueprint("suggestions", __name__, url_prefix="/api/suggestions")

RESOLUTIONS = {"accepted", "dismissed"}


def suggestion_to_dict(s: Suggestion):
    return {
        "id": s.id,
        "friendId": s.sender.id,
        "friendName": s.sender.name,
        "friendAvatar": s.sender.image,
        "movieTitle": s.title,
        "moviePoster": s.poster,
        "tmdbId": s.tmdb_id,
        "mediaType": s.media_type,
        "year": s.year,
        "timestamp": s.created_at.isoformat(),
        "status": s.status,
    }


@suggestions_bp.get("")
@require_login
@guarded("Failed to fetch suggestions")
def list_suggestions():
    rows = (
        Suggestion.query.filter_by(user_id=g.user.id, status="pending")
        .order_by(Suggestion.created_at.desc(), Suggestion.id.desc())
        .all()
    )
    return {"success": True, "data": [suggestion_to_dict(s) for s in rows]}


@suggestions_bp.post("")
@require_login
@guarded("Failed to send suggestion")
def create_suggestion():
    expect_json()
    data = read_json()
    if not data.get("friendId") or not data.get("tmdbId") or not data.get("title"):
        raise BadRequest("Missing required fields")

    recipient_id = parse_id(data.get("friendId"), "friendId")
    if recipient_id == g.user.id:
        raise BadRequest("Cannot suggest to yourself")
    recipient = db.session.get(User, recipient_id)
    if recipient is None:
        raise NotFound("User not found")

    s = Suggestion(
        user_id=recipient.id,   # recipient
        friend_id=g.user.id,    # sender
        tmdb_id=parse_tmdb_id(data.get("tmdbId")),
        media_type=parse_media_type(data.get("mediaType")),
        title=validate_title(data.get("title")),
        year=parse_year(data.get("year")),
        poster=parse_poster(data.get("poster")),
        status="pending",
    )
    db.session.add(s); db.session.commit()
    current_app.logger.info("Suggestion %s: user %s -> user %s (%s)", s.id, g.user.id, recipient.id, s.tmdb_id)
    SUGGESTIONS.labels("created").inc()

    notify.suggestion(g.user, recipient, s)
    return {"success": True, "message": "Suggestion sent", "data": suggestion_to_dict(s)}, 201


@suggestions_bp.patch("")
@require_login
@guarded("Failed to update suggestion")
def update_suggestion():
    expect_json()
    data = read_json()
    status = data.get("status")
    if not data.get("id") or not isinstance(status, str) or status not in RESOLUTIONS:
        raise BadRequest("Invalid request")
    sid = parse_id(data.get("id"))
    watched = parse_bool(data["watched"]) if data.get("watched") is not None else False

    s = Suggestion.query.filter_by(id=sid, user_id=g.user.id).first()
    if s is None:
        raise NotFound("Suggestion not found")
    if s.status != "pending":
        raise Conflict(f"Suggestion already {s.status}")

    item = None
    if status == "accepted":
        item = find_watch_item(g.user.id, s.tmdb_id)
        if item is None:
            item = WatchItem(
                user_id=g.user.id,
                tmdb_id=s.tmdb_id,
                media_type=s.media_type,
                title=s.title,
                year=s.year,
                poster=s.poster,
                status="watched" if watched else "watch_later",
            )
            db.session.add(item)

    s.status = status
    s.updated_at = datetime.utcnow()
    # watch item and status change land in the same commit
    db.session.commit()
    SUGGESTIONS.labels(status).inc()

    body = {"suggestion": suggestion_to_dict(s)}
    if item is not None:
        body["watchItem"] = watch_item_to_dict(item)
    return {"success": True, "data": body}
