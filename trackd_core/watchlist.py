from flask import Blueprint, request, g
from werkzeug.exceptions import BadRequest, NotFound

from models import db, WatchItem
from .errors import (
    expect_json, read_json, validate_title, parse_year, parse_poster, parse_tmdb_id, parse_media_type,
    parse_status, parse_bool, parse_rating, guarded
)
from .session_utils import require_login

watchlist_bp = Blueprint("watchlist", __name__, url_prefix="/api/watchlist")


def find_watch_item(user_id: int, tmdb_id: str) -> WatchItem | None:
    return WatchItem.query.filter_by(user_id=user_id, tmdb_id=str(tmdb_id)).first()


def watch_item_to_dict(w: WatchItem):
    return {
        "id": w.id,
        "tmdbId": w.tmdb_id,
        "mediaType": w.media_type,
        "title": w.title,
        "year": w.year,
        "poster": w.poster,
        "rating": w.rating,
        "status": w.status,
        "createdAt": w.created_at.isoformat(),
        "updatedAt": w.updated_at.isoformat(),
    }


def watch_item_from_payload(data) -> dict:
    """
    Accepts a TMDB search result (id, media_type, title/name,
    release_date/first_air_date, poster_path) or our own camelCase shape.
    """
    raw_id = data.get("tmdbId", data.get("id"))
    fields = {
        "tmdb_id": parse_tmdb_id(raw_id),
        "media_type": parse_media_type(data.get("mediaType", data.get("media_type"))),
        "title": validate_title(data.get("title") or data.get("name")),
        "year": parse_year(data.get("year") or data.get("release_date") or data.get("first_air_date")),
        "poster": parse_poster(data["poster_path"] if data.get("poster_path") is not None else data.get("poster")),
        "rating": parse_rating(data.get("rating")),
    }
    if data.get("status") is not None:
        fields["status"] = parse_status(data.get("status"))
    elif data.get("watched") is not None:
        fields["status"] = "watched" if parse_bool(data.get("watched")) else "watch_later"
    else:
        fields["status"] = "watch_later"
    return fields


@watchlist_bp.get("")
@require_login
@guarded("Failed to fetch watchlist")
def list_watchlist():
    items = (
        WatchItem.query.filter_by(user_id=g.user.id)
        .order_by(WatchItem.created_at.desc(), WatchItem.id.desc())
        .all()
    )
    return {"success": True, "data": [watch_item_to_dict(w) for w in items]}


@watchlist_bp.post("")
@require_login
@guarded("Failed to add to watchlist")
def add_to_watchlist():
    expect_json()
    fields = watch_item_from_payload(read_json())

    existing = find_watch_item(g.user.id, fields["tmdb_id"])
    if existing:
        return {"success": True, "message": "Already in watchlist", "created": False,
                "data": watch_item_to_dict(existing)}, 200

    w = WatchItem(user_id=g.user.id, **fields)
    db.session.add(w); db.session.commit()
    return {"success": True, "message": "Added to watchlist", "created": True,
            "data": watch_item_to_dict(w)}, 201


@watchlist_bp.patch("")
@require_login
@guarded("Failed to update watchlist")
def update_watchlist():
    expect_json()
    data = read_json()
    tmdb_id = parse_tmdb_id(data.get("tmdbId"))
    if "status" not in data and "rating" not in data:
        raise BadRequest("status or rating is required")

    status = parse_status(data.get("status")) if "status" in data else None
    w = find_watch_item(g.user.id, tmdb_id)
    if w is None:
        raise NotFound("Item not found")

    if status is not None:
        w.status = status
    if "rating" in data:
        w.rating = parse_rating(data.get("rating"))

    db.session.commit()
    return {"success": True, "data": watch_item_to_dict(w)}


@watchlist_bp.delete("")
@require_login
@guarded("Failed to remove from watchlist")
def remove_from_watchlist():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    tmdb_id = parse_tmdb_id(data.get("tmdbId") or request.args.get("tmdbId"))

    # removes duplicates left by concurrent adds as well
    removed = WatchItem.query.filter_by(user_id=g.user.id, tmdb_id=tmdb_id).delete()
    if not removed:
        raise NotFound("Item not found")
    db.session.commit()
    return {"success": True, "data": {"deleted": tmdb_id}}
