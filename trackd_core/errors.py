import re
from functools import wraps
from typing import Any, Dict

from flask import request, current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import (
    HTTPException, BadRequest, UnsupportedMediaType, Unauthorized, Forbidden, InternalServerError
)

from models import db, MEDIA_TYPES, WATCH_STATUSES
from tmdb_api import TMDBError
from .metrics import TMDB_ERRORS

# -----------------------------
# JSON error handlers
# -----------------------------

def install_json_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return {"success": False, "error": e.description}, e.code

    @app.errorhandler(TMDBError)
    def handle_tmdb(e: TMDBError):
        TMDB_ERRORS.labels(str(e.status_code or 0)).inc()
        # pass the upstream status through when TMDB answered at all
        status = e.status_code if e.status_code and e.status_code >= 400 else 500
        return {"success": False, "error": "Failed to fetch data from TMDB"}, status

    @app.errorhandler(Exception)
    def handle_generic(e: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        # Avoid leaking details in production responses
        return {"success": False, "error": "Internal Server Error"}, 500


def guarded(message: str):
    """
    Database failures inside the view become a 500 carrying `message`.
    The session is rolled back and the traceback logged; HTTP errors pass through.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError:
                db.session.rollback()
                current_app.logger.exception(message)
                raise InternalServerError(message)
        return wrapper
    return decorator


# -----------------------------
# Validators & helpers
# -----------------------------

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

def expect_json():
    if request.method in {"POST", "PUT", "PATCH"}:
        ctype = request.headers.get("Content-Type", "")
        if "application/json" not in ctype:
            raise UnsupportedMediaType("Use Content-Type: application/json")

def read_json() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        raise BadRequest("Invalid or missing JSON body")
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data

def normalize_email(v: Any) -> str:
    if not isinstance(v, str):
        raise BadRequest("Invalid email")
    email = v.strip().lower()
    if not email or len(email) > 320 or not EMAIL_RE.match(email):
        raise BadRequest("Invalid email")
    return email

def validate_title(v: Any) -> str:
    title = str(v or "").strip()
    if not title:
        raise BadRequest("title is required")
    if len(title) > 255:
        raise BadRequest("title must be ≤ 255 chars")
    return title

def parse_year(v: Any) -> str | None:
    # accepts "1999" or a TMDB date like "1999-03-31"
    year = str(v or "").strip().split("-")[0]
    if not year:
        return None
    if not (len(year) == 4 and year.isdigit()):
        raise BadRequest("year must be a 4-digit string, e.g. '1999'")
    return year

def parse_poster(v: Any) -> str | None:
    if v is None:
        return None
    if not isinstance(v, str):
        raise BadRequest("poster must be a string path or URL")
    poster = v.strip()
    if len(poster) > 255:
        raise BadRequest("poster must be ≤ 255 chars")
    return poster or None

def parse_tmdb_id(v: Any) -> str:
    if isinstance(v, bool) or v in (None, ""):
        raise BadRequest("tmdbId is required")
    tmdb_id = str(v).strip()
    if not tmdb_id.isdigit():
        raise BadRequest("tmdbId must be numeric")
    return tmdb_id

def parse_media_type(v: Any) -> str:
    if v in (None, ""):
        return "movie"
    if not isinstance(v, str) or v not in MEDIA_TYPES:
        raise BadRequest(f"mediaType must be one of {sorted(MEDIA_TYPES)}")
    return v

def parse_status(v: Any) -> str:
    if not isinstance(v, str) or v not in WATCH_STATUSES:
        raise BadRequest(f"status must be one of {sorted(WATCH_STATUSES)}")
    return v

def parse_bool(v: Any, field: str = "watched") -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"true", "1", "yes"}: return True
        if s in {"false", "0", "no"}: return False
    raise BadRequest(f"{field} must be boolean")

def parse_rating(v: Any) -> int | None:
    if v in (None, ""):
        return None
    if isinstance(v, bool):
        raise BadRequest("rating must be an integer 1–5")
    try:
        r = int(v)
    except (TypeError, ValueError):
        raise BadRequest("rating must be an integer 1–5")
    if not (1 <= r <= 5):
        raise BadRequest("rating must be between 1 and 5")
    return r

def parse_id(v: Any, field: str = "id") -> int:
    if isinstance(v, bool):
        raise BadRequest(f"{field} must be an integer")
    try:
        return int(v)
    except (TypeError, ValueError):
        raise BadRequest(f"{field} must be an integer")


# -----------------------------
# Auth decorator
# -----------------------------

def require_signin_secret(fn):
    """
    The OAuth callback must present SIGNIN_SECRET as a Bearer token.
    Without a configured secret, sign-in is only open in debug or testing mode.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = current_app.config.get("SIGNIN_SECRET")
        if not token:
            if current_app.debug or current_app.testing:
                return fn(*args, **kwargs)
            current_app.logger.warning("Sign-in refused: SIGNIN_SECRET is not configured")
            raise Forbidden("Sign-in is not configured")

        hdr = request.headers.get("Authorization", "")
        parts = hdr.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise Unauthorized("Missing or invalid Authorization header")
        if parts[1] != token:
            raise Forbidden("Invalid token")
        return fn(*args, **kwargs)
    return wrapper
