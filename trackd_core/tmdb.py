from flask import Blueprint, request
from werkzeug.exceptions import BadRequest

import tmdb_api

tmdb_bp = Blueprint("tmdb", __name__, url_prefix="/api/tmdb")


@tmdb_bp.get("")
def search():
    query = (request.args.get("query") or "").strip()
    if not query:
        raise BadRequest("Query parameter is required")
    return {"success": True, "data": tmdb_api.search_multi(query)}


@tmdb_bp.get("/person/<int:person_id>")
def person(person_id):
    return {"success": True, "data": tmdb_api.person_with_credits(person_id)}
