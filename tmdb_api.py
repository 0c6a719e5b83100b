import logging
import os

import requests

logger = logging.getLogger(__name__)

TMDB_API_KEY = os.getenv("TMDB_API_KEY")  # v3 key, sent as a query param
TMDB_BASE = "https://api.themoviedb.org/3"  # base url for tmdb api

TMDB_TOKEN = os.getenv("TMDB_TOKEN")  # v4 read token, sent as bearer
HEADERS = {"Authorization": f"Bearer {TMDB_TOKEN}", "accept": "application/json"} if TMDB_TOKEN else {"accept": "application/json"}

SEARCH_MEDIA_TYPES = {"movie", "tv", "person"}


class TMDBError(Exception):
    """Upstream call failed. status_code is the TMDB status when there was a response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _get(path, **params):  # internal function to make get requests to tmdb
    url = f"{TMDB_BASE}{path}"
    try:
        if TMDB_TOKEN:
            r = requests.get(url, headers=HEADERS, params=params, timeout=15)
        else:
            if not TMDB_API_KEY:
                raise TMDBError("TMDB_API_KEY missing in environment")
            params = {"api_key": TMDB_API_KEY, **params}
            r = requests.get(url, headers=HEADERS, params=params, timeout=15)
    except requests.exceptions.RequestException as e:
        logger.error("TMDB request to %s failed: %s", path, e)
        raise TMDBError(f"Request failed: {e}") from e

    if not r.ok:
        logger.error("TMDB %s returned %s", path, r.status_code)
        raise TMDBError("Failed to fetch data from TMDB", status_code=r.status_code)
    return r.json()


def search_multi(query, page=1):  # movies, shows and people in one search
    data = _get("/search/multi", query=query, include_adult=False, language="en-US", page=page)
    results = data.get("results") or []
    data["results"] = [r for r in results if r.get("media_type") in SEARCH_MEDIA_TYPES]
    return data


def get_person(person_id: int):
    return _get(f"/person/{person_id}", language="en-US")


def get_person_credits(person_id: int):
    return _get(f"/person/{person_id}/combined_credits", language="en-US")


def merge_credits(credits):
    """
    Cast and crew share ids when someone both acted in and worked on a
    title. Keep one entry per id: the first position wins, the last value
    wins. Then most-voted first.
    """
    merged = {}
    for item in (credits.get("cast") or []) + (credits.get("crew") or []):
        merged[item.get("id")] = item
    return sorted(merged.values(), key=lambda c: c.get("vote_count") or 0, reverse=True)


def person_with_credits(person_id: int):
    person = get_person(person_id)
    credits = get_person_credits(person_id)
    return {
        "id": person.get("id"),
        "name": person.get("name"),
        "profile_path": person.get("profile_path"),
        "known_for_department": person.get("known_for_department"),
        "credits": merge_credits(credits),
    }


def tmdb_poster_url(path: str | None, size: str = "w500") -> str | None:
    if not path:
        return None
    if path.startswith("http"):
        return path
    return f"https://image.tmdb.org/t/p/{size}{path}"
