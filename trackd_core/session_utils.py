from functools import wraps

from flask import session, g
from werkzeug.exceptions import Unauthorized

from models import db, User


def current_user() -> User | None:
    uid = session.get("uid")
    if uid is None:
        return None
    return db.session.get(User, uid)


def sign_in(user: User):
    session.clear()
    session["uid"] = user.id


def sign_out():
    session.pop("uid", None)


def require_login(fn):
    """Rejects the request with 401 before the view runs unless the session names an existing user."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user = current_user()
        if user is None:
            raise Unauthorized("Not authenticated")
        g.user = user
        return fn(*args, **kwargs)
    return wrapper
