from datetime import datetime

from flask import Blueprint, request, g, current_app
from sqlalchemy import or_, and_
from werkzeug.exceptions import BadRequest, NotFound

from models import db, User, Friend, Invitation, FRIEND_PENDING, FRIEND_ACCEPTED
from . import notify
from .metrics import FRIEND_REQUESTS, FRIENDSHIPS_ACCEPTED, INVITATIONS
from .errors import expect_json, read_json, normalize_email, parse_id, guarded
from .session_utils import require_login

friends_bp = Blueprint("friends", __name__, url_prefix="/api/friends")


def find_relationship(a_id: int, b_id: int) -> Friend | None:
    """The Friend row between two users, whichever of them sent the request."""
    return Friend.query.filter(
        or_(
            and_(Friend.user_id == a_id, Friend.friend_id == b_id),
            and_(Friend.user_id == b_id, Friend.friend_id == a_id),
        )
    ).first()


def claim_invitations(user: User) -> int:
    """
    Turn pending invitations addressed to the user's email into pending
    friend requests (inviter -> user) and delete them. Commits.
    """
    invites = Invitation.query.filter(
        Invitation.email == user.email.lower(), Invitation.status == "pending"
    ).all()
    if not invites:
        return 0

    created = 0
    for inv in invites:
        if inv.inviter_id != user.id and find_relationship(inv.inviter_id, user.id) is None:
            db.session.add(Friend(user_id=inv.inviter_id, friend_id=user.id, status=FRIEND_PENDING))
            db.session.flush()
            created += 1
        db.session.delete(inv)
    db.session.commit()
    current_app.logger.info("Converted %d invitation(s) for user %s", created, user.id)
    if created:
        INVITATIONS.labels("claimed").inc(created)
    return created


def friendship_to_dict(f: Friend, me: int):
    other = f.other(me)
    return {
        "id": f.id,
        "friendId": other.id,
        "name": other.name,
        "email": other.email,
        "image": other.image,
        "status": f.status,
        "requesterId": f.user_id,
    }


@friends_bp.get("")
@require_login
@guarded("Failed to fetch friends")
def list_friends():
    me = g.user
    claim_invitations(me)

    rows = (
        Friend.query.filter(or_(Friend.user_id == me.id, Friend.friend_id == me.id))
        .order_by(Friend.created_at.asc(), Friend.id.asc())
        .all()
    )
    everything = [friendship_to_dict(f, me.id) for f in rows]
    return {
        "success": True,
        "data": {
            "friends": [f for f in everything if f["status"] == FRIEND_ACCEPTED],
            "requests": [f for f in everything if f["status"] == FRIEND_PENDING and f["requesterId"] != me.id],
            "sentRequests": [f for f in everything if f["status"] == FRIEND_PENDING and f["requesterId"] == me.id],
        },
    }


@friends_bp.post("")
@require_login
@guarded("Failed to add friend")
def add_friend():
    expect_json()
    data = read_json()
    email = normalize_email(data.get("email"))
    me = g.user

    if email == me.email.lower():
        raise BadRequest("Cannot add yourself")

    target = User.query.filter(User.email == email).first()
    if target is None:
        return _invite(me, email)

    if find_relationship(me.id, target.id) is not None:
        raise BadRequest("Friendship already exists")

    f = Friend(user_id=me.id, friend_id=target.id, status=FRIEND_PENDING)
    db.session.add(f); db.session.commit()
    current_app.logger.info("Friend request %s: user %s -> user %s", f.id, me.id, target.id)
    FRIEND_REQUESTS.inc()

    notify.friend_request(me, target)
    return {"success": True, "message": "Request sent", "data": {"id": f.id, "invited": False}}, 201


def _invite(me: User, email: str):
    existing = Invitation.query.filter_by(inviter_id=me.id, email=email, status="pending").first()
    if existing:
        raise BadRequest("Invitation already sent")

    inv = Invitation(inviter_id=me.id, email=email, status="pending")
    db.session.add(inv); db.session.commit()
    current_app.logger.info("Invitation %s: user %s -> %s", inv.id, me.id, email)
    INVITATIONS.labels("sent").inc()

    # the invitation is stored either way, so a failed email still reports success
    emailed = notify.invitation(me, email)
    return {
        "success": True,
        "message": "Invitation sent" if emailed else "Invitation saved",
        "data": {"id": inv.id, "invited": True},
    }, 201


@friends_bp.patch("")
@require_login
@guarded("Failed to accept friend")
def accept_friend():
    expect_json()
    data = read_json()
    if not data.get("id") or data.get("action") != "accept":
        raise BadRequest("Invalid request")
    fid = parse_id(data.get("id"))

    f = Friend.query.filter_by(id=fid, friend_id=g.user.id, status=FRIEND_PENDING).first()
    if f is None:
        raise NotFound("Request not found")

    f.status = FRIEND_ACCEPTED
    f.updated_at = datetime.utcnow()
    db.session.commit()
    FRIENDSHIPS_ACCEPTED.inc()
    return {"success": True, "data": friendship_to_dict(f, g.user.id)}


@friends_bp.delete("")
@require_login
@guarded("Failed to remove friend")
def remove_friend():
    raw = request.args.get("id")
    if not raw:
        raise BadRequest("Missing ID")
    fid = parse_id(raw)
    me = g.user.id

    f = Friend.query.filter(
        Friend.id == fid, or_(Friend.user_id == me, Friend.friend_id == me)
    ).first()
    if f is None:
        raise NotFound("Friendship not found")

    db.session.delete(f); db.session.commit()
    return {"success": True, "data": {"deleted": fid}}
