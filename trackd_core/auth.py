from flask import Blueprint, current_app
from werkzeug.exceptions import BadRequest, Unauthorized

from models import db, User
from .errors import expect_json, read_json, normalize_email, require_signin_secret, guarded
from .friends import claim_invitations
from .session_utils import current_user, sign_in, sign_out

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def user_to_dict(u: User):
    return {"id": u.id, "name": u.name, "email": u.email, "image": u.image}


@auth_bp.post("/session")
@require_signin_secret
@guarded("Failed to sign in")
def create_session():
    """
    Called by the OAuth callback once the provider has verified the
    identity. The first sign-in for an email creates the user and turns
    invitations waiting for that address into friend requests.
    """
    expect_json()
    data = read_json()
    email = normalize_email(data.get("email"))
    name = str(data.get("name") or "").strip() or email.split("@", 1)[0]
    if len(name) > 255:
        raise BadRequest("name must be ≤ 255 chars")
    image = str(data.get("image") or "").strip() or None

    user = User.query.filter_by(email=email).first()
    created = user is None
    if created:
        user = User(name=name, email=email, image=image)
        db.session.add(user)
    elif image and user.image != image:
        user.image = image
    db.session.commit()

    if created:
        current_app.logger.info("New user %s signed up", user.id)
    claim_invitations(user)

    sign_in(user)
    return {"success": True, "data": user_to_dict(user)}, 201 if created else 200


@auth_bp.get("/session")
def get_session():
    user = current_user()
    if user is None:
        raise Unauthorized("Not authenticated")
    return {"success": True, "data": user_to_dict(user)}


@auth_bp.delete("/session")
def delete_session():
    sign_out()
    return {"success": True}
