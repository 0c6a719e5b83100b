from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

MEDIA_TYPES = {"movie", "tv"}
WATCH_STATUSES = {"watched", "watch_later"}
FRIEND_PENDING, FRIEND_ACCEPTED = "pending", "accepted"
SUGGESTION_STATUSES = {"pending", "accepted", "dismissed"}


class User(db.Model): #created by the auth flow on first sign-in
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(320), nullable=False, unique=True, index=True)
    image = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    watch_items = db.relationship("WatchItem", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    invitations_sent = db.relationship("Invitation", back_populates="inviter", cascade="all, delete-orphan", passive_deletes=True)
    requests_sent = db.relationship("Friend", foreign_keys="Friend.user_id", back_populates="requester",
                                    cascade="all, delete-orphan", passive_deletes=True)
    requests_received = db.relationship("Friend", foreign_keys="Friend.friend_id", back_populates="recipient",
                                        cascade="all, delete-orphan", passive_deletes=True)
    suggestions_received = db.relationship("Suggestion", foreign_keys="Suggestion.user_id", back_populates="recipient",
                                           cascade="all, delete-orphan", passive_deletes=True)
    suggestions_sent = db.relationship("Suggestion", foreign_keys="Suggestion.friend_id", back_populates="sender",
                                       cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<User {self.id} {self.email!r}>"


class WatchItem(db.Model): #one movie/show on a user's list
    __tablename__ = "watch_item"
    __table_args__ = (db.Index("ix_watch_item_user_tmdb", "user_id", "tmdb_id"),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    tmdb_id = db.Column(db.String(32), nullable=False)
    media_type = db.Column(db.String(8), nullable=False, default="movie")  # movie | tv
    title = db.Column(db.String(255), nullable=False)
    year = db.Column(db.String(10))
    poster = db.Column(db.String(255))
    rating = db.Column(db.Integer)        # 1–5, NULL = unrated
    status = db.Column(db.String(16), nullable=False, default="watch_later")  # watched | watch_later
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="watch_items")

    def __repr__(self):
        return f"<WatchItem {self.id} {self.title!r} {self.status}>"


class Friend(db.Model):
    """
    Directed request from user_id (requester) to friend_id (recipient).
    Once accepted the relationship is mutual, so lookups for a pair must
    check both orderings.
    """
    __tablename__ = "friend"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    friend_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=FRIEND_PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    requester = db.relationship("User", foreign_keys=[user_id], back_populates="requests_sent", lazy="joined")
    recipient = db.relationship("User", foreign_keys=[friend_id], back_populates="requests_received", lazy="joined")

    def other(self, user_id: int) -> "User":
        return self.recipient if self.user_id == user_id else self.requester

    def __repr__(self):
        return f"<Friend {self.id} {self.user_id}->{self.friend_id} {self.status}>"


class Invitation(db.Model): #friend request addressed to an email with no account yet
    __tablename__ = "invitation"
    id = db.Column(db.Integer, primary_key=True)
    inviter_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    email = db.Column(db.String(320), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default="pending")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    inviter = db.relationship("User", back_populates="invitations_sent")

    def __repr__(self):
        return f"<Invitation {self.id} {self.email!r}>"


class Suggestion(db.Model):
    __tablename__ = "suggestion"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)    # recipient
    friend_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)  # sender
    tmdb_id = db.Column(db.String(32), nullable=False)
    media_type = db.Column(db.String(8), nullable=False, default="movie")
    title = db.Column(db.String(255), nullable=False)
    year = db.Column(db.String(10))
    poster = db.Column(db.String(255))
    status = db.Column(db.String(16), nullable=False, default="pending")  # pending | accepted | dismissed
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    recipient = db.relationship("User", foreign_keys=[user_id], back_populates="suggestions_received")
    sender = db.relationship("User", foreign_keys=[friend_id], back_populates="suggestions_sent", lazy="joined")

    def __repr__(self):
        return f"<Suggestion {self.id} {self.title!r} {self.status}>"
