import os, sys, pytest

# allow importing the app modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app
from models import db, User
import mailer


@pytest.fixture()
def app(tmp_path):
    # isolated app on a temp sqlite db
    os.environ["SECRET_KEY"] = "test"
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path/'test.db'}",
        "SIGNIN_SECRET": None,
        "RESEND_API_KEY": None,
        "APP_URL": "https://trackd.test",
    })
    with app.app_context():
        db.drop_all(); db.create_all()
    yield app

    # teardown: close sessions and dispose engine to silence ResourceWarnings
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def outbox(monkeypatch):
    # record outgoing mail instead of delivering it
    sent = []
    monkeypatch.setattr(mailer, "send_friend_request",
                        lambda to, sender, recipient: sent.append(("friend_request", to, sender)))
    monkeypatch.setattr(mailer, "send_invitation",
                        lambda to, inviter: sent.append(("invitation", to, inviter)))
    monkeypatch.setattr(mailer, "send_suggestion",
                        lambda to, sender, title, year, poster: sent.append(("suggestion", to, title)))
    return sent


def make_user(app, name, email, image=None) -> int:
    with app.app_context():
        u = User(name=name, email=email, image=image)
        db.session.add(u); db.session.commit()
        return u.id


def login(client, user_id):
    # put the user id into the session like the OAuth callback would
    with client.session_transaction() as sess:
        sess["uid"] = user_id


@pytest.fixture()
def users(app):
    return {
        "alice": make_user(app, "Alice", "alice@example.com"),
        "bob": make_user(app, "Bob", "bob@example.com", image="https://img/bob.png"),
        "carol": make_user(app, "Carol", "carol@example.com"),
    }


@pytest.fixture()
def as_user(app, users):
    """Returns a function giving a test client signed in as a named fixture user or a user id."""
    def _client(who):
        c = app.test_client()
        login(c, users[who] if isinstance(who, str) else who)
        return c
    return _client


@pytest.fixture()
def new_user(app):
    return lambda name, email, image=None: make_user(app, name, email, image)
