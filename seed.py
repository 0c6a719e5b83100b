#just using this to load sample data into the db
from app import create_app
from models import db, User, WatchItem, Friend, Invitation, Suggestion

app = create_app()

with app.app_context():
    db.drop_all(); db.create_all()
    ana = User(name="Ana", email="ana@example.com")
    ben = User(name="Ben", email="ben@example.com")
    cleo = User(name="Cleo", email="cleo@example.com")
    db.session.add_all([ana, ben, cleo]); db.session.flush()

    db.session.add_all([
        WatchItem(user_id=ana.id, tmdb_id="603", media_type="movie", title="The Matrix", year="1999",
                  poster="/f89U3ADr1oiB1s9GkdPOEpXUk5H.jpg", rating=5, status="watched"),
        WatchItem(user_id=ana.id, tmdb_id="1396", media_type="tv", title="Breaking Bad", year="2008",
                  status="watch_later"),
        WatchItem(user_id=ben.id, tmdb_id="27205", media_type="movie", title="Inception", year="2010",
                  rating=4, status="watched"),
        Friend(user_id=ana.id, friend_id=ben.id, status="accepted"),
        Friend(user_id=cleo.id, friend_id=ana.id, status="pending"),
        Invitation(inviter_id=ben.id, email="dana@example.com"),
        Suggestion(user_id=ana.id, friend_id=ben.id, tmdb_id="27205", media_type="movie",
                   title="Inception", year="2010", poster="/oYuLEt3zVCKq57qu2F8dT7NIa6f.jpg"),
    ])
    db.session.commit()
    print("Seeded:", User.query.count(), "users,", WatchItem.query.count(), "watch items")
