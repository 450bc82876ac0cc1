import sqlite3
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from tubely.database import Database, RefreshToken, User, Video


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "tubely.db")
    yield database
    database.close()


def make_user(db, email="alice@example.com"):
    password = "password"
    return db.create_user(email, password)


def test_create_user_round_trip(db):
    user = make_user(db)
    assert user.email == "alice@example.com"
    assert user.password == "password"
    assert user.created_at.tzinfo == timezone.utc
    assert db.get_user(user.id) == user
    assert db.get_user_by_email("alice@example.com") == user


def test_missing_user_lookups_return_none(db):
    assert db.get_user(uuid.uuid4()) is None
    assert db.get_user_by_email("nobody@example.com") is None
    assert db.get_user_by_refresh_token("token") is None


def test_duplicate_email_rejected(db):
    make_user(db)
    with pytest.raises(sqlite3.IntegrityError):
        make_user(db)


def test_get_users_and_delete(db):
    first = make_user(db, "a@example.com")
    second = make_user(db, "b@example.com")
    listed = {(u.id, u.email) for u in db.get_users()}
    assert listed == {(first.id, first.email), (second.id, second.email)}
    db.delete_user(first.id)
    assert [u.id for u in db.get_users()] == [second.id]


def test_refresh_token_lifecycle(db):
    user = make_user(db)
    expires = datetime.now(timezone.utc) + timedelta(days=60)
    created = db.create_refresh_token("token", user.id, expires)
    assert created.token == "token"
    assert created.user_id == user.id
    assert created.expires_at == expires
    assert created.revoked_at is None
    assert db.get_user_by_refresh_token("token") == user

    db.revoke_refresh_token("token")
    revoked = db.get_refresh_token("token")
    assert isinstance(revoked.revoked_at, datetime)
    assert revoked.revoked_at <= datetime.now(timezone.utc) + timedelta(seconds=1)

    db.delete_refresh_token("token")
    assert db.get_refresh_token("token") is None


def test_naive_expiry_is_treated_as_utc(db):
    user = make_user(db)
    naive = datetime(2030, 1, 2, 3, 4, 5)
    token = db.create_refresh_token("token", user.id, naive)
    assert token.expires_at == naive.replace(tzinfo=timezone.utc)


def test_video_create_update_delete(db):
    user = make_user(db)
    video = db.create_video("Boot", "A video", user.id)
    assert video.title == "Boot"
    assert video.description == "A video"
    assert video.user_id == user.id
    assert video.thumbnail_url is None and video.video_url is None

    video.thumbnail_url = "http://localhost/assets/x.png"
    video.video_url = "https://cdn.example.com/landscape/x.mp4"
    db.update_video(video)
    stored = db.get_video(video.id)
    assert stored.thumbnail_url == "http://localhost/assets/x.png"
    assert stored.video_url == "https://cdn.example.com/landscape/x.mp4"

    db.delete_video(video.id)
    assert db.get_video(video.id) is None


def test_get_videos_filters_by_owner(db):
    alice = make_user(db, "alice@example.com")
    bob = make_user(db, "bob@example.com")
    a1 = db.create_video("one", "", alice.id)
    a2 = db.create_video("two", "", alice.id)
    db.create_video("three", "", bob.id)
    assert {v.id for v in db.get_videos(alice.id)} == {a1.id, a2.id}
    assert db.get_videos(uuid.uuid4()) == []


def test_reset_clears_everything(db):
    user = make_user(db)
    db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    video = db.create_video("t", "d", user.id)
    db.reset()
    assert db.get_users() == []
    assert db.get_refresh_token("token") is None
    assert db.get_video(video.id) is None


def test_data_persists_across_connections(tmp_path):
    path = tmp_path / "persist.db"
    with Database(path) as first:
        user = make_user(first)
    with Database(path) as second:
        assert second.get_user(user.id) == user


def test_closed_database_raises(tmp_path):
    with Database(tmp_path / "closed.db") as database:
        pass
    with pytest.raises(sqlite3.ProgrammingError):
        database.get_users()


def test_to_dict_keys_and_values(db):
    user = make_user(db)
    video = db.create_video("t", "d", user.id)
    token = db.create_refresh_token("token", user.id, datetime.now(timezone.utc))
    user_dict = user.to_dict()
    assert set(user_dict) == {"id", "created_at", "updated_at", "email", "password"}
    assert user_dict["id"] == str(user.id)
    video_dict = video.to_dict()
    assert set(video_dict) == {
        "id", "created_at", "updated_at", "thumbnail_url",
        "video_url", "title", "description", "user_id",
    }
    assert video_dict["user_id"] == str(user.id)
    assert video_dict["thumbnail_url"] is None
    token_dict = token.to_dict()
    assert set(token_dict) == {
        "token", "user_id", "expires_at", "created_at", "updated_at", "revoked_at",
    }
    assert token_dict["revoked_at"] is None
    assert isinstance(token, RefreshToken) and isinstance(user, User) and isinstance(video, Video)