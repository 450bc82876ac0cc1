"""SQLite storage for users, refresh tokens and video metadata."""

from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        password TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_tokens (
        token TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        revoked_at TIMESTAMP,
        user_id TEXT NOT NULL,
        expires_at TIMESTAMP NOT NULL,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        title TEXT NOT NULL,
        description TEXT,
        thumbnail_url TEXT,
        video_url TEXT TEXT,
        user_id INTEGER,
        FOREIGN KEY(user_id) REFERENCES users(id)
    )
    """,
)

_VIDEO_COLUMNS = (
    "id, created_at, updated_at, title, description, thumbnail_url, video_url, user_id"
)


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(sep=" ")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class User:
    """A registered account."""

    id: uuid.UUID
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    email: str
    password: str

    def to_dict(self) -> dict:
        """Return the JSON-ready representation."""
        return {
            "id": str(self.id),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "email": self.email,
            "password": self.password,
        }


@dataclass
class RefreshToken:
    """A long-lived token used to obtain new access tokens."""

    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    revoked_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Return the JSON-ready representation."""
        return {
            "token": self.token,
            "user_id": str(self.user_id),
            "expires_at": _iso(self.expires_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "revoked_at": _iso(self.revoked_at),
        }


@dataclass
class Video:
    """Metadata for an uploaded video."""

    id: uuid.UUID
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    title: str
    description: str
    user_id: uuid.UUID
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Return the JSON-ready representation."""
        return {
            "id": str(self.id),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "thumbnail_url": self.thumbnail_url,
            "video_url": self.video_url,
            "title": self.title,
            "description": self.description,
            "user_id": str(self.user_id),
        }


def _row_to_video(row: sqlite3.Row) -> Video:
    return Video(
        id=uuid.UUID(row["id"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
        title=row["title"],
        description=row["description"] or "",
        user_id=uuid.UUID(str(row["user_id"])),
        thumbnail_url=row["thumbnail_url"],
        video_url=row["video_url"],
    )


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        id=uuid.UUID(row["id"]),
        created_at=_parse_ts(row["created_at"]),
        updated_at=_parse_ts(row["updated_at"]),
        email=row["email"],
        password=row["password"],
    )


class Database:
    """A connection to the application database; creates tables on open."""

    def __init__(self, path) -> None:
        self._conn = sqlite3.connect(str(path), isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        try:
            for statement in _SCHEMA:
                self._conn.execute(statement)
        except sqlite3.Error:
            self._conn.close()
            raise

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def reset(self) -> None:
        """Delete every row from every table."""
        for table in ("refresh_tokens", "users", "videos"):
            self._conn.execute(f"DELETE FROM {table}")

    # Users

    def create_user(self, email: str, password: str) -> Optional[User]:
        user_id = uuid.uuid4()
        self._conn.execute(
            "INSERT INTO users (id, created_at, updated_at, email, password) "
            "VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)",
            (str(user_id), email, password),
        )
        return self.get_user(user_id)

    def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        row = self._conn.execute(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE id = ?",
            (str(user_id),),
        ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        row = self._conn.execute(
            "SELECT id, created_at, updated_at, email, password FROM users WHERE email = ?",
            (email,),
        ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_refresh_token(self, token: str) -> Optional[User]:
        row = self._conn.execute(
            "SELECT u.id, u.email, u.created_at, u.updated_at, u.password "
            "FROM users u JOIN refresh_tokens rt ON u.id = rt.user_id "
            "WHERE rt.token = ?",
            (token,),
        ).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_users(self) -> list[User]:
        """Return every user with only the id and email filled in."""
        return [
            User(
                id=uuid.UUID(row["id"]),
                created_at=None,
                updated_at=None,
                email=row["email"],
                password="",
            )
            for row in self._conn.execute("SELECT id, email FROM users")
        ]

    def delete_user(self, user_id: uuid.UUID) -> None:
        self._conn.execute("DELETE FROM users WHERE id = ?", (str(user_id),))

    # Refresh tokens

    def create_refresh_token(
        self, token: str, user_id: uuid.UUID, expires_at: datetime
    ) -> Optional[RefreshToken]:
        self._conn.execute(
            "INSERT INTO refresh_tokens (token, created_at, updated_at, user_id, expires_at) "
            "VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?)",
            (token, str(user_id), _format_ts(expires_at)),
        )
        return self.get_refresh_token(token)

    def get_refresh_token(self, token: str) -> Optional[RefreshToken]:
        row = self._conn.execute(
            "SELECT token, created_at, updated_at, user_id, expires_at, revoked_at "
            "FROM refresh_tokens WHERE token = ?",
            (token,),
        ).fetchone()
        if row is None:
            return None
        return RefreshToken(
            token=row["token"],
            user_id=uuid.UUID(row["user_id"]),
            expires_at=_parse_ts(row["expires_at"]),
            created_at=_parse_ts(row["created_at"]),
            updated_at=_parse_ts(row["updated_at"]),
            revoked_at=_parse_ts(row["revoked_at"]),
        )

    def revoke_refresh_token(self, token: str) -> None:
        self._conn.execute(
            "UPDATE refresh_tokens SET revoked_at = CURRENT_TIMESTAMP WHERE token = ?",
            (token,),
        )

    def delete_refresh_token(self, token: str) -> None:
        self._conn.execute("DELETE FROM refresh_tokens WHERE token = ?", (token,))

    # Videos

    def create_video(self, title: str, description: str, user_id: uuid.UUID) -> Optional[Video]:
        video_id = uuid.uuid4()
        self._conn.execute(
            "INSERT INTO videos (id, created_at, updated_at, title, description, user_id) "
            "VALUES (?, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP, ?, ?, ?)",
            (str(video_id), title, description, str(user_id)),
        )
        return self.get_video(video_id)

    def get_video(self, video_id: uuid.UUID) -> Optional[Video]:
        row = self._conn.execute(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE id = ?", (str(video_id),)
        ).fetchone()
        return _row_to_video(row) if row is not None else None

    def get_videos(self, user_id: uuid.UUID) -> list[Video]:
        """Return the user's videos, newest first."""
        rows = self._conn.execute(
            f"SELECT {_VIDEO_COLUMNS} FROM videos WHERE user_id = ? ORDER BY created_at DESC",
            (str(user_id),),
        )
        return [_row_to_video(row) for row in rows]

    def update_video(self, video: Video) -> None:
        self._conn.execute(
            "UPDATE videos SET title = ?, description = ?, thumbnail_url = ?, "
            "video_url = ?, user_id = ? WHERE id = ?",
            (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                str(video.user_id),
                str(video.id),
            ),
        )

    def delete_video(self, video_id: uuid.UUID) -> None:
        self._conn.execute("DELETE FROM videos WHERE id = ?", (str(video_id),))