"""SQLite-backed persistence for portal users."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .models import ProfileSource, User

logger = logging.getLogger("portal.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "portal.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _normalize_uid(auth0_uid: object) -> str:
    normalized = str(auth0_uid or "").strip()
    if not normalized:
        raise ValueError("auth0_uid must not be empty")
    return normalized


class Database:
    """Simple wrapper around SQLite for persisting users."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    auth0_uid TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_auth0_uid ON users(auth0_uid);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def find_or_create_user(
        self,
        auth0_uid: str,
        *,
        management: Optional[ProfileSource] = None,
    ) -> User:
        """Return the user for ``auth0_uid``, inserting a row on first sight."""

        uid = _normalize_uid(auth0_uid)
        existing = self.get_user_by_uid(uid, management=management)
        if existing is not None:
            return existing

        created_at = _current_timestamp()
        serialized = _serialize_datetime(created_at)

        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "INSERT INTO users (auth0_uid, created_at, updated_at) VALUES (?, ?, ?)",
                    (uid, serialized, serialized),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            # Another request inserted the same uid between our lookup and insert.
            existing = self.get_user_by_uid(uid, management=management)
            if existing is not None:
                return existing
            raise

        logger.info("Created user %s for identity %s", user_id, uid)
        return User(
            id=int(user_id),
            auth0_uid=uid,
            created_at=created_at,
            updated_at=created_at,
            profile_source=management,
        )

    def get_user(
        self,
        user_id: int,
        *,
        management: Optional[ProfileSource] = None,
    ) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row, management)

    def get_user_by_uid(
        self,
        auth0_uid: str,
        *,
        management: Optional[ProfileSource] = None,
    ) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE auth0_uid = ?",
                (auth0_uid.strip(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row, management)

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row, None) for row in rows]

    def touch_user(self, user_id: int) -> Optional[User]:
        """Record activity for ``user_id`` by bumping ``updated_at``."""

        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET updated_at = ? WHERE id = ?",
                (_serialize_datetime(_current_timestamp()), user_id),
            )
            if cursor.rowcount == 0:
                return None
        return self.get_user(user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row, management: Optional[ProfileSource]) -> User:
        return User(
            id=int(row["id"]),
            auth0_uid=str(row["auth0_uid"]),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
            profile_source=management,
        )


__all__ = ["Database", "resolve_database_path"]
