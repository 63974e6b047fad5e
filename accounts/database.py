"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import sqlite3
import uuid
from datetime import date
from pathlib import Path
from typing import List, Optional

from passlib.context import CryptContext

from .models import User, UserStatus


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the accounts database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "accounts.sqlite3").resolve(strict=False)


def _current_date() -> date:
    return date.today()


def _serialize_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


SQLITE_MIN_INTEGER = -(2**63)
SQLITE_MAX_INTEGER = 2**63 - 1


def _generate_token() -> str:
    return str(uuid.uuid4())


_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def _verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


class Database:
    """Simple wrapper around SQLite for persisting user accounts.

    Passwords are stored exactly as supplied unless ``hash_passwords`` is
    enabled, in which case they are hashed with PBKDF2 on insert and checked
    with :func:`_verify_password` during authentication.  The flag must stay
    the same for the lifetime of a database file.
    """

    def __init__(self, path: Path, *, hash_passwords: bool = False) -> None:
        _ensure_directory(path)
        self._path = path
        self._hash_passwords = hash_passwords

    @property
    def path(self) -> Path:
        return self._path

    @property
    def hash_passwords(self) -> bool:
        return self._hash_passwords

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
                    username TEXT NOT NULL UNIQUE,
                    password TEXT NOT NULL,
                    status TEXT NOT NULL,
                    creation_date TEXT NOT NULL,
                    birthdate TEXT,
                    token TEXT NOT NULL UNIQUE
                );

                CREATE INDEX IF NOT EXISTS idx_users_token ON users(token);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(
        self,
        username: str,
        password: str,
        *,
        birthdate: Optional[date] = None,
    ) -> User:
        """Insert a new OFFLINE user with a freshly issued token.

        The unique constraint on ``username`` is checked by SQLite as part of
        the insert, so two concurrent registrations cannot both succeed.
        """

        if not password:
            raise ValueError("Password must not be empty")

        stored_password = _hash_password(password) if self._hash_passwords else password
        token = _generate_token()
        creation_date = _current_date()

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (username, password, status, creation_date, birthdate, token)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        username,
                        stored_password,
                        UserStatus.OFFLINE.value,
                        _serialize_date(creation_date),
                        _serialize_date(birthdate),
                        token,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("A user with that username already exists") from exc

            user_id = cursor.lastrowid

        user = self.get_user(user_id)
        if user is None:
            raise RuntimeError("Failed to load user after creation")
        return user

    def list_users(self) -> List[User]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def count_users(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM users").fetchone()
        return int(row["count"])

    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE username = ?",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_token(self, token: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE token = ?", (token,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def find_user_by_credentials(self, username: str, password: str) -> Optional[User]:
        """Return the user whose username and password both match exactly."""

        if not self._hash_passwords:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT * FROM users WHERE username = ? AND password = ?",
                    (username, password),
                ).fetchone()
            if row is None:
                return None
            return self._row_to_user(row)

        user = self.get_user_by_username(username)
        if user is None or not _verify_password(password, user.password):
            return None
        return user

    def set_user_status(self, user_id: int, status: UserStatus) -> Optional[User]:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE users SET status = ? WHERE id = ?",
                (UserStatus(status).value, user_id),
            )
            if cursor.rowcount == 0:
                return None
        return self.get_user(user_id)

    def update_user(self, user_id: int, **fields: object) -> Optional[User]:
        """Overwrite the profile fields present in ``fields``.

        Only ``username`` and ``birthdate`` are writable; ``username`` may not
        be cleared while ``birthdate`` may be set to ``None``.  Returns
        ``None`` when the user does not exist.
        """

        allowed = {"username": "username", "birthdate": "birthdate"}

        updates: List[str] = []
        values: List[object] = []
        for key, column in allowed.items():
            if key not in fields:
                continue
            value = fields[key]
            if column == "username":
                if value is None:
                    continue
                value = str(value)
            if column == "birthdate":
                value = _serialize_date(value)  # type: ignore[arg-type]
            updates.append(f"{column} = ?")
            values.append(value)

        if not updates:
            return self.get_user(user_id)

        values.append(user_id)
        query = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"

        with self._connect() as conn:
            try:
                cursor = conn.execute(query, values)
            except sqlite3.IntegrityError as exc:
                raise ValueError("A user with that username already exists") from exc
            if cursor.rowcount == 0:
                return None

        return self.get_user(user_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            username=str(row["username"]),
            password=str(row["password"]),
            status=UserStatus(str(row["status"])),
            creation_date=_parse_date(str(row["creation_date"])),  # type: ignore[arg-type]
            birthdate=_parse_date(row["birthdate"]),
            token=str(row["token"]),
        )


__all__ = ["Database", "resolve_database_path"]
