"""SQLite-backed credential store keyed by email."""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = ".stackit/users.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS identities (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    email TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS identities_email_idx ON identities (email);
"""


class StorageError(Exception):
    """The persistence medium is unreachable or a query failed."""


class DuplicateEmailError(StorageError):
    """An identity with this email is already stored."""

    def __init__(self, email: str):
        super().__init__(f"Identity already exists for {email!r}")
        self.email = email


@dataclass
class Identity:
    """Stored account record."""

    id: str
    username: str
    email: str
    password_hash: str
    created_at: datetime

    def public_view(self) -> dict[str, str]:
        """Fields that are safe to hand back to a client."""
        return {"id": self.id, "username": self.username, "email": self.email}


class CredentialStore:
    """Durable storage of Identity records with lookup by email.

    Uniqueness of ``email`` is enforced by a unique index, so ``create``
    fails atomically with :class:`DuplicateEmailError` instead of relying
    on a prior lookup.

    Args:
        db_path: Path to SQLite database file. Parent directories are created
                 automatically. ``":memory:"`` keeps everything in process.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            if db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open credential store at {db_path}: {e}") from e
        self._closed = False

    @property
    def db_path(self) -> str:
        return self._db_path

    def _next_id(self) -> str:
        return f"user-{uuid.uuid4().hex[:12]}"

    def _row_to_identity(self, row: sqlite3.Row) -> Identity:
        return Identity(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def _fetchone(self, query: str, params: tuple) -> Optional[sqlite3.Row]:
        with self._lock:
            if self._closed:
                raise StorageError("Credential store is closed")
            try:
                return self._conn.execute(query, params).fetchone()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

    def find_by_email(self, email: str) -> Optional[Identity]:
        """Look up an identity by exact email match."""
        row = self._fetchone("SELECT * FROM identities WHERE email = ?", (email,))
        return self._row_to_identity(row) if row else None

    def get_by_id(self, identity_id: str) -> Optional[Identity]:
        """Look up an identity by its id."""
        row = self._fetchone("SELECT * FROM identities WHERE id = ?", (identity_id,))
        return self._row_to_identity(row) if row else None

    def create(self, username: str, email: str, password_hash: str) -> Identity:
        """Insert a new identity and return the stored record.

        Raises:
            DuplicateEmailError: ``email`` is already on file.
            StorageError: the database could not be written.
        """
        identity = Identity(
            id=self._next_id(),
            username=username,
            email=email,
            password_hash=password_hash,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if self._closed:
                raise StorageError("Credential store is closed")
            try:
                with self._conn:
                    self._conn.execute(
                        "INSERT INTO identities (id, username, email, password_hash, created_at) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (
                            identity.id,
                            identity.username,
                            identity.email,
                            identity.password_hash,
                            identity.created_at.isoformat(),
                        ),
                    )
            except sqlite3.IntegrityError as e:
                raise DuplicateEmailError(email) from e
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e

        logger.debug(f"Stored identity {identity.id}")
        return identity

    def list_identities(self) -> list[Identity]:
        """Return all identities ordered by creation time."""
        with self._lock:
            if self._closed:
                raise StorageError("Credential store is closed")
            try:
                rows = self._conn.execute(
                    "SELECT * FROM identities ORDER BY created_at"
                ).fetchall()
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
        return [self._row_to_identity(r) for r in rows]

    def count(self) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM identities", ())
        return int(row["n"])

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True
