"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. CredentialStore is the abstract repository
the services depend on; UserStore is the SQLAlchemy implementation and
_row_to_user is the mapper. Service and route code never touches SQL directly.

The store guarantees atomic per-record reads and writes (one statement, one
commit). It does NOT offer compare-and-swap: TokenRefresher reads the stored
refresh token, compares, then writes a new one in separate statements, so two
concurrent refreshes with the same token can both succeed and the last write
wins.

Security:
  All queries use bound parameters. No f-strings in SQL.
  find_by_id(exclude=...) never selects the excluded columns, so a sanitized
  read cannot leak password_hash or refresh_token even by accident.

DB path: videohub.db at the project root unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, or_, select, text
from sqlalchemy.engine import Engine

from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(32), primary_key=True),
    Column("username", String(255), nullable=False, unique=True, index=True),
    Column("email", String(320), nullable=False, unique=True, index=True),
    Column("full_name", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("avatar_url", Text, nullable=False),
    Column("cover_image_url", Text, nullable=False, server_default=""),
    Column("refresh_token", Text),  # NULL until first login and after logout
    Column("watch_history", Text, nullable=False, server_default="[]"),  # JSON array of content ids
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_USER_COLUMNS: tuple[str, ...] = tuple(c.name for c in _users.columns)

# Columns update_user() may touch. id and created_at are immutable.
_MUTABLE_COLUMNS: frozenset[str] = frozenset(
    {"full_name", "email", "password_hash", "avatar_url", "cover_image_url", "refresh_token", "watch_history"}
)


# ---------------------------------------------------------------------------
# Abstract repository
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    """Repository contract the auth services are written against."""

    def create_user(self, user: User) -> str:
        """Persist a new user and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError on a username/email collision.
        """
        ...

    def find_by_username_or_email(self, username: str | None, email: str | None) -> User | None:
        """Return the first user matching either identifier, or None."""
        ...

    def find_by_id(self, user_id: str, exclude: Iterable[str] = ()) -> User | None:
        """Return the user with the given id, leaving the excluded fields as None."""
        ...

    def update_user(self, user_id: str, **fields) -> bool:
        """Update the given fields on one user. Returns False if no such user."""
        ...


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """SQLAlchemy Core implementation of CredentialStore.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(username="ann", email="ann@x.com", ...))
        profile = store.find_by_id(user_id, exclude=SENSITIVE_FIELDS)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Insert a new user and return its assigned id.

        The caller is responsible for lowercasing the username; the store
        persists exactly what it is given. Raises sqlalchemy.exc.IntegrityError
        if the username or email already exists -- RegistrationService turns
        that into a conflict when two registrations race past its lookup.
        """
        user_id = uuid.uuid4().hex
        now = _now_iso()
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user_id,
                    username=user.username,
                    email=user.email,
                    full_name=user.full_name,
                    password_hash=user.password_hash,
                    avatar_url=user.avatar_url,
                    cover_image_url=user.cover_image_url or "",
                    refresh_token=user.refresh_token,
                    watch_history=json.dumps(list(user.watch_history)),
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return user_id

    def update_user(self, user_id: str, **fields) -> bool:
        """Update mutable fields on an existing user and stamp updated_at.

        Only the named columns are written; nothing else on the record is
        re-validated or rewritten. Unknown or immutable field names raise
        ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)!r}")
        if "watch_history" in fields:
            fields["watch_history"] = json.dumps(list(fields["watch_history"]))
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(updated_at=_now_iso(), **fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_username_or_email(self, username: str | None, email: str | None) -> User | None:
        """Look up a user whose username OR email matches.

        Either argument may be None, in which case it does not participate.
        Username comparison is exact; callers pass the lowercased form.
        """
        conditions = []
        if username:
            conditions.append(_users.c.username == username)
        if email:
            conditions.append(_users.c.email == email)
        if not conditions:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(or_(*conditions)).limit(1)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str, exclude: Iterable[str] = ()) -> User | None:
        """Look up a user by primary key, selecting every column except `exclude`.

        Excluded fields come back as None on the returned User. Unknown column
        names raise ValueError.
        """
        excluded = set(exclude)
        unknown = excluded - set(_USER_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        columns = [_users.c[name] for name in _USER_COLUMNS if name not in excluded]
        with self.engine.connect() as conn:
            row = conn.execute(select(*columns).where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    # Rows from a sanitized select lack the excluded keys; .get() maps them to None.
    data = row._mapping
    return User(
        id=data["id"],
        username=data.get("username"),
        email=data.get("email"),
        full_name=data.get("full_name"),
        avatar_url=data.get("avatar_url"),
        cover_image_url=data.get("cover_image_url") or "",
        password_hash=data.get("password_hash"),
        refresh_token=data.get("refresh_token"),
        watch_history=json.loads(data.get("watch_history") or "[]"),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )
