"""
auth/models.py -- Domain dataclasses for accounts and sessions.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; stores and services do the work. The HTTP shape lives in api/models.py.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Columns that never leave the service. Passed to CredentialStore.find_by_id()
# as the exclusion set whenever a record is read for an outward response.
SENSITIVE_FIELDS: frozenset[str] = frozenset({"password_hash", "refresh_token"})


@dataclass
class User:
    """A registered account.

    id is assigned by the store at creation and never changes.
    username is stored lowercased; email is stored exactly as given.

    password_hash and refresh_token are None on records read with
    SENSITIVE_FIELDS excluded (the sanitized profile). refresh_token is also
    None after logout.
    """

    username: str
    email: str
    full_name: str
    avatar_url: str
    cover_image_url: str = ""
    password_hash: str | None = None
    refresh_token: str | None = None
    watch_history: list[str] = field(default_factory=list)
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    """Sanitized profile plus the freshly issued session tokens."""

    user: User
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginInput:
    password: str
    username: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class RegistrationInput:
    """Registration fields plus staged upload paths.

    avatar_path / cover_image_path point at files already copied to the local
    temp directory (see media/staging.py). Either may be None.
    """

    full_name: str | None
    email: str | None
    username: str | None
    password: str | None
    avatar_path: Path | None = None
    cover_image_path: Path | None = None
