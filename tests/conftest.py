"""
tests/conftest.py -- Shared test fixtures for videohub unit and integration tests.

This module provides:
  - FakeUploader: in-process AssetUploader that honours the delete-on-upload contract
  - store / codec / settings / uploader: isolated building blocks for unit tests
  - make_user: inserts a user with a real bcrypt hash
  - client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient and run_in_threadpool run store calls on worker threads.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Every test gets its own database name, so no state leaks
between tests.

The DEBUG env var must be set before any api/auth/core import so the
module-level get_settings() call in api/main.py auto-generates the token
secrets instead of raising ValueError.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

# CRITICAL: Set DEBUG before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_state
from auth.models import User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import Settings

ACCESS_SECRET = "a" * 32 + "-access-test-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-test-secret"

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeUploader:
    """AssetUploader double. Deletes the staged file like the real one does.

    Files whose name contains one of fail_markers are "rejected" (None).
    """

    def __init__(self) -> None:
        self.fail_markers: set[str] = set()
        self.uploaded: list[str] = []
        self.discarded: list[Path] = []

    async def upload(self, local_path: Path) -> str | None:
        try:
            if any(marker in local_path.name for marker in self.fail_markers):
                return None
            self.uploaded.append(local_path.name)
            return f"https://res.cloudinary.com/demo/image/upload/{local_path.name}"
        finally:
            local_path.unlink(missing_ok=True)

    def discard(self, local_path: Path) -> None:
        self.discarded.append(local_path)
        local_path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore(db_url=f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(
        access_secret=ACCESS_SECRET,
        access_expires=timedelta(minutes=15),
        refresh_secret=REFRESH_SECRET,
        refresh_expires=timedelta(days=10),
    )


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test settings. secure_cookies is off so the TestClient (plain http) sends cookies back."""
    return Settings(
        debug=True,
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        secure_cookies=False,
        upload_temp_dir=tmp_path / "temp",
        max_upload_bytes=1024,
    )


@pytest.fixture
def make_user(store: UserStore) -> Callable[..., User]:
    """Factory: insert a user and return it as stored (sensitive fields included)."""

    def _make(
        username: str = "annl",
        email: str = "ann@x.com",
        password: str = "p@ss1",
        full_name: str = "Ann Lee",
    ) -> User:
        user_id = store.create_user(
            User(
                username=username,
                email=email,
                full_name=full_name,
                avatar_url="https://res.cloudinary.com/demo/image/upload/avatar.png",
                password_hash=hash_password(password),
            )
        )
        return store.find_by_id(user_id)

    return _make


# ---------------------------------------------------------------------------
# Integration client
# ---------------------------------------------------------------------------


def _patch_lifespan(settings: Settings, store: UserStore, uploader: FakeUploader):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and FakeUploader through the same build_state() the
    real lifespan uses, so routes see the production service graph minus the
    real database and the network.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        settings.upload_temp_dir.mkdir(parents=True, exist_ok=True)
        build_state(app, settings, store, uploader)
        yield

    return test_lifespan


@pytest.fixture
def client(settings: Settings, store: UserStore, uploader: FakeUploader) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated store, uploader and temp dir."""
    app.router.lifespan_context = _patch_lifespan(settings, store, uploader)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
