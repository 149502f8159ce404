"""
auth/registration.py -- Account creation with profile-image ingestion.

Flow:
  1. Each of fullName / email / username / password must be non-blank.
     Every field is checked on its own so the error names the culprit.
  2. No existing user may share the (lowercased) username or the email.
  3. An avatar file is required.
  4. Avatar upload must succeed; a failed cover upload just leaves the cover
     URL empty. Uploads run one after the other, avatar first.
  5. The password is hashed and the user is created with a lowercased username.
  6. The record is re-read without password_hash / refresh_token. An empty
     re-read means the store lost the write -- a server fault.

Temp files: the uploader deletes each staged file as part of upload(). If
registration stops before the uploads (bad input, conflict, missing avatar),
the staged files are discarded here instead, so no request leaves files
behind in the temp directory.

Layer rule: no imports from api/. media/ is reached only through the
AssetUploader protocol.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError
from starlette.concurrency import run_in_threadpool

from auth.models import SENSITIVE_FIELDS, RegistrationInput, User
from auth.passwords import hash_password
from auth.store import CredentialStore
from core.errors import ApiError
from core.result import Err, Ok, Result
from media.uploader import AssetUploader

logger = logging.getLogger("videohub.auth.registration")

_CONFLICT_MESSAGE = "User with email or username already exists"


class RegistrationService:
    def __init__(self, store: CredentialStore, uploader: AssetUploader) -> None:
        self.store = store
        self.uploader = uploader

    async def register(self, data: RegistrationInput) -> Result[User]:
        result = await self._register(data)
        if isinstance(result, Err):
            logger.info("Registration rejected: %s", result.error.message)
        return result

    async def _register(self, data: RegistrationInput) -> Result[User]:
        checked = _require_fields(data)
        if isinstance(checked, Err):
            self._discard_staged(data)
            return checked
        full_name, email, username, password = checked.value
        username = username.lower()

        existing = await run_in_threadpool(self.store.find_by_username_or_email, username, email)
        if existing is not None:
            self._discard_staged(data)
            return Err(ApiError.conflict(_CONFLICT_MESSAGE))

        if data.avatar_path is None:
            self._discard_staged(data)
            return Err(ApiError.validation("Avatar file is required", field="avatar"))

        avatar_url = await self.uploader.upload(data.avatar_path)
        if not avatar_url:
            self._discard(data.cover_image_path)
            return Err(ApiError.upload("Avatar file could not be uploaded"))

        cover_image_url = ""
        if data.cover_image_path is not None:
            cover_image_url = await self.uploader.upload(data.cover_image_path) or ""
            if not cover_image_url:
                logger.warning("Cover image upload failed for %s; continuing without it", username)

        password_hash = await run_in_threadpool(hash_password, password)
        new_user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=password_hash,
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
        )
        try:
            user_id = await run_in_threadpool(self.store.create_user, new_user)
        except IntegrityError:
            # A concurrent registration took the username or email after our lookup.
            return Err(ApiError.conflict(_CONFLICT_MESSAGE))

        created = await run_in_threadpool(self.store.find_by_id, user_id, SENSITIVE_FIELDS)
        if created is None:
            logger.error("User %s vanished right after creation", user_id)
            return Err(ApiError.internal("Something went wrong while registering the user"))

        logger.info("Registered user %s (%s)", created.id, created.username)
        return Ok(created)

    def _discard_staged(self, data: RegistrationInput) -> None:
        self._discard(data.avatar_path)
        self._discard(data.cover_image_path)

    def _discard(self, path: Path | None) -> None:
        if path is not None:
            self.uploader.discard(path)


def _require_fields(data: RegistrationInput) -> Result[tuple[str, str, str, str]]:
    """Check each text field separately; the first blank one is reported."""
    fields = (
        ("fullName", data.full_name),
        ("email", data.email),
        ("username", data.username),
        ("password", data.password),
    )
    values: list[str] = []
    for name, value in fields:
        if value is None or not value.strip():
            return Err(ApiError.validation(f"{name} is required", field=name))
        values.append(value)
    full_name, email, username, password = values
    return Ok((full_name, email, username, password))
