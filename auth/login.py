"""
auth/login.py -- Password login.

Returns the sanitized profile with a fresh token pair. The route layer also
writes the pair into cookies, so browsers and API clients get the same tokens.

Unknown user and wrong password are reported separately (404 vs 401). A
failed attempt never reaches SessionIssuer, so the stored refresh token is
left exactly as it was.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool

from auth.models import SENSITIVE_FIELDS, LoginInput, LoginResult
from auth.passwords import verify_password
from auth.session import SessionIssuer
from auth.store import CredentialStore
from core.errors import ApiError
from core.result import Err, Ok, Result

logger = logging.getLogger("videohub.auth.login")


class AuthenticationService:
    def __init__(self, store: CredentialStore, issuer: SessionIssuer) -> None:
        self.store = store
        self.issuer = issuer

    async def login(self, credentials: LoginInput) -> Result[LoginResult]:
        username = credentials.username.lower() if credentials.username and credentials.username.strip() else None
        email = credentials.email if credentials.email and credentials.email.strip() else None
        if not username and not email:
            return Err(ApiError.validation("username or email is required", field="username"))
        if not credentials.password:
            return Err(ApiError.validation("password is required", field="password"))

        user = await run_in_threadpool(self.store.find_by_username_or_email, username, email)
        if user is None:
            return Err(ApiError.not_found("User does not exist"))

        matches = await run_in_threadpool(verify_password, credentials.password, user.password_hash or "")
        if not matches:
            logger.info("Failed login for user %s", user.id)
            return Err(ApiError.unauthorized("Invalid user credentials"))

        issued = await self.issuer.issue(user.id)
        if isinstance(issued, Err):
            return issued
        pair = issued.value

        profile = await run_in_threadpool(self.store.find_by_id, user.id, SENSITIVE_FIELDS)
        if profile is None:
            return Err(ApiError.internal("Something went wrong while logging in"))

        logger.info("User %s logged in", user.id)
        return Ok(LoginResult(user=profile, access_token=pair.access_token, refresh_token=pair.refresh_token))
