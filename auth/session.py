"""
auth/session.py -- Session lifecycle: issue, rotate, revoke.

SessionIssuer  -- mints an access/refresh pair and stores the refresh token on
                  the user record. The stored value is the only valid refresh
                  token for that user; writing a new one invalidates the old.
TokenRefresher -- exchanges a refresh token for a new pair (rotation).
LogoutService  -- clears the stored refresh token.

Reuse detection is a plain string comparison between the presented refresh
token and the one on the user record. A token that was superseded by a later
issue() -- or cleared by logout -- no longer matches and is rejected.

Concurrency: read, compare, and write are separate store calls. Two refreshes
racing with the same valid token can both pass the comparison; each writes
its own new token and the last write wins. Only that last token will work
for the next refresh.

Layer rule: no imports from api/ or media/.
"""

from __future__ import annotations

import logging

from starlette.concurrency import run_in_threadpool

from auth.models import TokenPair
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.errors import ApiError
from core.result import Err, Ok, Result

logger = logging.getLogger("videohub.auth.session")


class SessionIssuer:
    def __init__(self, store: CredentialStore, codec: TokenCodec) -> None:
        self.store = store
        self.codec = codec

    async def issue(self, user_id: str) -> Result[TokenPair]:
        """Mint a fresh pair for user_id and persist the refresh token.

        Callers have already established that the user exists, so a failed
        lookup here is a server fault (INTERNAL), not a client error.
        """
        user = await run_in_threadpool(self.store.find_by_id, user_id)
        if user is None:
            logger.error("Session issue for missing user %s", user_id)
            return Err(ApiError.internal("Something went wrong while generating access and refresh tokens"))

        pair = self.codec.create_pair(user)
        # Only the refresh_token column is written.
        updated = await run_in_threadpool(self.store.update_user, user_id, refresh_token=pair.refresh_token)
        if not updated:
            return Err(ApiError.internal("Something went wrong while generating access and refresh tokens"))
        return Ok(pair)


class TokenRefresher:
    def __init__(self, store: CredentialStore, codec: TokenCodec, issuer: SessionIssuer) -> None:
        self.store = store
        self.codec = codec
        self.issuer = issuer

    async def refresh(self, incoming_token: str | None) -> Result[TokenPair]:
        """Validate a refresh token and rotate it.

        Steps: presence -> signature/expiry -> user lookup -> equality with the
        stored token -> issue a brand-new pair.
        """
        if not incoming_token:
            return Err(ApiError.unauthorized("Unauthorized request"))

        verified = self.codec.verify_refresh(incoming_token)
        if isinstance(verified, Err):
            return verified
        user_id = verified.value["_id"]

        user = await run_in_threadpool(self.store.find_by_id, user_id)
        if user is None:
            return Err(ApiError.unauthorized("Invalid refresh token"))

        if incoming_token != user.refresh_token:
            logger.warning("Stale or reused refresh token presented for user %s", user_id)
            return Err(ApiError.unauthorized("Refresh token is expired or already used"))

        return await self.issuer.issue(user_id)


class LogoutService:
    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    async def logout(self, user_id: str) -> Result[None]:
        """Clear the stored refresh token. Safe to call repeatedly.

        A user that vanished between authorization and logout still ends up
        logged out, so a missing row is not an error.
        """
        updated = await run_in_threadpool(self.store.update_user, user_id, refresh_token=None)
        if not updated:
            logger.info("Logout for unknown user %s", user_id)
        return Ok(None)
