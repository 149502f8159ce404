"""
auth/dependencies.py -- Request authorization for protected endpoints.

Token lookup order:
  1. accessToken cookie -- set by the login / refresh responses.
  2. Authorization: Bearer <token> header -- API clients.

AccessTokenGuard does the framework-free part (verify, load user) and returns
a Result. get_current_user() is the FastAPI Depends() wrapper: it extracts the
token, unwraps the guard's result (raising ApiError -> 401 envelope), and
attaches the sanitized user to request.state.user for the rest of the request.

An expired access token is rejected outright. Clients must call the refresh
endpoint themselves; nothing here refreshes silently.

Layer rule: no imports from api/ or media/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from auth.models import SENSITIVE_FIELDS, User
from auth.store import CredentialStore
from auth.tokens import ACCESS_COOKIE, TokenCodec
from core.errors import ApiError
from core.result import Err, Ok, Result


class AccessTokenGuard:
    def __init__(self, store: CredentialStore, codec: TokenCodec) -> None:
        self.store = store
        self.codec = codec

    async def authorize(self, token: str | None) -> Result[User]:
        """Resolve an access token to the sanitized user it belongs to."""
        if not token:
            return Err(ApiError.unauthorized("Unauthorized request"))

        verified = self.codec.verify_access(token)
        if isinstance(verified, Err):
            return verified

        user = await run_in_threadpool(self.store.find_by_id, verified.value["_id"], SENSITIVE_FIELDS)
        if user is None:
            return Err(ApiError.unauthorized("Invalid access token"))
        return Ok(user)


def extract_access_token(request: Request) -> str | None:
    """Return the access token from the cookie, else from a Bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:].strip()
    return token or None


async def get_current_user(request: Request) -> User:
    """Require a valid access token. Raises ApiError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(get_current_user)): ...
    """
    guard: AccessTokenGuard = request.app.state.access_guard
    user = (await guard.authorize(extract_access_token(request))).unwrap()
    request.state.user = user
    return user
