"""
auth/tokens.py -- Access/refresh token signing and session cookies.

Security design decisions:
  JWT: python-jose with HS256. Two token classes, each with its own secret and
       lifetime (both from core.config.Settings):
         access  -- {_id, username, email, fullName}, minutes-scale expiry
         refresh -- {_id}, days-scale expiry
       Because the secrets differ, a refresh token never verifies as an access
       token and vice versa.

  Determinism: token bytes depend only on (user, secret, expiry, now). The
       clock is injectable. iat keeps fractional seconds so two pairs issued
       to the same user a moment apart are still distinct strings -- refresh
       rotation relies on that to tell the old token from the new one.

  Verification returns a Result instead of raising. Any failure (malformed,
       bad signature, expired, missing _id claim) is an AUTH error; route code
       never sees a jose exception.

  Cookies: accessToken / refreshToken, httpOnly (JS cannot read them) and
       secure (HTTPS only, controlled by SECURE_COOKIES). max_age matches the
       token expiry so both lapse together.

Layer rule: no imports from api/ or media/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenPair, User
from core.errors import ApiError
from core.result import Err, Ok, Result

logger = logging.getLogger("videohub.auth.tokens")

_ALGORITHM = "HS256"

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Signs and verifies access and refresh tokens.

    Usage:
        codec = TokenCodec(
            access_secret=settings.access_token_secret,
            access_expires=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_secret=settings.refresh_token_secret,
            refresh_expires=timedelta(days=settings.refresh_token_expire_days),
        )
        pair = codec.create_pair(user)
        claims = codec.verify_access(pair.access_token).unwrap()
    """

    def __init__(
        self,
        *,
        access_secret: str,
        access_expires: timedelta,
        refresh_secret: str,
        refresh_expires: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.access_secret = access_secret
        self.access_expires = access_expires
        self.refresh_secret = refresh_secret
        self.refresh_expires = refresh_expires
        self._clock = clock

    # ------------------------------------------------------------------
    # Encode
    # ------------------------------------------------------------------

    def create_access_token(self, user: User) -> str:
        payload = {
            "_id": user.id,
            "username": user.username,
            "email": user.email,
            "fullName": user.full_name,
        }
        return self._encode(payload, self.access_secret, self.access_expires)

    def create_refresh_token(self, user: User) -> str:
        return self._encode({"_id": user.id}, self.refresh_secret, self.refresh_expires)

    def create_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user),
        )

    def _encode(self, payload: dict, secret: str, expires: timedelta) -> str:
        now = self._clock()
        claims = dict(payload)
        # Float timestamps pass through jose untouched (datetimes would be
        # truncated to whole seconds).
        claims["iat"] = now.timestamp()
        claims["exp"] = (now + expires).timestamp()
        return jwt.encode(claims, secret, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Decode
    # ------------------------------------------------------------------

    def verify_access(self, token: str) -> Result[dict]:
        """Verify signature and expiry against the access secret."""
        return self._decode(token, self.access_secret, "access")

    def verify_refresh(self, token: str) -> Result[dict]:
        """Verify signature and expiry against the refresh secret."""
        return self._decode(token, self.refresh_secret, "refresh")

    @staticmethod
    def _decode(token: str, secret: str, kind: str) -> Result[dict]:
        try:
            claims = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        except ExpiredSignatureError:
            return Err(ApiError.unauthorized(f"{kind.capitalize()} token is expired"))
        except JWTError as e:
            logger.info("Rejected %s token: %s", kind, e)
            return Err(ApiError.unauthorized(f"Invalid {kind} token"))
        if not isinstance(claims.get("_id"), str):
            return Err(ApiError.unauthorized(f"Invalid {kind} token"))
        return Ok(claims)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_session_cookies(response, pair: TokenPair, codec: TokenCodec, *, secure: bool = True) -> None:
    """Write both tokens as httpOnly cookies on the response.

    The same values are also returned in the response body so non-browser
    clients can store them; browsers rely on the cookies.

    samesite="lax": cookie sent on same-site requests and top-level GET
        navigations, not on cross-site POST.
    """
    response.set_cookie(
        ACCESS_COOKIE,
        value=pair.access_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=int(codec.access_expires.total_seconds()),
    )
    response.set_cookie(
        REFRESH_COOKIE,
        value=pair.refresh_token,
        httponly=True,
        secure=secure,
        samesite="lax",
        max_age=int(codec.refresh_expires.total_seconds()),
    )


def clear_session_cookies(response, *, secure: bool = True) -> None:
    """Expire both session cookies. Attributes must match the ones used to set them."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, httponly=True, secure=secure, samesite="lax")
