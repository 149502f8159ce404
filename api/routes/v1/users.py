"""
api/routes/v1/users.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/users/register       -- multipart sign-up with avatar / cover image
  POST /api/v1/users/login          -- password login; sets both session cookies
  POST /api/v1/users/refresh-token  -- rotate the refresh token; sets both cookies
  POST /api/v1/users/logout         -- revoke the refresh token; clears cookies (requires auth)
  GET  /api/v1/users/current-user   -- sanitized profile of the caller (requires auth)

Handlers stay thin: collect input, call one service, unwrap the Result, and
wrap the value in the ApiResponse envelope. Unwrapping an Err raises the
carried ApiError, which the handlers in api/main.py turn into the error
envelope.

Security:
  Cache-Control: no-store on every response that carries tokens.
  Token values are never logged.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.models import ApiResponse, LoginPayload, LoginRequest, RefreshRequest, TokenPayload, UserProfile
from auth.dependencies import get_current_user
from auth.models import LoginInput, RegistrationInput, TokenPair, User
from auth.tokens import REFRESH_COOKIE, clear_session_cookies, set_session_cookies
from core.config import Settings
from core.result import Err
from media.staging import first_upload, stage_upload

# Auth policy:
# - POST /api/v1/users/register:       public
# - POST /api/v1/users/login:          public
# - POST /api/v1/users/refresh-token:  public -- the refresh token is the credential
# - POST /api/v1/users/logout:         requires auth (get_current_user)
# - GET  /api/v1/users/current-user:   requires auth (get_current_user)
router = APIRouter(prefix="/users")


def _envelope(status_code: int, data: Any, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiResponse(status_code=status_code, data=data, message=message).model_dump(by_alias=True),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", status_code=201)
async def register(
    request: Request,
    full_name: str = Form("", alias="fullName"),
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    avatar: Optional[list[UploadFile]] = File(None),
    cover_image: Optional[list[UploadFile]] = File(None, alias="coverImage"),
) -> JSONResponse:
    """Create an account. Text fields and image files arrive as multipart form data.

    Both images are staged to the temp directory first; from then on the
    registration service owns the staged files and removes them on every path.
    """
    settings: Settings = request.app.state.settings

    avatar_path = (
        await stage_upload(
            first_upload(avatar), settings.upload_temp_dir, settings.max_upload_bytes, field="avatar"
        )
    ).unwrap()
    staged_cover = await stage_upload(
        first_upload(cover_image), settings.upload_temp_dir, settings.max_upload_bytes, field="coverImage"
    )
    if isinstance(staged_cover, Err) and avatar_path is not None:
        request.app.state.uploader.discard(avatar_path)
    cover_path = staged_cover.unwrap()

    user = (
        await request.app.state.registration.register(
            RegistrationInput(
                full_name=full_name,
                email=email,
                username=username,
                password=password,
                avatar_path=avatar_path,
                cover_image_path=cover_path,
            )
        )
    ).unwrap()

    return _envelope(
        201,
        UserProfile.from_user(user).model_dump(by_alias=True),
        "User registered successfully",
    )


@router.post("/login")
async def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username or email plus password; set session cookies.

    The token pair is returned in the body as well as in the cookies so
    non-browser clients can use the Authorization header instead.
    """
    result = (
        await request.app.state.authentication.login(
            LoginInput(password=body.password or "", username=body.username, email=body.email)
        )
    ).unwrap()

    payload = LoginPayload(
        user=UserProfile.from_user(result.user),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )
    resp = _envelope(200, payload.model_dump(by_alias=True), "User logged in successfully")
    set_session_cookies(
        resp,
        TokenPair(access_token=result.access_token, refresh_token=result.refresh_token),
        request.app.state.codec,
        secure=request.app.state.settings.secure_cookies,
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/refresh-token")
async def refresh_token(request: Request, body: Optional[RefreshRequest] = None) -> JSONResponse:
    """Exchange a refresh token for a new pair.

    The refreshToken cookie takes precedence over a refreshToken body field.
    The presented token is invalidated by the rotation.
    """
    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    pair = (await request.app.state.refresher.refresh(incoming)).unwrap()

    payload = TokenPayload(access_token=pair.access_token, refresh_token=pair.refresh_token)
    resp = _envelope(200, payload.model_dump(by_alias=True), "Access token refreshed")
    set_session_cookies(resp, pair, request.app.state.codec, secure=request.app.state.settings.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/logout")
async def logout(request: Request, current_user: User = Depends(get_current_user)) -> JSONResponse:
    """Revoke the caller's refresh token and clear both cookies.

    The access token stays valid until it expires; only refresh is revoked.
    """
    (await request.app.state.logout.logout(current_user.id)).unwrap()
    resp = _envelope(200, {}, "User logged out")
    clear_session_cookies(resp, secure=request.app.state.settings.secure_cookies)
    return resp


@router.get("/current-user")
async def current_user(user: User = Depends(get_current_user)) -> JSONResponse:
    """Return the sanitized profile attached by the authorization dependency."""
    return _envelope(200, UserProfile.from_user(user).model_dump(by_alias=True), "User fetched successfully")

