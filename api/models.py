"""
API request and response models for videohub REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire names are camelCase (fullName, coverImage, refreshToken, _id) while the
Python attributes stay snake_case. Every response is dumped with by_alias=True
so clients only ever see the wire names.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login.

    All fields are optional at the schema level. The service decides what is
    missing so clients get the domain message ("username or email is
    required") instead of a generic schema error. Values are not stripped;
    a password is compared exactly as sent.
    """

    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    """Optional body for POST /api/v1/users/refresh-token (cookie wins)."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserProfile(BaseModel):
    """Sanitized user record. Never carries the password hash or refresh token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(serialization_alias="_id")
    username: str
    email: str
    full_name: str = Field(serialization_alias="fullName")
    avatar: str
    cover_image: str = Field(default="", serialization_alias="coverImage")
    watch_history: list[str] = Field(default_factory=list, serialization_alias="watchHistory")
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[str] = Field(default=None, serialization_alias="updatedAt")

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id or "",
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=user.avatar_url,
            cover_image=user.cover_image_url or "",
            watch_history=list(user.watch_history),
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class TokenPayload(BaseModel):
    """Token pair as returned in the body of refresh responses."""

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class LoginPayload(BaseModel):
    """data field of a successful login response."""

    model_config = ConfigDict(frozen=True)

    user: UserProfile
    access_token: str = Field(serialization_alias="accessToken")
    refresh_token: str = Field(serialization_alias="refreshToken")


class ApiResponse(BaseModel):
    """Success envelope shared by every /users endpoint."""

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(serialization_alias="statusCode")
    data: Any = None
    message: str = "Success"
    success: bool = True


class ErrorDetail(BaseModel):
    """One offending input, listed in ErrorResponse.errors."""

    model_config = ConfigDict(frozen=True)

    field: Optional[str] = None
    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses.

    Same outer shape as ApiResponse (statusCode/data/message/success) so
    clients can parse every response uniformly. error is the machine-readable
    kind code (see core.errors.ErrorKind).
    """

    model_config = ConfigDict(frozen=True)

    status_code: int = Field(serialization_alias="statusCode")
    data: None = None
    message: str
    success: bool = False
    error: str
    errors: list[ErrorDetail] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
