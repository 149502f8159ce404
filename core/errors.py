"""
core/errors.py -- The single error carrier used across videohub.

Every domain failure is an ApiError tagged with an ErrorKind. The kind fixes
the HTTP status code, so services never pick status codes themselves and the
API layer never has to guess.

Services do not raise ApiError directly. They return Err(ApiError(...)) (see
core/result.py) and the route layer unwraps the result, which raises the
carried error into the FastAPI exception handlers in api/main.py.

Layer rule: core/ is the kernel. No imports from api/, auth/, or media/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Failure taxonomy. The value is the machine-readable code sent to clients."""

    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    AUTH = "unauthorized"
    UPLOAD = "upload_failed"
    INTERNAL = "internal_error"


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTH: 401,
    # The storage provider rejected or lost the required avatar. Reported as a
    # client error because the usual cause is an unreadable or unsupported file.
    ErrorKind.UPLOAD: 400,
    ErrorKind.INTERNAL: 500,
}


class ApiError(Exception):
    """A terminal failure for the current request.

    Attributes:
        kind:        ErrorKind tag.
        status_code: HTTP status derived from kind.
        message:     Human-readable message, safe to show to the client.
        field:       Offending input field for validation failures, else None.
    """

    def __init__(self, kind: ErrorKind, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = _STATUS_CODES[kind]
        self.message = message
        self.field = field

    def __repr__(self) -> str:
        return f"ApiError({self.kind.name}, {self.message!r})"

    # ------------------------------------------------------------------
    # Constructors, one per kind
    # ------------------------------------------------------------------

    @classmethod
    def validation(cls, message: str, *, field: str | None = None) -> ApiError:
        return cls(ErrorKind.VALIDATION, message, field=field)

    @classmethod
    def conflict(cls, message: str) -> ApiError:
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def not_found(cls, message: str) -> ApiError:
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized request") -> ApiError:
        return cls(ErrorKind.AUTH, message)

    @classmethod
    def upload(cls, message: str) -> ApiError:
        return cls(ErrorKind.UPLOAD, message)

    @classmethod
    def internal(cls, message: str = "Something went wrong") -> ApiError:
        return cls(ErrorKind.INTERNAL, message)
