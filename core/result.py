"""
core/result.py -- Explicit success/failure values returned by services.

Pattern: Result type. Each service operation returns either Ok(value) or
Err(ApiError). Callers check with isinstance() and pass an Err straight back
up, so the failure path is visible in every signature instead of unwinding
through the stack.

    result = await issuer.issue(user.id)
    if isinstance(result, Err):
        return result
    pair = result.value

At the HTTP edge, .unwrap() turns an Err back into a raised ApiError which the
exception handlers in api/main.py render as the error envelope.

Layer rule: core/ is the kernel. No imports from api/, auth/, or media/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from core.errors import ApiError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's value."""

    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the ApiError that ends the request."""

    error: ApiError

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Ok[T], Err]
