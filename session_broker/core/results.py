"""Tagged results returned by lifecycle operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from session_broker.core.cookies import AuthCookiePair
from session_broker.core.exceptions import SessionError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful operation outcome.

    ``cookies`` are written onto the response, ``clear_cookies`` removes the
    session cookies, ``token_expires_in`` is the access-token lifetime in
    milliseconds reported to the client.
    """

    message: str
    data: T | None = None
    status_code: int = 200
    cookies: AuthCookiePair | None = None
    clear_cookies: bool = False
    token_expires_in: int | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Failed operation outcome, tagged by the error's ``kind``.

    ``clear_cookies`` removes the session cookies even though the
    operation failed.
    """

    error: SessionError
    context: str | None = None
    clear_cookies: bool = False

    @property
    def ok(self) -> bool:
        return False


Result = Success[T] | Failure
