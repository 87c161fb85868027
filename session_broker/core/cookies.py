"""Cookie transport for provider-issued session tokens."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

from fastapi import Response

from session_broker.core.identity import ProviderSession

ACCESS_TOKEN_COOKIE = "accesstoken"
REFRESH_TOKEN_COOKIE = "refreshtoken"

SameSite = Literal["lax", "strict", "none"]


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes shared by both session cookies."""

    http_only: bool = True
    secure: bool = True
    same_site: SameSite = "none"
    path: str = "/"
    domain: str | None = None


@dataclass(frozen=True)
class ExpiryPolicy:
    """Token lifetimes with and without remember-me."""

    access_default: timedelta = timedelta(minutes=15)
    access_remember: timedelta = timedelta(days=1)
    refresh_default: timedelta = timedelta(days=7)
    refresh_remember: timedelta = timedelta(days=30)

    def access_ttl(self, remember: bool) -> timedelta:
        return self.access_remember if remember else self.access_default

    def refresh_ttl(self, remember: bool) -> timedelta:
        return self.refresh_remember if remember else self.refresh_default


@dataclass(frozen=True)
class CookieSpec:
    """A single cookie ready to be written. ``max_age`` is in seconds."""

    name: str
    value: str
    max_age: int
    http_only: bool
    secure: bool
    same_site: SameSite
    path: str
    domain: str | None = None


@dataclass(frozen=True)
class AuthCookiePair:
    """Access and refresh cookies issued together."""

    access: CookieSpec
    refresh: CookieSpec

    @property
    def access_expires_in_ms(self) -> int:
        """Access cookie lifetime in milliseconds, as reported to clients."""
        return self.access.max_age * 1000


@dataclass(frozen=True)
class TransportTokens:
    """Tokens found on an inbound request; ``None`` means absent."""

    access_token: str | None = None
    refresh_token: str | None = None


class TokenTransport:
    """Encode session tokens into cookies and read them back."""

    def __init__(self, policy: CookiePolicy | None = None, expiry: ExpiryPolicy | None = None):
        self.policy = policy or CookiePolicy()
        self.expiry = expiry or ExpiryPolicy()

    def _cookie(self, name: str, value: str, ttl: timedelta) -> CookieSpec:
        return CookieSpec(
            name=name,
            value=value,
            max_age=int(ttl.total_seconds()),
            http_only=self.policy.http_only,
            secure=self.policy.secure,
            same_site=self.policy.same_site,
            path=self.policy.path,
            domain=self.policy.domain,
        )

    def issue(self, session: ProviderSession, remember: bool) -> AuthCookiePair:
        """
        Build the cookie pair for a complete provider session.

        Args:
            session: Provider session holding both tokens
            remember: Whether the caller asked to stay signed in

        Returns:
            Access and refresh cookies with the matching lifetimes

        Raises:
            ValueError: If either token is missing
        """
        if not session.is_complete:
            raise ValueError("Cannot issue cookies for an incomplete session")

        return AuthCookiePair(
            access=self._cookie(
                ACCESS_TOKEN_COOKIE,
                session.access_token,  # type: ignore[arg-type]
                self.expiry.access_ttl(remember),
            ),
            refresh=self._cookie(
                REFRESH_TOKEN_COOKIE,
                session.refresh_token,  # type: ignore[arg-type]
                self.expiry.refresh_ttl(remember),
            ),
        )

    def extract(self, cookies: Mapping[str, str]) -> TransportTokens:
        """Read both tokens from inbound cookies. Empty values count as absent."""
        return TransportTokens(
            access_token=cookies.get(ACCESS_TOKEN_COOKIE) or None,
            refresh_token=cookies.get(REFRESH_TOKEN_COOKIE) or None,
        )

    def apply(self, response: Response, pair: AuthCookiePair) -> None:
        """Write both cookies onto the response, replacing any previous pair."""
        for cookie in (pair.access, pair.refresh):
            response.set_cookie(
                key=cookie.name,
                value=cookie.value,
                max_age=cookie.max_age,
                path=cookie.path,
                domain=cookie.domain,
                secure=cookie.secure,
                httponly=cookie.http_only,
                samesite=cookie.same_site,
            )

    def clear(self, response: Response) -> None:
        """Expire both session cookies on the client."""
        for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
            response.delete_cookie(
                key=name,
                path=self.policy.path,
                domain=self.policy.domain,
                secure=self.policy.secure,
                httponly=self.policy.http_only,
                samesite=self.policy.same_site,
            )
