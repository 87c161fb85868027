"""Identity provider contract consumed by the session broker."""

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel


class ProviderUser(BaseModel):
    """Identity record owned by the provider."""

    id: str
    email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_verified: bool = False


class ProviderSession(BaseModel):
    """Provider-issued token pair. Either token may be missing."""

    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_complete(self) -> bool:
        """Both tokens present and non-empty."""
        return bool(self.access_token) and bool(self.refresh_token)


class SignInResult(BaseModel):
    """Outcome of a password sign-in or a session refresh."""

    user: ProviderUser | None = None
    session: ProviderSession | None = None


class IdentityProvider(Protocol):
    """Operations the broker needs from the identity provider.

    Implementations raise ``ProviderError`` on any provider-side failure.
    """

    async def sign_in(self, email: str, password: str) -> SignInResult: ...

    async def sign_out(self, access_token: str | None) -> None: ...

    async def sign_up(self, email: str, password: str, fullname: str) -> ProviderUser: ...

    async def refresh_session(self, refresh_token: str) -> SignInResult: ...

    async def get_user(self, access_token: str) -> ProviderUser | None: ...

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None: ...

    async def update_password(self, access_token: str, new_password: str) -> None: ...

    async def verify_email(self, access_token: str) -> None: ...

    async def delete_user(self, user_id: str) -> None: ...
