"""Supabase Auth client initialization and identity provider adapter."""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from structlog import get_logger
from supabase import AsyncClient, AuthError, acreate_client

from session_broker.core.exceptions import ProviderError
from session_broker.core.identity import ProviderSession, ProviderUser, SignInResult

logger = get_logger(__name__)

_supabase_client: AsyncClient | None = None

# Sign-out statuses meaning the session is already gone
STALE_SESSION_STATUSES = frozenset({401, 403, 404})


async def initialize_supabase(supabase_url: str, supabase_key: str) -> AsyncClient:
    """
    Initialize the shared Supabase client.

    Args:
        supabase_url: Supabase project URL
        supabase_key: Service role key for the project

    Returns:
        The shared async client

    Raises:
        RuntimeError: If the URL or key is not configured
    """
    global _supabase_client

    if _supabase_client is not None:
        logger.info("Supabase already initialized")
        return _supabase_client

    if not supabase_url or not supabase_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

    _supabase_client = await acreate_client(supabase_url, supabase_key)
    logger.info("Supabase client initialized", url=supabase_url)
    return _supabase_client


def get_supabase_client() -> AsyncClient:
    """
    Get the Supabase client instance.

    Raises:
        RuntimeError: If Supabase is not initialized
    """
    if _supabase_client is None:
        raise RuntimeError("Supabase not initialized. Call initialize_supabase() first.")
    return _supabase_client


def _provider_error(exc: AuthError) -> ProviderError:
    status = getattr(exc, "status", None)
    if status == 0:
        # Request never got a response from the provider
        status = 503
    return ProviderError(
        message=getattr(exc, "message", None) or str(exc),
        status_code=status,
        code=getattr(exc, "code", None),
    )


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except AuthError as exc:
        logger.warning(
            "supabase_auth_error",
            operation=operation,
            status=getattr(exc, "status", None),
            code=getattr(exc, "code", None),
        )
        raise _provider_error(exc) from exc


def _to_user(user: Any) -> ProviderUser:
    metadata = getattr(user, "user_metadata", None) or {}
    verified = bool(getattr(user, "email_confirmed_at", None)) or bool(
        metadata.get("isUserVerified", False)
    )
    return ProviderUser(
        id=str(user.id),
        email=user.email,
        created_at=user.created_at,
        updated_at=getattr(user, "updated_at", None),
        is_verified=verified,
    )


def _to_session(session: Any) -> ProviderSession | None:
    if session is None:
        return None
    return ProviderSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
    )


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth."""

    def __init__(self, client: AsyncClient):
        """Initialize adapter with a shared Supabase client."""
        self.client = client

    async def sign_in(self, email: str, password: str) -> SignInResult:
        with _translate_errors("sign_in"):
            response = await self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        return SignInResult(
            user=_to_user(response.user) if response.user else None,
            session=_to_session(response.session),
        )

    async def sign_out(self, access_token: str | None) -> None:
        """
        Revoke the caller's refresh tokens.

        Without a token there is nothing to revoke. A token the provider no
        longer accepts (expired, revoked, unknown user) counts as signed out.
        """
        if not access_token:
            return
        try:
            with _translate_errors("sign_out"):
                await self.client.auth.admin.sign_out(access_token)
        except ProviderError as e:
            if e.provider_status not in STALE_SESSION_STATUSES:
                raise
            logger.info("session_already_ended", status=e.provider_status)

    async def sign_up(self, email: str, password: str, fullname: str) -> ProviderUser:
        with _translate_errors("sign_up"):
            response = await self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {"data": {"fullname": fullname, "isUserVerified": False}},
                }
            )
        if response.user is None:
            raise ProviderError("Registration did not return a user", status_code=500)
        return _to_user(response.user)

    async def refresh_session(self, refresh_token: str) -> SignInResult:
        with _translate_errors("refresh_session"):
            response = await self.client.auth.refresh_session(refresh_token)
        return SignInResult(
            user=_to_user(response.user) if response.user else None,
            session=_to_session(response.session),
        )

    async def get_user(self, access_token: str) -> ProviderUser | None:
        with _translate_errors("get_user"):
            response = await self.client.auth.get_user(access_token)
        if response is None or response.user is None:
            return None
        return _to_user(response.user)

    async def send_password_reset(self, email: str, redirect_to: str | None = None) -> None:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        with _translate_errors("send_password_reset"):
            await self.client.auth.reset_password_for_email(email, options)

    async def update_password(self, access_token: str, new_password: str) -> None:
        user = await self._require_user(access_token)
        with _translate_errors("update_password"):
            await self.client.auth.admin.update_user_by_id(user.id, {"password": new_password})

    async def verify_email(self, access_token: str) -> None:
        """Resend the sign-up confirmation email unless the address is already confirmed."""
        user = await self._require_user(access_token)
        if user.is_verified:
            return
        with _translate_errors("verify_email"):
            await self.client.auth.resend({"type": "signup", "email": user.email})

    async def delete_user(self, user_id: str) -> None:
        with _translate_errors("delete_user"):
            await self.client.auth.admin.delete_user(user_id)

    async def _require_user(self, access_token: str) -> ProviderUser:
        user = await self.get_user(access_token)
        if user is None or not user.email:
            raise ProviderError("User not found", status_code=401)
        return user
