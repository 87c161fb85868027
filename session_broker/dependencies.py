"""FastAPI dependencies."""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from session_broker.config import settings
from session_broker.core.cookies import CookiePolicy, ExpiryPolicy, TokenTransport
from session_broker.core.error_normalizer import ErrorNormalizer
from session_broker.core.exceptions import ProviderError
from session_broker.core.identity import IdentityProvider
from session_broker.core.redis_client import ProfileCache, get_redis_client
from session_broker.core.supabase_client import SupabaseIdentityProvider, initialize_supabase
from session_broker.database import get_db
from session_broker.schemas.users import AuthenticatedUser
from session_broker.services.profile_service import ProfileService
from session_broker.services.profile_store import ProfileStore, SqlProfileStore
from session_broker.services.session_service import SessionService

logger = get_logger(__name__)


@lru_cache
def get_token_transport() -> TokenTransport:
    """Cookie transport built once from settings."""
    return TokenTransport(
        policy=CookiePolicy(
            secure=settings.cookie_secure,
            same_site=settings.cookie_samesite,
            domain=settings.cookie_domain,
        ),
        expiry=ExpiryPolicy(
            access_default=timedelta(minutes=settings.access_token_expire_minutes),
            access_remember=timedelta(days=settings.access_token_remember_days),
            refresh_default=timedelta(days=settings.refresh_token_expire_days),
            refresh_remember=timedelta(days=settings.refresh_token_remember_days),
        ),
    )


@lru_cache
def get_error_normalizer() -> ErrorNormalizer:
    """Error normalizer; raw provider errors are logged in development only."""
    return ErrorNormalizer(log_raw_errors=settings.is_development)


async def get_identity_provider() -> IdentityProvider:
    """Identity provider backed by the shared Supabase client."""
    client = await initialize_supabase(settings.supabase_url, settings.supabase_service_role_key)
    return SupabaseIdentityProvider(client)


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def get_profile_store(db: DatabaseSession) -> ProfileStore:
    """Profile store bound to the request's database session."""
    return SqlProfileStore(db)


def get_profile_cache() -> ProfileCache | None:
    """Profile cache, or None when caching is disabled."""
    if not settings.profile_cache_enabled:
        return None
    return ProfileCache(get_redis_client())


TokenTransportDep = Annotated[TokenTransport, Depends(get_token_transport)]
IdentityProviderDep = Annotated[IdentityProvider, Depends(get_identity_provider)]


def get_profile_service(
    store: Annotated[ProfileStore, Depends(get_profile_store)],
    cache: Annotated[ProfileCache | None, Depends(get_profile_cache)],
) -> ProfileService:
    """Profile resolver for the current request."""
    return ProfileService(store, cache)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]


def get_session_service(
    provider: IdentityProviderDep,
    profiles: ProfileServiceDep,
    transport: TokenTransportDep,
    normalizer: Annotated[ErrorNormalizer, Depends(get_error_normalizer)],
) -> SessionService:
    """Session lifecycle service for the current request."""
    return SessionService(
        provider=provider,
        profiles=profiles,
        transport=transport,
        normalizer=normalizer,
        password_recovery_redirect=settings.password_recovery_redirect_url,
        compensate_failed_registration=settings.compensate_failed_registration,
    )


SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]


async def get_current_user(
    request: Request,
    transport: TokenTransportDep,
    provider: IdentityProviderDep,
) -> AuthenticatedUser:
    """
    Authentication gate for protected endpoints.

    Extracts the access token cookie and resolves it through the identity
    provider. The request only proceeds when the token resolves to a user
    with an email.

    Args:
        request: Incoming request carrying the session cookies
        transport: Cookie transport used to read the access token
        provider: Identity provider resolving the token

    Returns:
        The authenticated caller

    Raises:
        HTTPException: 401 if the token is missing or rejected, 403 if the
            token resolves to no user or a user without an email
    """
    tokens = transport.extract(request.cookies)

    if not tokens.access_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token missing",
        )

    try:
        user = await provider.get_user(tokens.access_token)
    except ProviderError as e:
        logger.warning(
            "authentication_rejected",
            reason="provider_error",
            status=e.provider_status,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token",
        ) from e

    if user is None or not user.email:
        logger.warning("authentication_rejected", reason="no_email")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: Invalid token or user not found",
        )

    return AuthenticatedUser(id=user.id, email=user.email)


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
