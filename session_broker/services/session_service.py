"""Session lifecycle: login, refresh, logout, registration and account flows."""

from collections.abc import Mapping
from typing import Any, TypeVar

from fastapi import status
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from structlog import get_logger

from session_broker.core.cookies import TokenTransport
from session_broker.core.error_normalizer import ErrorNormalizer
from session_broker.core.exceptions import (
    AuthenticationError,
    PersistenceError,
    ProviderError,
    SessionError,
    TokenGenerationFailure,
    ValidationError,
)
from session_broker.core.identity import IdentityProvider, ProviderUser, SignInResult
from session_broker.core.results import Failure, Result, Success
from session_broker.schemas.auth import LoginRequest, RegisterRequest
from session_broker.schemas.users import DEFAULT_ROLE, CanonicalUser, ProfileRecord
from session_broker.services.profile_service import ProfileService

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def validate_payload(schema: type[SchemaT], payload: Any) -> SchemaT:
    """
    Validate a request body against ``schema``.

    Raises:
        ValidationError: With one ``{path, message, code}`` entry per issue
    """
    try:
        return schema.model_validate(payload if payload is not None else {})
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid input",
            errors=[
                {
                    "path": ".".join(str(part) for part in error["loc"]),
                    "message": error["msg"],
                    "code": error["type"],
                }
                for error in e.errors()
            ],
        ) from e


def _field(payload: Any, name: str) -> Any:
    return payload.get(name) if isinstance(payload, Mapping) else None


class SessionService:
    """
    Orchestrates every session lifecycle operation.

    Each operation makes its provider and datastore calls strictly in
    sequence, attempts each exactly once, and returns a ``Success`` or a
    ``Failure``; nothing is raised to the caller for expected failures.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        profiles: ProfileService,
        transport: TokenTransport,
        normalizer: ErrorNormalizer,
        password_recovery_redirect: str | None = None,
        compensate_failed_registration: bool = True,
    ):
        """Initialize service with its collaborators."""
        self.provider = provider
        self.profiles = profiles
        self.transport = transport
        self.normalizer = normalizer
        self.password_recovery_redirect = password_recovery_redirect
        self.compensate_failed_registration = compensate_failed_registration

    def _failure(self, error: SessionError, context: str, clear_cookies: bool = False) -> Failure:
        if isinstance(error, ProviderError):
            normalized = self.normalizer.classify(error)
            error = ProviderError(
                normalized.message,
                status_code=normalized.status_code,
                code=error.code,
            )
        return Failure(error, context, clear_cookies=clear_cookies)

    @staticmethod
    def _require_tokens(result: SignInResult, operation: str) -> None:
        if result.session is None or not result.session.is_complete:
            logger.error(
                "token_generation_failed",
                operation=operation,
                has_session=result.session is not None,
            )
            raise TokenGenerationFailure()

    async def login(self, payload: Any) -> Result[CanonicalUser]:
        """
        Sign a user in and issue session cookies.

        Args:
            payload: Request body with email, password and remember

        Returns:
            Success carrying the canonical user, the cookie pair and the
            access-token lifetime; Failure on invalid input (400), rejected
            credentials (provider status, 401 by default) or missing tokens (500)
        """
        try:
            credentials = validate_payload(LoginRequest, payload)
            result = await self.provider.sign_in(credentials.email, credentials.password)
            self._require_tokens(result, "login")
            if result.user is None:
                raise ProviderError("Sign-in did not return a user", status_code=500)
            user = await self.profiles.resolve(result.user)
        except SessionError as e:
            return self._failure(e, "signin")

        cookies = self.transport.issue(result.session, credentials.remember)  # type: ignore[arg-type]
        logger.info("user_signed_in", user_id=user.id, remember=credentials.remember)

        return Success(
            message="User signed in successfully.",
            data=user,
            cookies=cookies,
            token_expires_in=cookies.access_expires_in_ms,
        )

    async def logout(self, access_token: str | None) -> Result[None]:
        """
        Sign the caller out. Succeeds even when there is no session.

        The session cookies are cleared even when the provider fails to
        revoke the session.
        """
        try:
            await self.provider.sign_out(access_token)
        except SessionError as e:
            logger.warning("session_revocation_failed", error=e.message)
            return self._failure(e, "signout", clear_cookies=True)

        logger.info("user_signed_out", had_session=bool(access_token))
        return Success(message="Logout successful", clear_cookies=True)

    async def register(self, payload: Any) -> Result[ProfileRecord]:
        """
        Create a provider account and its local profile.

        If the profile insert fails after the provider accepted the sign-up,
        the provider account is deleted again (when compensation is enabled)
        and the persistence error is returned either way. A conflict means the
        account already had a profile and is never deleted.
        """
        try:
            registration = validate_payload(RegisterRequest, payload)
            provider_user = await self.provider.sign_up(
                registration.email,
                registration.password,
                registration.fullname,
            )
        except SessionError as e:
            return self._failure(e, "signup")

        record = ProfileRecord(
            user_id=provider_user.id,
            email=registration.email,
            fullname=registration.fullname,
            role=DEFAULT_ROLE,
            created_at=provider_user.created_at,
            updated_at=provider_user.updated_at,
        )

        try:
            created = await self.profiles.create(record)
        except PersistenceError as e:
            await self._compensate_registration(provider_user, e)
            return Failure(e, "signup")

        logger.info("user_registered", user_id=provider_user.id)
        return Success(message="Registration successful", data=created, status_code=201)

    async def _compensate_registration(self, provider_user: ProviderUser, cause: PersistenceError) -> None:
        if cause.status_code == status.HTTP_409_CONFLICT:
            # The profile already exists, so the account predates this request
            logger.warning(
                "registration_conflict",
                user_id=provider_user.id,
                error=cause.message,
            )
            return

        if not self.compensate_failed_registration:
            logger.error(
                "profile_missing_after_signup",
                user_id=provider_user.id,
                error=cause.message,
            )
            return

        try:
            await self.provider.delete_user(provider_user.id)
        except ProviderError as e:
            logger.error(
                "registration_rollback_failed",
                user_id=provider_user.id,
                error=e.message,
            )
            return

        logger.warning("registration_rolled_back", user_id=provider_user.id, error=cause.message)

    async def refresh_token(self, refresh_token: str | None, remember: bool = False) -> Result[None]:
        """
        Exchange a refresh token for a new cookie pair.

        A missing refresh token fails with 401 without calling the provider.
        """
        if not refresh_token:
            return Failure(AuthenticationError("Unauthorized"), "refreshToken")

        try:
            result = await self.provider.refresh_session(refresh_token)
            self._require_tokens(result, "refresh_token")
        except SessionError as e:
            return self._failure(e, "refreshToken")

        cookies = self.transport.issue(result.session, remember)  # type: ignore[arg-type]
        logger.info("session_refreshed", remember=remember)

        return Success(
            message="Tokens are refreshed successfully",
            cookies=cookies,
            token_expires_in=cookies.access_expires_in_ms,
        )

    async def request_password_reset(self, access_token: str | None, payload: Any) -> Result[None]:
        """Set a new password for the signed-in caller."""
        new_password = _field(payload, "newPassword")
        if not isinstance(new_password, str) or not new_password:
            return Failure(ValidationError("New password is required"), "resetPassword")

        if not access_token:
            return Failure(AuthenticationError("Unauthorized"), "resetPassword")

        try:
            await self.provider.update_password(access_token, new_password)
        except SessionError as e:
            return self._failure(e, "resetPassword")

        return Success(message="Password reset successful")

    async def request_password_recovery(self, payload: Any) -> Result[None]:
        """Send a password recovery email."""
        email = _field(payload, "email")
        if not isinstance(email, str) or not email.strip():
            return Failure(ValidationError("Email is required"), "forgotPassword")

        try:
            await self.provider.send_password_reset(email.strip(), self.password_recovery_redirect)
        except SessionError as e:
            return self._failure(e, "forgotPassword")

        return Success(message="Password recovery email sent")

    async def verify_email(self, access_token: str | None) -> Result[None]:
        """Start the provider's email verification for the current session."""
        if not access_token:
            return Failure(AuthenticationError("Unauthorized"), "verifyEmail")

        try:
            await self.provider.verify_email(access_token)
        except SessionError as e:
            return self._failure(e, "verifyEmail")

        return Success(message="Email verification successful")

    async def fetch_profile(self, access_token: str | None) -> Result[CanonicalUser]:
        """Resolve the caller from the access token and return the canonical view."""
        if not access_token:
            return Failure(AuthenticationError("Unauthorized"), "profile")

        try:
            provider_user = await self.provider.get_user(access_token)
            if provider_user is None:
                raise AuthenticationError("Unauthorized")
            user = await self.profiles.resolve(provider_user)
        except SessionError as e:
            return self._failure(e, "profile")

        return Success(message="User profile fetched successfully", data=user)
