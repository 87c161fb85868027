"""Tests for the session lifecycle service."""

from session_broker.core.cookies import TokenTransport
from session_broker.core.error_normalizer import ErrorNormalizer
from session_broker.core.exceptions import (
    ErrorKind,
    PersistenceError,
    ProviderError,
)
from session_broker.core.results import Failure, Success
from session_broker.services.profile_service import ProfileService
from session_broker.services.session_service import SessionService
from fakes import (
    FakeIdentityProvider,
    InMemoryProfileStore,
    make_profile,
    make_sign_in,
    make_user,
)

CREDENTIALS = {"email": "jane@acme.io", "password": "hunter22"}


class TestLogin:
    """Login behaviour."""

    async def test_login_with_remember_me(self, session_service, provider, profile_store):
        """Test remember-me login issues long-lived cookies and merges the profile."""
        provider.sign_in_result = make_sign_in()
        profile_store.records["jane@acme.io"] = make_profile()

        result = await session_service.login({**CREDENTIALS, "remember": True})

        assert isinstance(result, Success)
        assert result.message == "User signed in successfully."
        assert result.cookies.access.max_age == 86400
        assert result.cookies.refresh.max_age == 2592000
        assert result.token_expires_in == 86400000
        assert result.data.role == "ADMIN"
        assert result.data.fullname == "Jane Doe"
        assert result.data.id == "user-1"

    async def test_login_default_lifetimes(self, session_service, provider):
        """Test login without remember-me issues short-lived cookies."""
        provider.sign_in_result = make_sign_in()

        result = await session_service.login(CREDENTIALS)

        assert result.cookies.access.max_age == 900
        assert result.cookies.refresh.max_age == 604800
        assert result.token_expires_in == 900000

    async def test_login_without_profile_uses_defaults(self, session_service, provider):
        """Test a user with no profile row still signs in with default role."""
        provider.sign_in_result = make_sign_in()

        result = await session_service.login(CREDENTIALS)

        assert result.data.role == "USER"
        assert result.data.fullname == ""
        assert result.data.avatar is None

    async def test_invalid_payload_makes_no_provider_call(self, session_service, provider):
        """Test malformed input fails before the provider is contacted."""
        result = await session_service.login({"email": "not-an-email", "password": ""})

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorKind.VALIDATION
        assert result.error.status_code == 400
        paths = {error["path"] for error in result.error.errors}
        assert {"email", "password"} <= paths
        assert provider.calls == []

    async def test_non_boolean_remember_is_rejected(self, session_service, provider):
        """Test remember must be a real boolean."""
        result = await session_service.login({**CREDENTIALS, "remember": "yes"})

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorKind.VALIDATION
        assert provider.calls == []

    async def test_missing_body_is_invalid_input(self, session_service):
        """Test an absent body is reported as invalid input."""
        result = await session_service.login(None)

        assert isinstance(result, Failure)
        assert result.error.message == "Invalid input"

    async def test_missing_token_is_generation_failure(self, session_service, provider, profile_store):
        """Test a session without a refresh token yields no cookies."""
        provider.sign_in_result = make_sign_in(refresh_token=None)

        result = await session_service.login(CREDENTIALS)

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorKind.TOKEN_GENERATION
        assert result.error.status_code == 500
        assert result.error.message == "Token generation failed"
        assert profile_store.calls == []

    async def test_provider_error_is_normalized(self, session_service, provider):
        """Test rejected credentials come back with the user-facing message."""
        provider.errors["sign_in"] = ProviderError("Invalid login credentials", status_code=400)

        result = await session_service.login(CREDENTIALS)

        assert isinstance(result, Failure)
        assert result.context == "signin"
        assert result.error.kind == ErrorKind.PROVIDER
        assert result.error.status_code == 400
        assert result.error.message == "Invalid email or password. Please try again."

    async def test_provider_error_without_status_defaults_to_401(self, session_service, provider):
        """Test provider errors with no status are reported as 401."""
        provider.errors["sign_in"] = ProviderError("Too many requests")

        result = await session_service.login(CREDENTIALS)

        assert result.error.status_code == 401
        assert result.error.message == "Too many login attempts. Please wait a moment and try again."


class TestRefresh:
    """Token refresh behaviour."""

    async def test_missing_refresh_token_makes_no_provider_call(self, session_service, provider):
        """Test refresh without a token fails with 401 and no provider call."""
        result = await session_service.refresh_token(None)

        assert isinstance(result, Failure)
        assert result.error.status_code == 401
        assert result.error.message == "Unauthorized"
        assert provider.calls == []

    async def test_refresh_issues_new_pair(self, session_service, provider):
        """Test a valid refresh token rotates both cookies."""
        provider.refresh_result = make_sign_in("access-2", "refresh-2")

        result = await session_service.refresh_token("refresh-1", remember=True)

        assert isinstance(result, Success)
        assert result.message == "Tokens are refreshed successfully"
        assert result.data is None
        assert result.cookies.access.value == "access-2"
        assert result.cookies.refresh.value == "refresh-2"
        assert result.cookies.refresh.max_age == 2592000
        assert result.cookies.access.http_only is True

    async def test_refresh_without_new_access_token(self, session_service, provider):
        """Test a provider session missing a token is a generation failure."""
        provider.refresh_result = make_sign_in(access_token=None)

        result = await session_service.refresh_token("refresh-1")

        assert result.error.kind == ErrorKind.TOKEN_GENERATION

    async def test_rejected_refresh_token(self, session_service, provider):
        """Test provider rejection is normalized."""
        provider.errors["refresh_session"] = ProviderError("Invalid Refresh Token: Already Used", status_code=400)

        result = await session_service.refresh_token("refresh-1")

        assert result.context == "refreshToken"
        assert result.error.status_code == 400
        assert result.error.message == "Invalid Refresh Token: Already Used"


class TestRegister:
    """Registration behaviour."""

    PAYLOAD = {"email": "new@acme.io", "password": "hunter22", "fullname": "  New User "}

    async def test_register_creates_profile(self, session_service, provider, profile_store):
        """Test registration creates the account and a USER profile."""
        result = await session_service.register(self.PAYLOAD)

        assert isinstance(result, Success)
        assert result.status_code == 201
        assert result.message == "Registration successful"
        assert result.data.role == "USER"
        assert result.data.fullname == "New User"
        assert result.data.user_id == provider.signed_up[0].id
        assert "new@acme.io" in profile_store.records

    async def test_short_password_is_rejected(self, session_service, provider):
        """Test passwords below six characters fail validation."""
        result = await session_service.register({**self.PAYLOAD, "password": "abc"})

        assert result.error.kind == ErrorKind.VALIDATION
        assert provider.calls == []

    async def test_blank_fullname_is_rejected(self, session_service, provider):
        """Test whitespace-only names fail validation."""
        result = await session_service.register({**self.PAYLOAD, "fullname": "   "})

        assert result.error.kind == ErrorKind.VALIDATION
        assert provider.calls == []

    async def test_existing_user_is_normalized(self, session_service, provider, profile_store):
        """Test provider duplicate errors are mapped and no profile is written."""
        provider.errors["sign_up"] = ProviderError("User already registered", status_code=422)

        result = await session_service.register(self.PAYLOAD)

        assert result.error.status_code == 422
        assert result.error.message == "This user is already registered. Try logging in instead."
        assert profile_store.calls == []

    async def test_profile_failure_deletes_provider_account(self, session_service, provider, profile_store):
        """Test a failed profile insert removes the provider account again."""
        profile_store.insert_error = PersistenceError("Could not create user profile")

        result = await session_service.register(self.PAYLOAD)

        assert isinstance(result, Failure)
        assert result.error.kind == ErrorKind.PERSISTENCE
        assert result.error.status_code == 500
        assert provider.deleted_users == [provider.signed_up[0].id]

    async def test_profile_conflict_keeps_provider_account(self, session_service, provider, profile_store):
        """Test an existing profile leaves the provider account untouched."""
        profile_store.records["jane@acme.io"] = make_profile()
        profile_store.insert_error = PersistenceError(
            "A profile already exists for this account", status_code=409
        )

        result = await session_service.register({**self.PAYLOAD, "email": "jane@acme.io"})

        assert isinstance(result, Failure)
        assert result.error.status_code == 409
        assert provider.deleted_users == []
        assert "delete_user" not in provider.calls
        assert "jane@acme.io" in profile_store.records

    async def test_compensation_can_be_disabled(self, provider, profile_service, profile_store):
        """Test disabled compensation leaves the provider account in place."""
        service = SessionService(
            provider=provider,
            profiles=profile_service,
            transport=TokenTransport(),
            normalizer=ErrorNormalizer(),
            compensate_failed_registration=False,
        )
        profile_store.insert_error = PersistenceError()

        result = await service.register(self.PAYLOAD)

        assert result.error.kind == ErrorKind.PERSISTENCE
        assert provider.deleted_users == []

    async def test_failed_compensation_still_reports_persistence(self, session_service, provider, profile_store):
        """Test a failed rollback does not mask the original error."""
        profile_store.insert_error = PersistenceError()
        provider.errors["delete_user"] = ProviderError("User not allowed", status_code=403)

        result = await session_service.register(self.PAYLOAD)

        assert result.error.kind == ErrorKind.PERSISTENCE
        assert result.error.message == "Profile storage failed"


class TestAccountFlows:
    """Logout, password and verification flows."""

    async def test_logout_clears_cookies(self, session_service, provider):
        """Test logout succeeds and requests cookie removal."""
        result = await session_service.logout("access-1")

        assert isinstance(result, Success)
        assert result.message == "Logout successful"
        assert result.clear_cookies is True
        assert provider.calls == ["sign_out"]

    async def test_logout_failure_still_clears_cookies(self, session_service, provider):
        """Test a failed revocation is reported but the cookies are removed."""
        provider.errors["sign_out"] = ProviderError("Service unavailable", status_code=503)

        result = await session_service.logout("access-1")

        assert isinstance(result, Failure)
        assert result.context == "signout"
        assert result.error.status_code == 503
        assert result.clear_cookies is True

    async def test_logout_without_session(self, session_service):
        """Test logout is safe without a token."""
        result = await session_service.logout(None)

        assert isinstance(result, Success)
        assert result.clear_cookies is True

    async def test_reset_password(self, session_service, provider):
        """Test the new password is sent for the signed-in caller."""
        result = await session_service.request_password_reset("access-1", {"newPassword": "s3cret!!"})

        assert result.message == "Password reset successful"
        assert provider.password_updates == [("access-1", "s3cret!!")]

    async def test_reset_password_requires_new_password(self, session_service, provider):
        """Test a missing new password is invalid input."""
        result = await session_service.request_password_reset("access-1", {})

        assert result.error.status_code == 400
        assert result.error.message == "New password is required"
        assert provider.calls == []

    async def test_reset_password_requires_session(self, session_service, provider):
        """Test reset without a token is unauthorized."""
        result = await session_service.request_password_reset(None, {"newPassword": "s3cret!!"})

        assert result.error.status_code == 401
        assert provider.calls == []

    async def test_forgot_password_sends_recovery(self, session_service, provider):
        """Test recovery email uses the configured redirect."""
        result = await session_service.request_password_recovery({"email": "jane@acme.io"})

        assert result.message == "Password recovery email sent"
        assert provider.recovery_emails == [("jane@acme.io", "http://localhost:3000/reset-password")]

    async def test_forgot_password_requires_email(self, session_service, provider):
        """Test recovery without email is invalid input."""
        result = await session_service.request_password_recovery({"email": " "})

        assert result.error.message == "Email is required"
        assert result.context == "forgotPassword"
        assert provider.calls == []

    async def test_verify_email(self, session_service, provider):
        """Test verification is started for the current session."""
        result = await session_service.verify_email("access-1")

        assert result.message == "Email verification successful"
        assert provider.calls == ["verify_email"]

    async def test_verify_email_requires_session(self, session_service):
        """Test verification without a token is unauthorized."""
        result = await session_service.verify_email(None)

        assert result.error.status_code == 401


class TestFetchProfile:
    """Profile fetch behaviour."""

    async def test_fetch_profile_merges_records(self, session_service, provider, profile_store):
        """Test the canonical view merges provider and profile data."""
        provider.users_by_token["access-1"] = make_user(verified=False)
        profile_store.records["jane@acme.io"] = make_profile()

        result = await session_service.fetch_profile("access-1")

        assert result.message == "User profile fetched successfully"
        assert result.data.role == "ADMIN"
        assert result.data.is_verified is False

    async def test_unknown_token_is_unauthorized(self, session_service):
        """Test a token that resolves to no user is rejected."""
        result = await session_service.fetch_profile("stale")

        assert result.error.status_code == 401
        assert result.context == "profile"


async def test_each_collaborator_called_once():
    """Test a login makes exactly one provider and one store call."""
    provider = FakeIdentityProvider()
    provider.sign_in_result = make_sign_in()
    store = InMemoryProfileStore()

    service = SessionService(provider, ProfileService(store), TokenTransport(), ErrorNormalizer())
    await service.login(CREDENTIALS)

    assert provider.calls == ["sign_in"]
    assert store.calls == ["find_by_email"]
