"""Profile resolution: merge provider identity with local profile data."""

from typing import Any

from structlog import get_logger

from session_broker.core.exceptions import (
    AuthenticationError,
    PersistenceError,
    ValidationError,
)
from session_broker.core.identity import ProviderUser
from session_broker.core.redis_client import ProfileCache
from session_broker.core.results import Failure, Result, Success
from session_broker.schemas.users import DEFAULT_ROLE, CanonicalUser, ProfileRecord
from session_broker.services.profile_store import ProfileStore

logger = get_logger(__name__)

UPDATE_FULLNAME_CONTEXT = "update-user-fullname"


class ProfileService:
    """Service for profile lookups, updates and the canonical user view."""

    def __init__(self, store: ProfileStore, cache: ProfileCache | None = None):
        """Initialize service with a profile store and optional cache."""
        self.store = store
        self.cache = cache

    @staticmethod
    def merge(provider_user: ProviderUser, profile: ProfileRecord | None) -> CanonicalUser:
        """
        Build the canonical user view.

        The profile decides role, fullname and avatar; the provider decides
        identity, timestamps and verification. A missing profile falls back
        to role USER, empty fullname and no avatar.

        Args:
            provider_user: Identity record from the provider
            profile: Local profile record, if one exists

        Returns:
            Canonical user view
        """
        return CanonicalUser(
            id=provider_user.id,
            email=provider_user.email or (profile.email if profile else None),
            role=(profile.role if profile and profile.role else DEFAULT_ROLE),
            fullname=(profile.fullname if profile and profile.fullname else ""),
            avatar=profile.avatar if profile else None,
            created_at=provider_user.created_at,
            updated_at=provider_user.updated_at,
            is_verified=provider_user.is_verified,
        )

    async def lookup(self, email: str) -> ProfileRecord | None:
        """Get profile by email, reading through the cache when enabled."""
        if self.cache:
            cached = self.cache.get(email)
            if cached:
                return cached

        record = await self.store.find_by_email(email)

        if record and self.cache:
            self.cache.set(record)

        return record

    async def resolve(self, provider_user: ProviderUser) -> CanonicalUser:
        """Look up the caller's profile and merge it with the provider record."""
        profile = await self.lookup(provider_user.email) if provider_user.email else None
        return self.merge(provider_user, profile)

    async def create(self, record: ProfileRecord) -> ProfileRecord:
        """Persist a new profile."""
        created = await self.store.insert(record)
        if self.cache:
            self.cache.invalidate(created.email)
        return created

    async def update_fullname(self, fullname: Any, email: str | None) -> Result[ProfileRecord]:
        """
        Update the caller's display name.

        Args:
            fullname: Requested name; must be a non-blank string
            email: Email of the authenticated caller

        Returns:
            Success with the updated record, or a Failure tagged as
            validation (400), authentication (403) or persistence
        """
        if not isinstance(fullname, str) or not fullname.strip():
            return Failure(ValidationError("Invalid fullname provided"), UPDATE_FULLNAME_CONTEXT)

        if not email:
            return Failure(
                AuthenticationError("User does not exist", status_code=403),
                UPDATE_FULLNAME_CONTEXT,
            )

        try:
            record = await self.store.update_fullname(email, fullname.strip())
        except PersistenceError as e:
            return Failure(e, UPDATE_FULLNAME_CONTEXT)

        if record is None:
            return Failure(
                PersistenceError("No profile found for this account", status_code=404),
                UPDATE_FULLNAME_CONTEXT,
            )

        if self.cache:
            self.cache.invalidate(email)

        logger.info("profile_fullname_updated", email=email)
        return Success(message="Fullname updated successfully", data=record)
