"""Profile datastore backed by the profiles table."""

from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from session_broker.core.exceptions import PersistenceError
from session_broker.models.profiles import profiles
from session_broker.schemas.users import ProfileRecord

logger = get_logger(__name__)


class ProfileStore(Protocol):
    """Record store for profiles, keyed by email.

    Implementations raise ``PersistenceError`` on storage failures.
    """

    async def find_by_email(self, email: str) -> ProfileRecord | None: ...

    async def insert(self, record: ProfileRecord) -> ProfileRecord: ...

    async def update_fullname(self, email: str, fullname: str) -> ProfileRecord | None: ...


class SqlProfileStore:
    """Profile store using SQLAlchemy Core on an async session."""

    def __init__(self, db: AsyncSession):
        """Initialize store with a database session."""
        self.db = db

    async def find_by_email(self, email: str) -> ProfileRecord | None:
        """Get profile by email."""
        query = select(profiles).where(profiles.c.email == email)
        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error("profile_lookup_failed", email=email, error=str(e))
            raise PersistenceError("Could not load user profile") from e

        row = result.mappings().first()
        return ProfileRecord.model_validate(dict(row)) if row else None

    async def insert(self, record: ProfileRecord) -> ProfileRecord:
        """
        Insert a new profile.

        Args:
            record: Profile to store; missing timestamps use the database default

        Returns:
            The stored profile

        Raises:
            PersistenceError: 409 if a profile already exists for the email
                or user, 500 on any other storage failure
        """
        values = record.model_dump(exclude_none=True)
        query = profiles.insert().values(**values).returning(profiles)

        try:
            result = await self.db.execute(query)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("profile_insert_conflict", email=record.email)
            raise PersistenceError("A profile already exists for this account", status_code=409) from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("profile_insert_failed", email=record.email, error=str(e))
            raise PersistenceError("Could not create user profile") from e

        row = result.mappings().first()
        if not row:
            raise PersistenceError("Could not create user profile")
        return ProfileRecord.model_validate(dict(row))

    async def update_fullname(self, email: str, fullname: str) -> ProfileRecord | None:
        """Update the profile's fullname. Returns None if no profile matches."""
        query = (
            update(profiles)
            .where(profiles.c.email == email)
            .values(fullname=fullname, updated_at=datetime.now(UTC))
            .returning(profiles)
        )

        try:
            result = await self.db.execute(query)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("profile_update_failed", email=email, error=str(e))
            raise PersistenceError("Could not update user profile") from e

        row = result.mappings().first()
        return ProfileRecord.model_validate(dict(row)) if row else None
