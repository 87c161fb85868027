"""User schemas for profile records and response views."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ROLE = "USER"


class ProfileRecord(BaseModel):
    """Local profile record as stored in the profiles table."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    fullname: str = ""
    role: str = DEFAULT_ROLE
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CanonicalUser(BaseModel):
    """User view returned to callers: provider identity merged with the profile."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    email: str | None = None
    role: str = DEFAULT_ROLE
    fullname: str = ""
    avatar: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    is_verified: bool = Field(default=False, serialization_alias="isUserVerified")


class AuthenticatedUser(BaseModel):
    """Caller identity established by the authentication gate."""

    id: str
    email: str
