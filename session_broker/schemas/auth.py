"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field, StrictBool, field_validator


class LoginRequest(BaseModel):
    """Password sign-in request."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    remember: StrictBool = False


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    fullname: str = Field(..., min_length=1, max_length=120)

    @field_validator("fullname")
    @classmethod
    def strip_fullname(cls, value: str) -> str:
        """Reject whitespace-only names and store the trimmed value."""
        stripped = value.strip()
        if not stripped:
            raise ValueError("Fullname must not be blank")
        return stripped
