"""Session error taxonomy.

Every failure a lifecycle operation can produce is one of the tagged
subclasses below. Operations return them wrapped in a ``Failure`` result;
collaborator adapters raise them.
"""

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Tag distinguishing the error families."""

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    TOKEN_GENERATION = "token_generation"
    PROVIDER = "provider"
    PERSISTENCE = "persistence"


class SessionError(Exception):
    """Base session broker error."""

    kind: ErrorKind

    def __init__(self, message: str, status_code: int = 500):
        """Initialize error with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(SessionError):
    """Malformed or missing input, detected before any collaborator call."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Invalid input",
        errors: list[dict[str, Any]] | None = None,
    ):
        """Initialize with 400 status code and optional per-field errors."""
        super().__init__(message, status_code=400)
        self.errors = errors or []


class AuthenticationError(SessionError):
    """Missing or invalid token, or a caller that cannot be attributed."""

    kind = ErrorKind.AUTHENTICATION

    def __init__(self, message: str = "Unauthorized", status_code: int = 401):
        """Initialize with 401 (or 403) status code."""
        super().__init__(message, status_code=status_code)


class TokenGenerationFailure(SessionError):
    """The provider reported success but omitted a required token."""

    kind = ErrorKind.TOKEN_GENERATION

    def __init__(self, message: str = "Token generation failed"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)


class ProviderError(SessionError):
    """Failure raised by the identity provider."""

    kind = ErrorKind.PROVIDER

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        """Keep the provider status when present; ``None`` means unknown."""
        super().__init__(message, status_code=status_code or 500)
        self.provider_status = status_code
        self.code = code


class PersistenceError(SessionError):
    """Failure raised by the profile datastore."""

    kind = ErrorKind.PERSISTENCE

    def __init__(self, message: str = "Profile storage failed", status_code: int = 500):
        """Initialize with 500 (or 409 on conflicts) status code."""
        super().__init__(message, status_code=status_code)
