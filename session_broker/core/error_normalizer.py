"""Translate identity provider errors into stable, user-facing messages."""

from dataclasses import dataclass

import structlog

from session_broker.core.exceptions import ProviderError

logger = structlog.get_logger(__name__)

DEFAULT_STATUS_CODE = 401
FALLBACK_MESSAGE = "Something went wrong. Please try again."


@dataclass(frozen=True)
class NormalizationRule:
    """Substrings (lower-case) that select a user-facing message."""

    name: str
    needles: tuple[str, ...]
    message: str

    def matches(self, raw: str) -> bool:
        return any(needle in raw for needle in self.needles)


# Order matters: the first matching rule wins.
RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule(
        "bad_credentials",
        ("unauthorized", "invalid login credentials"),
        "Invalid email or password. Please try again.",
    ),
    NormalizationRule(
        "user_not_found",
        ("user not found",),
        "No account found with this email.",
    ),
    NormalizationRule(
        "user_already_registered",
        ("user already registered",),
        "This user is already registered. Try logging in instead.",
    ),
    NormalizationRule(
        "email_already_registered",
        ("email already registered", "email already exists"),
        "This email is already registered. Try logging in instead.",
    ),
    NormalizationRule(
        "invalid_email",
        ("invalid email",),
        "Please enter a valid email address.",
    ),
    NormalizationRule(
        "weak_password",
        ("password too short", "password should be at least"),
        "Password must be at least 6 characters long.",
    ),
    NormalizationRule(
        "rate_limited",
        ("too many requests", "rate limit"),
        "Too many login attempts. Please wait a moment and try again.",
    ),
)


@dataclass(frozen=True)
class NormalizedError:
    """User-safe message plus the status code to respond with."""

    message: str
    status_code: int
    rule: str | None = None


def normalize_message(message: str | None) -> tuple[str, str | None]:
    """
    Map a raw provider message to a user-facing one.

    Args:
        message: Raw provider message, possibly empty

    Returns:
        Tuple of (message, matched rule name or None)
    """
    raw = (message or "").lower()
    for rule in RULES:
        if rule.matches(raw):
            return rule.message, rule.name
    return message or FALLBACK_MESSAGE, None


class ErrorNormalizer:
    """Classify provider failures. Raw errors are only logged in development."""

    def __init__(self, log_raw_errors: bool = False):
        self.log_raw_errors = log_raw_errors

    def classify(self, error: ProviderError) -> NormalizedError:
        """
        Classify a provider error.

        Args:
            error: Error raised by the identity provider adapter

        Returns:
            Normalized message and status code (provider status, else 401)
        """
        if self.log_raw_errors:
            logger.error(
                "provider_error",
                message=error.message,
                status=error.provider_status,
                code=error.code,
            )

        message, rule = normalize_message(error.message)
        status_code = error.provider_status or DEFAULT_STATUS_CODE
        return NormalizedError(message=message, status_code=status_code, rule=rule)
