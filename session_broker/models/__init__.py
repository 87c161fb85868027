"""Database models."""

from session_broker.models.profiles import metadata, profiles

__all__ = [
    "metadata",
    "profiles",
]
