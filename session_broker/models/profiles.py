"""Profile model definition using SQLAlchemy Core."""

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

metadata = MetaData()

profiles = Table(
    "profiles",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    # Identity provider user ID
    Column("user_id", Text, nullable=False, unique=True, index=True),
    # Join key with the provider user record
    Column("email", Text, nullable=False, unique=True, index=True),
    # Application fields (the identity provider does NOT handle these)
    Column("fullname", Text, nullable=False, server_default=text("''")),
    Column("role", Text, nullable=False, server_default=text("'USER'")),
    Column("avatar", Text),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)
