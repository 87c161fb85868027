"""Script to initialize the database without running migrations."""

import asyncio

from sqlalchemy import text

from session_broker.database import engine
from session_broker.models import metadata


async def init_db() -> None:
    """Create the profiles table if it does not exist."""
    async with engine.begin() as conn:
        # gen_random_uuid() for profile IDs
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
