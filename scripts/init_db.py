"""Script to initialize the database without running migrations."""

import asyncio
import sys

from practice_scheduler.database import engine
from practice_scheduler.models import metadata


async def init_db() -> None:
    """
    Create the patients and appointments tables.

    The overlap constraints are attached by DDL events on the metadata:
    exclusion constraints on PostgreSQL, triggers on SQLite.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized ({engine.dialect.name})")


if __name__ == "__main__":
    try:
        asyncio.run(init_db())
    except Exception as e:
        print(f"✗ Database initialization failed: {e}", file=sys.stderr)
        sys.exit(1)
