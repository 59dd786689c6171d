"""CLI commands for management tasks."""

import asyncio
import sys
from uuid import UUID

from sqlalchemy import select

from app.core.database import Base, async_session_maker, engine
from app.core.security import create_access_token
from app.models import User


async def create_tables() -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("✓ Tables created")


async def issue_token(user_id: str) -> None:
    """Print an access token for an existing, active user."""
    try:
        uuid_id = UUID(user_id)
    except ValueError:
        print(f"Error: {user_id} is not a valid UUID")
        sys.exit(1)

    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.id == uuid_id))
        user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        print(f"Error: no active user with id {user_id}")
        sys.exit(1)

    print(create_access_token(data={"sub": str(user.id)}))


def main() -> None:
    """CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m app.cli <command>")
        print("Commands:")
        print("  create-tables")
        print("  issue-token <user_id>")
        sys.exit(1)

    command = sys.argv[1]

    if command == "create-tables":
        asyncio.run(create_tables())
    elif command == "issue-token":
        if len(sys.argv) != 3:
            print("Usage: python -m app.cli issue-token <user_id>")
            sys.exit(1)
        asyncio.run(issue_token(sys.argv[2]))
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
