"""CLI commands for management tasks."""

import asyncio
import sys

from sqlalchemy import select

from school_api.core.config import settings
from school_api.core.database import async_session_maker
from school_api.core.logging import setup_logging
from school_api.core.permissions import Role
from school_api.core.security import get_password_hash
from school_api.models.user import User
from school_api.services.counters import reconcile_counters


async def create_superadmin(username: str, email: str, password: str) -> None:
    """Create the initial superadmin user."""
    async with async_session_maker() as db:
        # Check if any superadmin exists
        result = await db.execute(select(User).where(User.role == Role.SUPERADMIN).limit(1))
        existing = result.scalar_one_or_none()

        if existing:
            print("Error: A superadmin already exists!")
            print(f"Superadmin: {existing.username} ({existing.email})")
            sys.exit(1)

        # Check if email or username is taken
        result = await db.execute(
            select(User).where((User.email == email) | (User.username == username))
        )
        if result.scalar_one_or_none():
            print(f"Error: {email} or {username} is already registered!")
            sys.exit(1)

        superadmin = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            role=Role.SUPERADMIN,
            school_id=None,
        )

        db.add(superadmin)
        await db.commit()
        await db.refresh(superadmin)

        print("✓ Superadmin created successfully!")
        print(f"  ID: {superadmin.id}")
        print(f"  Username: {superadmin.username}")
        print(f"  Email: {superadmin.email}")


async def reconcile() -> None:
    """Recompute school and classroom counters from active students."""
    async with async_session_maker() as db:
        corrected = await reconcile_counters(db)
    print(f"✓ Counters reconciled, {corrected} row(s) corrected")


def main() -> None:
    """CLI entry point."""
    setup_logging(settings)

    if len(sys.argv) < 2:
        print("Usage: python -m school_api.cli <command>")
        print("Commands:")
        print("  create-superadmin <username> <email> <password>")
        print("  reconcile-counters")
        sys.exit(1)

    command = sys.argv[1]

    if command == "create-superadmin":
        if len(sys.argv) != 5:
            print("Usage: python -m school_api.cli create-superadmin <username> <email> <password>")
            sys.exit(1)

        _, _, username, email, password = sys.argv
        asyncio.run(create_superadmin(username, email, password))
    elif command == "reconcile-counters":
        asyncio.run(reconcile())
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
