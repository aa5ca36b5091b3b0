#!/usr/bin/env python3
"""
CLI script to create a platform admin.

Admins receive stale-inquiry escalations and manage system settings.

Usage (interactive):
    python scripts/create_admin.py

Usage (non-interactive):
    python scripts/create_admin.py --email admin@example.com --name "Jane Doe"
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.database import async_session_factory, close_db
from app.models import User
from app.models.user import Role


async def create_admin(email: str | None = None, name: str | None = None) -> bool:
    """Create an admin user."""
    print("\n" + "=" * 50)
    print("Marketplace - Admin Setup")
    print("=" * 50 + "\n")

    # Get email
    if not email:
        while True:
            email = input("Enter email address: ").strip().lower()
            if "@" in email and "." in email:
                break
            print("Please enter a valid email address.")
    else:
        email = email.strip().lower()
        if "@" not in email or "." not in email:
            print("Invalid email address.")
            return False

    # Get name
    if not name:
        name = input("Enter name: ").strip() or "Platform Admin"

    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        if result.scalar_one_or_none():
            print(f"\nUser with email {email} already exists.")
            return False

        user = User(email=email, name=name, role=Role.ADMIN.value, is_active=True)
        session.add(user)
        await session.commit()
        await session.refresh(user)

        print("\n" + "=" * 50)
        print("Admin Created Successfully!")
        print("=" * 50)
        print(f"  Email: {user.email}")
        print(f"  Name: {user.name}")
        print(f"  ID: {user.id}")
        print("=" * 50 + "\n")

        return True


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create a marketplace admin user")
    parser.add_argument("--email", "-e", help="Admin email address")
    parser.add_argument("--name", "-n", help="Display name")

    args = parser.parse_args()

    try:
        success = await create_admin(email=args.email, name=args.name)
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
