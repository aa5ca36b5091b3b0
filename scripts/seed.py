#!/usr/bin/env python3
"""
Development seed data script.

Seeds the system settings with their initial values and, unless
--settings-only is given, creates test data for development:
- 1 admin
- 1 agent with a promoted listing
- 2 promoters, the second one referred by the first

Usage:
    python scripts/seed.py
    python scripts/seed.py --settings-only
"""

import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.config import settings
from app.database import async_session_factory, close_db, get_db_context, init_db
from app.models import Listing, ListingStatus, ListingType, User
from app.models.user import Role
from app.services.engine import build_engine
from app.services.listing_service import generate_slug

ADMIN_EMAIL = "admin@marketplace.test"


async def seed_database(settings_only: bool = False) -> bool:
    """Seed the database with settings and optional test data."""
    print("\n" + "=" * 50)
    print(f"{settings.app_name} - Seeding Development Data")
    print("=" * 50 + "\n")

    if settings.is_sqlite:
        # No migration step for local SQLite databases
        await init_db()

    engine = build_engine(async_session_factory)

    print("Seeding system settings...")
    inserted = await engine.settings_store.seed_defaults()
    print(f"  Inserted: {', '.join(inserted) if inserted else 'none (already present)'}")

    if settings_only:
        return True

    async with get_db_context() as session:
        result = await session.execute(select(User).where(User.email == ADMIN_EMAIL))
        if result.scalar_one_or_none():
            print("\nSeed users already exist (admin@marketplace.test found). Nothing to do.")
            return True

        print("Creating users...")
        admin = User(email=ADMIN_EMAIL, name="Platform Admin", role=Role.ADMIN.value)
        agent = User(email="agent@marketplace.test", name="Amina Wanjiru", role=Role.AGENT.value)
        recruiter = User(email="recruiter@marketplace.test", name="Brian Otieno", role=Role.PROMOTER.value)
        session.add_all([admin, agent, recruiter])
        await session.flush()

        promoter = User(
            email="promoter@marketplace.test",
            name="Cynthia Mwangi",
            role=Role.PROMOTER.value,
            referrer_id=recruiter.id,
        )
        session.add(promoter)

    print("Creating listing...")
    listing_number = await engine.allocator.next()
    async with get_db_context() as session:
        listing = Listing(
            listing_number=listing_number,
            slug=generate_slug("Apartment", ListingType.RENTAL.value, "Westlands", listing_number),
            title="2 Bedroom Apartment in Westlands",
            listing_type=ListingType.RENTAL.value,
            property_type="Apartment",
            location="Westlands",
            price=Decimal("85000"),
            status=ListingStatus.ACTIVE.value,
            created_by_id=agent.id,
            has_promoter=True,
            promoter_id=promoter.id,
            agent_commission_pct=Decimal("60"),
            promoter_commission_pct=Decimal("20"),
            company_commission_pct=Decimal("20"),
        )
        session.add(listing)

    print("\n" + "=" * 50)
    print("Seed Data Created Successfully!")
    print("=" * 50)
    print("\nUsers (send X-User-Id / X-User-Role headers):")
    print(f"  Admin: {admin.id} ({admin.email})")
    print(f"  Agent: {agent.id} ({agent.email})")
    print(f"  Recruiter: {recruiter.id} ({recruiter.email})")
    print(f"  Promoter: {promoter.id} ({promoter.email}, referred by recruiter)")
    print("\nListing:")
    print(f"  #{listing.listing_number} {listing.slug}")
    print("=" * 50 + "\n")

    return True


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed development data")
    parser.add_argument("--settings-only", action="store_true", help="Only seed system settings")
    args = parser.parse_args()

    try:
        success = await seed_database(settings_only=args.settings_only)
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\nAborted by user.")
        sys.exit(1)
    except Exception as e:
        print(f"\nError: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
