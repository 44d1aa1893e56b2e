"""
Database seeding script for the first admin account.

Creates the ADMIN user (and the default checklist template when none exists)
so the back office can log in and register drivers and vehicles.
Run this script after the database is reachable but before first use.

Usage:
    python scripts/seed_admin.py --email admin@fleet.example --password change-me
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetcheck.app.core.exceptions import DuplicateResourceError, ValidationFailedError
from fleetcheck.app.db.session import AsyncSessionLocal, engine, Base
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.services.templates import ensure_default_template
from fleetcheck.app.services.users import create_user

# Import models to ensure they are registered with Base
from fleetcheck.app.models import user, audit_log, vehicle, assignment, checklist  # noqa: F401


async def seed_admin(email: str, password: str) -> int:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting admin seeding...")

        try:
            admin = await create_user(db, email, password, UserRole.ADMIN)
        except DuplicateResourceError:
            print(f"ℹ️  User {email} already exists, skipping")
        except ValidationFailedError as exc:
            print(f"❌ {exc.message}")
            return 1
        else:
            print(f"✅ Created ADMIN user {admin.email} (id {admin.id})")

        template = await ensure_default_template(db)
        if template:
            print(f"✅ Created checklist template '{template.name}' ({len(template.items)} items)")

    await engine.dispose()
    print("\n🎉 Seeding completed")
    print("Note: drivers are created by an admin via POST /v1/admin/users")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the first FleetCheck admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()
    return asyncio.run(seed_admin(args.email, args.password))


if __name__ == "__main__":
    sys.exit(main())
