"""
Database seeding script for development.

Creates one user per role plus a small pool of drivers and vehicles,
then prints a bearer token for each user. Run after the database is up.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from motorpool.app.db.session import AsyncSessionLocal, engine, Base
from motorpool.app.core.jwt import token_for_user
from motorpool.app.models.user import User
from motorpool.app.models.driver import Driver
from motorpool.app.models.vehicle import Vehicle
from motorpool.app.models.enums import UserRole
from sqlalchemy import select

# Registers the remaining tables with Base
import motorpool.app.main  # noqa: F401

SEED_USERS = [
    dict(username="superadmin", email="superadmin@motorpool.local", full_name="Pool Supervisor",
         unit="Transport", role=UserRole.SUPERADMIN),
    dict(username="admin", email="admin@motorpool.local", full_name="Pool Admin",
         unit="Transport", role=UserRole.ADMIN),
    dict(username="requester", email="requester@motorpool.local", full_name="Aminah Yusof",
         unit="Finance", role=UserRole.USER),
]

SEED_DRIVERS = [
    dict(name="Ali Hassan", phone="012-3456789"),
    dict(name="Ravi Kumar", phone="013-9876543"),
]

SEED_VEHICLES = [
    dict(model="Toyota Hilux", plate_number="WXY 1234"),
    dict(model="Proton Exora", plate_number="VBC 5678"),
]


async def seed():
    """
    Seed users, drivers and vehicles.
    
    Skips everything if the superadmin already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")
        
        result = await db.execute(select(User).where(User.username == "superadmin"))
        if result.scalar_one_or_none():
            print("ℹ️  Seed data already present, skipping")
            return
        
        users = [User(**fields) for fields in SEED_USERS]
        db.add_all(users)
        db.add_all(Driver(**fields) for fields in SEED_DRIVERS)
        db.add_all(Vehicle(**fields) for fields in SEED_VEHICLES)
        await db.commit()
        
        print(f"✅ Created {len(SEED_USERS)} users, {len(SEED_DRIVERS)} drivers, {len(SEED_VEHICLES)} vehicles")
        print("\nBearer tokens:")
        for user in users:
            print(f"  - {user.role.value:<10} {user.username}: {token_for_user(user)}")


if __name__ == "__main__":
    asyncio.run(seed())
