"""
Database connectivity and row-count check
"""
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from taskhub.db.database import AsyncSessionLocal, ping_db
from taskhub.db.models import User, Task, TaskTag, RefreshToken, BlacklistedToken, UserRole
from taskhub.db.crud import get_user_count
from sqlalchemy import select, func
from loguru import logger


async def check_database():
    logger.info("Checking database connectivity...")

    try:
        async with AsyncSessionLocal() as db:
            await ping_db(db)
            logger.info("Database connection successful")

            counts = {}
            for label, model in (
                    ("Users", User),
                    ("Tasks", Task),
                    ("Task tags", TaskTag),
                    ("Refresh tokens", RefreshToken),
                    ("Blacklisted tokens", BlacklistedToken),
            ):
                counts[label] = await db.scalar(select(func.count()).select_from(model))
            admins = await get_user_count(db, role=UserRole.ADMIN)

            logger.info("Database statistics:")
            for label, count in counts.items():
                logger.info(f"   {label}: {count}")
            logger.info(f"   Admins: {admins}")
            if not admins:
                logger.warning("No admin account exists; run scripts/create_admin_user.py")

    except Exception as e:
        logger.error(f"Database check failed: {e}")
        raise

if __name__ == "__main__":
    asyncio.run(check_database())
