"""
Create or promote an admin user for the TaskHub API
"""
import asyncio
import sys
from pathlib import Path
import getpass

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from taskhub.db.database import AsyncSessionLocal, init_db
from taskhub.db.crud.user import create_user_db, get_user_by_email, update_user_db
from taskhub.db.models import UserRole
from taskhub.auth.security import Hasher
from loguru import logger


async def create_admin_user():
    """Create an admin interactively, or promote an existing account"""
    logger.info("Creating admin user for TaskHub API...")

    email = input("Enter admin email: ").strip()
    if not email:
        logger.error("Email is required")
        return

    await init_db()

    async with AsyncSessionLocal() as db:
        existing_user = await get_user_by_email(db, email)
        if existing_user:
            if existing_user.is_admin:
                logger.warning(f"User {email} is already an admin")
                return
            await update_user_db(db, existing_user, {"role": UserRole.ADMIN})
            logger.info(f"Promoted {email} to admin")
            return

        name = input("Enter admin name: ").strip() or email.split("@")[0]

        password = getpass.getpass("Enter admin password: ")
        if not password:
            logger.error("Password is required")
            return

        password_confirm = getpass.getpass("Confirm password: ")
        if password != password_confirm:
            logger.error("Passwords don't match")
            return

        try:
            user = await create_user_db(db, {
                "name": name,
                "email": email,
                "hashed_password": Hasher.get_password_hash(password),
                "role": UserRole.ADMIN,
                "is_active": True
            })
            logger.info(f"Admin user created: {user.email} (ID: {user.uuid})")
        except Exception as e:
            logger.error(f"Failed to create admin user: {e}")
            raise

if __name__ == "__main__":
    asyncio.run(create_admin_user())
