from datetime import datetime, timezone
from typing import Optional, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, or_
from loguru import logger

from taskhub.db.models import RefreshToken, BlacklistedToken
from taskhub.auth.security import Hasher


async def create_refresh_token_db(
        db: AsyncSession,
        user_id: int,
        token: str,
        expires_at: datetime
) -> RefreshToken:
    """
    Stores the digest of a refresh token.
    """
    try:
        record = RefreshToken(
            user_id=user_id,
            token_hash=Hasher.hash_refresh_token(token),
            expires_at=expires_at
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)
        logger.info(f"Refresh token created for user {user_id}")
        return record
    except Exception as e:
        logger.error(f"Failed to create refresh token for user {user_id}: {e}")
        await db.rollback()
        raise


async def get_refresh_token_by_hash(db: AsyncSession, token_hash: str) -> Optional[RefreshToken]:
    """
    Returns the live (unrevoked, unexpired) refresh token with this digest.
    """
    result = await db.execute(
        select(RefreshToken).filter(
            and_(
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > datetime.now(timezone.utc)
            )
        )
    )
    return result.scalars().first()


async def revoke_refresh_token_db(db: AsyncSession, record: RefreshToken) -> RefreshToken:
    try:
        record.revoked_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(record)
        logger.info(f"Refresh token revoked for user {record.user_id}")
        return record
    except Exception as e:
        logger.error(f"Failed to revoke refresh token: {e}")
        await db.rollback()
        raise


async def add_to_blacklist(db: AsyncSession, jti: str, expires_at: datetime) -> BlacklistedToken:
    """
    Adds an access token id to the blacklist.
    """
    try:
        entry = BlacklistedToken(jti=jti, expires_at=expires_at)
        db.add(entry)
        await db.commit()
        await db.refresh(entry)
        logger.info(f"Token blacklisted: {jti}")
        return entry
    except Exception as e:
        logger.error(f"Failed to blacklist token {jti}: {e}")
        await db.rollback()
        raise


async def is_jti_blacklisted(db: AsyncSession, jti: str) -> bool:
    result = await db.execute(
        select(BlacklistedToken.id).filter(
            and_(
                BlacklistedToken.jti == jti,
                BlacklistedToken.expires_at > datetime.now(timezone.utc)
            )
        )
    )
    return result.first() is not None


async def cleanup_expired_tokens(db: AsyncSession) -> Dict[str, int]:
    """
    Removes expired or revoked refresh tokens and expired blacklist entries.
    Returns statistics of cleaned-up rows.
    """
    now = datetime.now(timezone.utc)
    try:
        refresh = await db.execute(
            delete(RefreshToken).where(
                or_(RefreshToken.expires_at <= now, RefreshToken.revoked_at.isnot(None))
            )
        )
        blacklisted = await db.execute(
            delete(BlacklistedToken).where(BlacklistedToken.expires_at <= now)
        )
        await db.commit()
    except Exception as e:
        logger.error(f"Token cleanup failed: {e}")
        await db.rollback()
        raise

    stats = {
        "refresh_tokens_deleted": refresh.rowcount or 0,
        "blacklisted_tokens_deleted": blacklisted.rowcount or 0,
    }
    stats["total_deleted"] = stats["refresh_tokens_deleted"] + stats["blacklisted_tokens_deleted"]
    logger.info(f"Token cleanup completed: {stats}")
    return stats
