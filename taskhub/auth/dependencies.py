# taskhub/auth/dependencies.py
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError
from loguru import logger

from taskhub.db.database import get_db
from taskhub.auth.security import decode_token
from taskhub.db.crud.user import get_user_by_uuid
from taskhub.db.crud.token import is_jti_blacklisted
from taskhub.db.models import User
from taskhub.exceptions.auth import (
    AuthenticationError,
    TokenBlacklistedError,
    InactiveUserError,
    AdminRequiredError,
)
from taskhub.policy.identity import Identity

# OAuth2PasswordBearer for token extraction
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_current_user(
        db: AsyncSession = Depends(get_db),
        token: str = Depends(oauth2_scheme)
) -> User:
    """
    Resolve the bearer token to an active user
    """
    try:
        payload = decode_token(token)
    except JWTError:
        raise AuthenticationError()

    subject = payload.get("sub")
    jti = payload.get("jti")
    if not subject or not jti or payload.get("type") != "access":
        logger.warning("Invalid token payload - missing required fields")
        raise AuthenticationError()

    try:
        user_uuid = UUID(subject)
    except ValueError:
        logger.warning(f"Invalid token subject | sub={subject}")
        raise AuthenticationError()

    if await is_jti_blacklisted(db, jti):
        logger.warning(f"Blacklisted token used | jti={jti}")
        raise TokenBlacklistedError()

    user = await get_user_by_uuid(db, user_uuid)
    if not user:
        logger.warning(f"User not found | user_id={user_uuid}")
        raise AuthenticationError()

    if not user.is_active:
        logger.warning(f"Inactive user authentication attempt | email={user.email}")
        raise InactiveUserError()

    logger.debug(f"User authenticated | user_id={user.uuid} | role={user.role}")
    return user


async def get_current_identity(current_user: User = Depends(get_current_user)) -> Identity:
    """Identity context passed to the task and user policies"""
    return Identity.from_user(current_user)


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        logger.warning(f"Admin route refused | user_id={identity.user_id}")
        raise AdminRequiredError()
    return identity
