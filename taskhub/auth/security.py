# taskhub/auth/security.py
from datetime import datetime, timedelta, timezone
from typing import Optional
import hashlib
import uuid

from jose import JWTError, jwt
from passlib.context import CryptContext
from loguru import logger

from taskhub.core.config import settings

# Password hashing context (bcrypt is recommended)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class Hasher:
    """
    Password hashing for users and digesting of refresh tokens.
    """

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def hash_refresh_token(token: str) -> str:
        """
        Deterministic digest of a refresh token so it can be looked up by value.
        """
        return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _encode(to_encode: dict) -> str:
    return jwt.encode(
        to_encode, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.ALGORITHM
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed access token. Every token carries a unique ``jti`` so
    logout can blacklist it.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "jti": str(uuid.uuid4()), "type": "access"})
    return _encode(to_encode)


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a signed refresh token with a longer expiry.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )
    to_encode.update({"exp": expire, "jti": str(uuid.uuid4()), "type": "refresh"})
    return _encode(to_encode)


def decode_token(token: str) -> dict:
    """
    Decodes a JWT token and returns its payload.
    Raises JWTError if the token is invalid or expired.
    """
    try:
        return jwt.decode(
            token, settings.JWT_SECRET_KEY.get_secret_value(), algorithms=[settings.ALGORITHM]
        )
    except JWTError as e:
        logger.warning(f"JWT decoding error: {e}")
        raise
