# taskhub/api/v1/endpoints/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi.util import get_remote_address
from datetime import datetime, timezone
from jose import JWTError

from taskhub.db.database import get_db
from taskhub.auth.security import Hasher, create_access_token, create_refresh_token, decode_token
from taskhub.auth.dependencies import oauth2_scheme
from taskhub.db.crud.user import get_user_by_email, get_user_by_id, create_user_db
from taskhub.db.crud.token import create_refresh_token_db, get_refresh_token_by_hash, revoke_refresh_token_db, add_to_blacklist
from taskhub.api.v1.schemas.auth import Token, UserCreate, UserLogin, RefreshRequest
from taskhub.db.models import User
from taskhub.exceptions.auth import AuthenticationError, InvalidCredentialsError, InactiveUserError, UserAlreadyExistsError
from taskhub.core.config import settings
from taskhub.core import tracing
from taskhub.middleware.rate_limiting import limiter

router = APIRouter()


async def issue_tokens(db: AsyncSession, user: User) -> Token:
    claims = {"sub": str(user.uuid), "role": user.role.value}

    access_token = create_access_token(data=claims)
    refresh_token = create_refresh_token(data=claims)

    refresh_expires_at = datetime.fromtimestamp(decode_token(refresh_token)["exp"], tz=timezone.utc)
    await create_refresh_token_db(db, user.id, refresh_token, refresh_expires_at)

    return Token(access_token=access_token, refresh_token=refresh_token)


async def _authenticate(db: AsyncSession, email: str, password: str, ip: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not Hasher.verify_password(password, user.hashed_password):
        tracing.warning("Login failed - invalid credentials", email=email, ip=ip)
        raise InvalidCredentialsError()

    if not user.is_active:
        tracing.warning("Login failed - account inactive", email=email, ip=ip)
        raise InactiveUserError()

    tracing.info("Login successful", user_id=str(user.uuid), ip=ip)
    return user


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def signup(request: Request, user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    ip = get_remote_address(request)
    tracing.info("Registration attempt", email=user_in.email, ip=ip)

    if await get_user_by_email(db, user_in.email):
        tracing.warning("Registration failed - user exists", email=user_in.email, ip=ip)
        raise UserAlreadyExistsError()

    user_data = {
        "name": user_in.name,
        "email": user_in.email,
        "hashed_password": Hasher.get_password_hash(user_in.password),
    }

    try:
        user = await create_user_db(db, user_data)
        tracing.info("User registered successfully", user_id=str(user.uuid), ip=ip)
        return await issue_tokens(db, user)
    except Exception as e:
        tracing.error("Failed to create user", email=user_in.email, ip=ip, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Could not create user.")


@router.post("/login", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_for_access_token(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """OAuth2 password flow; ``username`` carries the email"""
    user = await _authenticate(db, form_data.username, form_data.password, get_remote_address(request))
    return await issue_tokens(db, user)


@router.post("/login-json", response_model=Token)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_via_json(request: Request, credentials: UserLogin, db: AsyncSession = Depends(get_db)):
    user = await _authenticate(db, credentials.email, credentials.password, get_remote_address(request))
    return await issue_tokens(db, user)


@router.post("/refresh-token", response_model=Token)
@limiter.limit("10/minute")
async def refresh_access_token(request: Request, body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a live refresh token for a new pair; the old one is revoked"""
    ip = get_remote_address(request)

    try:
        payload = decode_token(body.refresh_token)
    except JWTError:
        tracing.warning("Invalid refresh token", ip=ip)
        raise AuthenticationError("Invalid refresh token")

    if payload.get("type") != "refresh":
        raise AuthenticationError("Invalid refresh token")

    record = await get_refresh_token_by_hash(db, Hasher.hash_refresh_token(body.refresh_token))
    if not record:
        tracing.warning("Refresh token not found or revoked", ip=ip)
        raise AuthenticationError("Invalid refresh token")

    user = await get_user_by_id(db, record.user_id)
    if not user or not user.is_active:
        raise AuthenticationError("Invalid refresh token")

    await revoke_refresh_token_db(db, record)
    tracing.info("Token refresh successful", user_id=str(user.uuid), ip=ip)
    return await issue_tokens(db, user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def logout(request: Request, access_token: str = Depends(oauth2_scheme), db: AsyncSession = Depends(get_db)):
    """Blacklist the presented access token until it expires"""
    try:
        payload = decode_token(access_token)
    except JWTError:
        raise AuthenticationError()

    jti = payload.get("jti")
    exp = payload.get("exp")
    if jti is None or exp is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token for logout.")

    await add_to_blacklist(db, jti, datetime.fromtimestamp(exp, tz=timezone.utc))
    tracing.info("Logout successful", user_id=payload.get("sub"), ip=get_remote_address(request))
