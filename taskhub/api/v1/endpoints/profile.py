# taskhub/api/v1/endpoints/profile.py
from fastapi import APIRouter, Depends, HTTPException, status, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from taskhub.db.database import get_db
from taskhub.api.v1.schemas.users import UserResponse
from taskhub.auth.dependencies import get_current_identity
from taskhub.policy import users as user_policy
from taskhub.policy.identity import Identity

router = APIRouter()


@router.get("/", response_model=UserResponse)
async def read_profile(
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    return await user_policy.get_profile(db, identity)


@router.put("/avatar", response_model=UserResponse)
async def upload_avatar(
        avatar: UploadFile = File(..., description="PNG, JPEG, GIF or WebP image"),
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    """Replace the caller's avatar"""
    try:
        return await user_policy.update_avatar(db, identity, avatar)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Avatar upload failed for {identity.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Avatar upload failed")
    finally:
        await avatar.close()


@router.delete("/avatar", response_model=UserResponse)
async def delete_avatar(
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(get_current_identity)
):
    try:
        return await user_policy.remove_avatar(db, identity)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Avatar removal failed for {identity.user_id}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Avatar removal failed")
