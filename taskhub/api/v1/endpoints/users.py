# taskhub/api/v1/endpoints/users.py - admin user management
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi.util import get_remote_address

from taskhub.db.database import get_db
from taskhub.api.v1.schemas.users import UserResponse, RoleUpdate, UserDeleted
from taskhub.auth.dependencies import require_admin
from taskhub.middleware.rate_limiting import limiter
from taskhub.core import tracing
from taskhub.policy import users as user_policy
from taskhub.policy.identity import Identity

router = APIRouter()


@router.get("/", response_model=List[UserResponse])
@limiter.limit("30/minute")
async def list_users(
        request: Request,
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(require_admin)
):
    ip = get_remote_address(request)
    tracing.info("User list requested", requester=str(identity.user_id), ip=ip)

    try:
        return await user_policy.list_users(db, identity)
    except HTTPException:
        raise
    except Exception as e:
        tracing.error("User list failed", requester=str(identity.user_id), ip=ip, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error retrieving users")


@router.patch("/{user_id}/role", response_model=UserResponse)
@limiter.limit("20/minute")
async def change_user_role(
        request: Request,
        user_id: str,
        body: RoleUpdate,
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(require_admin)
):
    ip = get_remote_address(request)
    tracing.info("Role change requested", user_id=user_id, role=body.role, requester=str(identity.user_id), ip=ip)

    try:
        return await user_policy.change_role(db, identity, user_id, body.role)
    except HTTPException:
        raise
    except Exception as e:
        tracing.error("Role change failed", user_id=user_id, ip=ip, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error updating role")


@router.delete("/{user_id}", response_model=UserDeleted)
@limiter.limit("10/minute")
async def delete_user(
        request: Request,
        user_id: str,
        db: AsyncSession = Depends(get_db),
        identity: Identity = Depends(require_admin)
):
    """Delete a user together with every task they own, created or are assigned"""
    ip = get_remote_address(request)
    tracing.info("User deletion requested", user_id=user_id, requester=str(identity.user_id), ip=ip)

    try:
        return await user_policy.delete_user(db, identity, user_id)
    except HTTPException:
        raise
    except Exception as e:
        tracing.error("User deletion failed", user_id=user_id, ip=ip, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error deleting user")
