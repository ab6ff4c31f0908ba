"""API v1 router"""
from fastapi import APIRouter
from .endpoints import auth, users, tasks, profile

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(profile.router, prefix="/profile", tags=["profile"])
