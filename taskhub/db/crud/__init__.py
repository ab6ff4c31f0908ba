"""CRUD operations for database models"""
from .user import (
    get_user_by_email,
    get_user_by_id,
    get_user_by_uuid,
    list_users,
    get_user_count,
    create_user_db,
    update_user_db,
    delete_user_cascade
)
from .token import (
    create_refresh_token_db,
    get_refresh_token_by_hash,
    revoke_refresh_token_db,
    add_to_blacklist,
    is_jti_blacklisted,
    cleanup_expired_tokens
)
from . import task

__all__ = [
    # User CRUD
    "get_user_by_email",
    "get_user_by_id",
    "get_user_by_uuid",
    "list_users",
    "get_user_count",
    "create_user_db",
    "update_user_db",
    "delete_user_cascade",
    # Token CRUD
    "create_refresh_token_db",
    "get_refresh_token_by_hash",
    "revoke_refresh_token_db",
    "add_to_blacklist",
    "is_jti_blacklisted",
    "cleanup_expired_tokens",
    # Task CRUD module
    "task",
]
