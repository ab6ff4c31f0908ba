# taskhub/exceptions/policy.py
"""Errors raised by the task and user policies"""
from fastapi import HTTPException, status


class PolicyError(HTTPException):
    """Base class for a rejected task or user operation"""


class PolicyValidationError(PolicyError):
    """Malformed id, missing or invalid field, or nothing to update"""
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(PolicyError):
    """Target does not exist, or the caller is not allowed to see it.

    Both cases produce the same response so that hidden records cannot be
    probed for.
    """
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ForbiddenError(PolicyError):
    """Target is visible but the caller may not perform this operation"""
    def __init__(self, detail: str = "Operation not permitted"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class TaskNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__(detail="Task not found")


class UserNotFoundError(NotFoundError):
    def __init__(self):
        super().__init__(detail="User not found")
