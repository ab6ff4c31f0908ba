# taskhub/exceptions/auth.py
from fastapi import HTTPException, status

class AuthenticationError(HTTPException):
    """Base authentication error"""
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )

class InvalidCredentialsError(AuthenticationError):
    """Invalid email/password"""
    def __init__(self):
        super().__init__(detail="Incorrect email or password")

class TokenBlacklistedError(AuthenticationError):
    """Token has been revoked by logout"""
    def __init__(self):
        super().__init__(detail="Token has been revoked")

class InactiveUserError(HTTPException):
    """User account is inactive"""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

class AdminRequiredError(HTTPException):
    """Authenticated, but not an administrator"""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )

class UserAlreadyExistsError(HTTPException):
    """User already exists"""
    def __init__(self):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )
