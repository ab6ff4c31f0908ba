# taskhub/api/v1/schemas/auth.py
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional
import re


class Token(BaseModel):
    """
    JWT pair returned by the authentication endpoints.
    """
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Display name.")
    email: EmailStr = Field(..., description="User's email address.")
    password: str = Field(
        ...,
        min_length=8,
        max_length=64,
        description="At least 8 characters with upper and lower case letters, a digit and a special character."
    )

    @model_validator(mode='after')
    def validate_password_complexity(self) -> 'UserCreate':
        password = self.password
        if not re.search(r"[a-z]", password):
            raise ValueError("Password must contain at least one lowercase letter.")
        if not re.search(r"[A-Z]", password):
            raise ValueError("Password must contain at least one uppercase letter.")
        if not re.search(r"\d", password):
            raise ValueError("Password must contain at least one digit.")
        if not re.search(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>\/?]", password):
            raise ValueError("Password must contain at least one special character.")
        return self


class UserLogin(BaseModel):
    """
    JSON login credentials.
    """
    email: EmailStr = Field(..., description="User's email address.")
    password: str = Field(..., description="User's password.")


class RefreshRequest(BaseModel):
    refresh_token: str
