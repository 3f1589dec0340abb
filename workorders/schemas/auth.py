"""Authentication schemas.

Pydantic schemas for registration, login, logout and the current user.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from workorders.core.security import validate_password_strength
from workorders.models.user import UserRole


class UserRegistrationRequest(BaseModel):
    """Request schema for staff self-registration."""

    email: EmailStr = Field(..., description="User's email address")
    name: str | None = Field(default=None, max_length=100)
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (min 8 chars, must include uppercase, lowercase, and number)",
    )

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, v: str) -> str:
        valid, error = validate_password_strength(v)
        if not valid:
            raise ValueError(error)
        return v

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        """Strip whitespace and convert empty strings to None."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class UserResponse(BaseModel):
    """Public user information."""

    model_config = {"from_attributes": True}

    id: uuid.UUID
    email: str
    name: str | None = None
    role: UserRole
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime


class UserRegistrationResponse(BaseModel):
    id: uuid.UUID
    email: str
    role: UserRole
    message: str = Field(default="Registration successful")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error message")


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="User's password")


class LoginResponse(BaseModel):
    message: str = Field(default="Login successful")
    user: UserResponse = Field(..., description="Authenticated user details")


class LogoutResponse(BaseModel):
    message: str = Field(default="Logout successful")
