"""Request and response models for account endpoints."""

from __future__ import annotations

import string
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

T = TypeVar("T")

PASSWORD_MIN_LENGTH = 8


def check_password_strength(password: str) -> str:
    """Require at least one lowercase, uppercase, digit and special character.

    Raises:
        ValueError: Listing every missing character class.
    """
    missing = []
    if not any(c.islower() for c in password):
        missing.append("a lowercase letter")
    if not any(c.isupper() for c in password):
        missing.append("an uppercase letter")
    if not any(c.isdigit() for c in password):
        missing.append("a digit")
    if not any(c in string.punctuation for c in password):
        missing.append("a special character")
    if missing:
        raise ValueError("password must contain " + ", ".join(missing))
    return password


class RegisterRequest(BaseModel):
    """Payload for creating an account."""

    username: str = Field(..., min_length=1, max_length=255, examples=["testuser001"])
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LENGTH,
        max_length=128,
        examples=["my_SECURE_password123@"],
    )
    display_name: str = Field(..., min_length=1, max_length=255, examples=["Test User"])
    email: EmailStr = Field(..., examples=["testuser001@example.com"])

    @field_validator("username", "display_name")
    @classmethod
    def _strip_and_require(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("password")
    @classmethod
    def _strong_password(cls, value: str) -> str:
        return check_password_strength(value)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, examples=["testuser001"])
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, examples=["my_SECURE_password123@"])


class UpdateProfileRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255, examples=["Updated User 001"])
    email: EmailStr = Field(..., examples=["updatedtestuser001@example.com"])

    @field_validator("display_name")
    @classmethod
    def _strip_and_require(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class UserResponse(BaseModel):
    """Public view of an account; the password hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    display_name: str | None = None
    created_at: datetime
    updated_at: datetime


class DataResponse(BaseModel, Generic[T]):
    """Envelope used by endpoints that return a payload."""

    data: T
    message: str


class MessageResponse(BaseModel):
    message: str
