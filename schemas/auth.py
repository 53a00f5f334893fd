"""
Authentication-related Pydantic schemas.
"""
import re
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from schemas.common import CamelModel

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_一-龥]+$")


def _check_password_strength(value: str) -> str:
    if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
        raise ValueError("Password must contain at least one lowercase letter, one uppercase letter and one digit")
    return value


class RegisterRequest(CamelModel):
    """Registration request schema."""
    username: str = Field(..., min_length=3, max_length=30, description="Unique username")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=6, max_length=128, description="Password")
    role: Optional[Literal["teacher", "student", "admin"]] = None
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)

    @field_validator("username")
    @classmethod
    def username_characters(cls, value: str) -> str:
        value = value.strip()
        if not _USERNAME_PATTERN.match(value):
            raise ValueError("Username may only contain letters, digits, underscores and CJK characters")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password_strength(value)


class LoginRequest(CamelModel):
    """Login request schema."""
    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=1, description="Password")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        return _check_password_strength(value)
