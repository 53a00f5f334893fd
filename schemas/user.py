"""
Account-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from schemas.common import CamelModel


class PreferencesSchema(CamelModel):
    language: str = "zh-CN"
    theme: Literal["light", "dark"] = "light"
    ai_models: List[str] = Field(default_factory=list)
    content_types: List[str] = Field(default_factory=list)


class ProfileSchema(CamelModel):
    display_name: str
    bio: str = ""
    institution: str = ""
    subjects: List[str] = Field(default_factory=list)
    preferences: PreferencesSchema = Field(default_factory=PreferencesSchema)


class UserRead(CamelModel):
    """Schema for reading account data (excludes the password hash)."""
    id: str
    username: str
    email: str
    role: str
    avatar: str = ""
    profile: ProfileSchema
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PreferencesUpdate(CamelModel):
    language: Optional[str] = Field(None, min_length=2, max_length=10)
    theme: Optional[Literal["light", "dark"]] = None
    ai_models: Optional[List[str]] = None
    content_types: Optional[List[str]] = None


class ProfileUpdate(CamelModel):
    """Schema for updating the caller's profile; omitted fields are left unchanged."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=50)
    bio: Optional[str] = Field(None, max_length=500)
    institution: Optional[str] = Field(None, max_length=100)
    subjects: Optional[List[str]] = None
    preferences: Optional[PreferencesUpdate] = None
    avatar: Optional[str] = Field(None, max_length=500)


def serialize_user(account: dict) -> dict:
    return UserRead.model_validate(account).to_api()
