# Schemas package for Pydantic models
from .common import CamelModel, Pagination, build_pagination, success_envelope
from .user import UserRead, ProfileUpdate, PreferencesUpdate, serialize_user
from .auth import RegisterRequest, LoginRequest, ChangePasswordRequest
from .file import UploadedFileRead
from .resource import (
    ResourceCreate, ResourceUpdate, ResourceRead, ResourceListParams,
    LikeResult, serialize_resource
)
from .generation import (
    GenerationRequest, GenerationResult, GenerationRecordRead,
    ProviderInfo, TokenUsage, serialize_generation
)

__all__ = [
    "CamelModel", "Pagination", "build_pagination", "success_envelope",
    "UserRead", "ProfileUpdate", "PreferencesUpdate", "serialize_user",
    "RegisterRequest", "LoginRequest", "ChangePasswordRequest",
    "UploadedFileRead",
    "ResourceCreate", "ResourceUpdate", "ResourceRead", "ResourceListParams",
    "LikeResult", "serialize_resource",
    "GenerationRequest", "GenerationResult", "GenerationRecordRead",
    "ProviderInfo", "TokenUsage", "serialize_generation",
]
