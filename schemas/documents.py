"""
Entity schemas enforced by both storage backends.

Each model describes the stored shape of one entity (snake_case keys, no
system fields). The backends validate every write through these models so
that the persistent and the in-memory stores reject the same documents.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from storage.errors import EntityValidationError

AccountRole = Literal["admin", "teacher", "student"]
ResourceContentType = Literal["text", "image", "audio", "video", "presentation", "interactive"]
ResourceCategory = Literal["lesson_plan", "worksheet", "presentation", "quiz", "assignment", "reference"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
GenerationContentType = Literal["text", "image", "audio", "video"]
GenerationStatus = Literal["pending", "completed", "failed"]

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class DocumentModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class Preferences(DocumentModel):
    language: str = "zh-CN"
    theme: Literal["light", "dark"] = "light"
    ai_models: List[str] = Field(default_factory=list)
    content_types: List[str] = Field(default_factory=list)


class Profile(DocumentModel):
    display_name: str = Field(..., min_length=1, max_length=50)
    bio: str = Field("", max_length=500)
    institution: str = Field("", max_length=100)
    subjects: List[str] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)


class AccountDocument(DocumentModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    password_hash: str = Field(..., min_length=1, max_length=255)
    role: AccountRole = "student"
    avatar: str = Field("", max_length=500)
    profile: Profile
    last_login_at: Optional[datetime] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class ResourceContent(DocumentModel):
    data: Any
    format: str = Field(..., min_length=1)
    size: Optional[float] = Field(None, ge=0)
    duration: Optional[float] = Field(None, ge=0)
    url: Optional[str] = None

    @field_validator("data")
    @classmethod
    def data_required(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("content data is required")
        return value


class ResourceMetadata(DocumentModel):
    subject: str = Field(..., min_length=1)
    grade_level: List[str] = Field(default_factory=list)
    difficulty: Difficulty
    estimated_time: float = Field(..., ge=0)
    learning_objectives: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


class ResourceDocument(DocumentModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=1000)
    content_type: ResourceContentType
    category: ResourceCategory
    content: ResourceContent
    metadata: ResourceMetadata
    tags: List[str] = Field(default_factory=list, max_length=10)
    creator: str = Field(..., min_length=1, max_length=32)
    collaborators: List[str] = Field(default_factory=list)
    likes: List[str] = Field(default_factory=list)
    views: int = Field(0, ge=0)
    is_public: bool = False
    generation_id: Optional[str] = Field(None, max_length=32)

    @field_validator("tags")
    @classmethod
    def tag_length(cls, tags: List[str]) -> List[str]:
        cleaned = [tag.strip() for tag in tags]
        for tag in cleaned:
            if len(tag) > 50:
                raise ValueError("each tag must be at most 50 characters")
        return cleaned


class GenerationDocument(DocumentModel):
    user_id: str = Field(..., min_length=1, max_length=32)
    prompt: str = Field(..., min_length=1, max_length=4000)
    content_type: GenerationContentType
    content: Any
    status: GenerationStatus = "completed"
    provider: Optional[str] = Field(None, max_length=50)
    model: Optional[str] = Field(None, max_length=100)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def content_required(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("generated content is required")
        return value


def validate_document(schema: type, document: Dict[str, Any]) -> Dict[str, Any]:
    """Validate ``document`` against ``schema`` and return the normalized dict."""
    try:
        return schema.model_validate(document).model_dump()
    except PydanticValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        raise EntityValidationError("Validation failed", errors) from exc
