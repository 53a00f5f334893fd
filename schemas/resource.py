"""
Resource Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import Field

from schemas.common import CamelModel
from schemas.documents import Difficulty, ResourceCategory, ResourceContentType

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "title": "title",
    "views": "views",
    "likes": "likes",
}


class ResourceContentSchema(CamelModel):
    data: Any
    format: str = Field(..., min_length=1)
    size: Optional[float] = None
    duration: Optional[float] = None
    url: Optional[str] = None


class ResourceMetadataSchema(CamelModel):
    subject: str = Field(..., min_length=1)
    grade_level: List[str] = Field(default_factory=list)
    difficulty: Difficulty
    estimated_time: float = Field(..., ge=0, description="Estimated time in minutes")
    learning_objectives: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


class ResourceCreate(CamelModel):
    """Schema for creating a resource."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=1000)
    content_type: ResourceContentType
    category: ResourceCategory
    content: ResourceContentSchema
    metadata: ResourceMetadataSchema
    tags: List[str] = Field(default_factory=list, max_length=10)
    is_public: bool = False
    generation_id: Optional[str] = Field(None, max_length=32)


class ResourceUpdate(CamelModel):
    """Schema for updating a resource; omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    content_type: Optional[ResourceContentType] = None
    category: Optional[ResourceCategory] = None
    content: Optional[ResourceContentSchema] = None
    metadata: Optional[ResourceMetadataSchema] = None
    tags: Optional[List[str]] = Field(None, max_length=10)
    is_public: Optional[bool] = None


class ResourceRead(CamelModel):
    id: str
    title: str
    description: str
    content_type: str
    category: str
    content: ResourceContentSchema
    metadata: ResourceMetadataSchema
    tags: List[str]
    creator: str
    collaborators: List[str]
    likes: List[str]
    views: int
    is_public: bool
    generation_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ResourceListParams(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    category: Optional[ResourceCategory] = None
    content_type: Optional[ResourceContentType] = None
    search: Optional[str] = Field(None, max_length=200)
    sort_by: Literal["createdAt", "updatedAt", "title", "views", "likes"] = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class LikeResult(CamelModel):
    liked: bool
    likes_count: int


def serialize_resource(resource: dict) -> dict:
    return ResourceRead.model_validate(resource).to_api()
