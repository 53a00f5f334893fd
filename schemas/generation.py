"""
AI generation request/response schemas.
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import ConfigDict, Field

from schemas.common import CamelModel
from schemas.documents import GenerationContentType, GenerationStatus


class GenerationRequest(CamelModel):
    """A content-generation request as accepted by the dispatcher."""
    type: GenerationContentType
    prompt: str = Field(..., min_length=1, max_length=4000)
    model: Optional[str] = Field(None, max_length=100)
    provider: Optional[str] = Field(None, max_length=50)
    max_tokens: Optional[int] = Field(None, ge=1, le=4000)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    top_p: Optional[float] = Field(None, ge=0, le=1)
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2)
    image_size: Optional[str] = None
    image_quality: Optional[Literal["standard", "hd"]] = None
    image_style: Optional[Literal["vivid", "natural"]] = None
    education_level: Optional[Literal["elementary", "middle", "high", "university", "adult"]] = None
    subject: Optional[str] = Field(None, max_length=100)
    language: Optional[Literal["zh-cn", "en-us"]] = None
    tone: Optional[Literal["formal", "casual", "friendly", "professional"]] = None
    additional_instructions: Optional[str] = Field(None, max_length=1000)


class TokenUsage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerationMetadata(CamelModel):
    """Normalized metadata; providers may add extra keys."""
    model_config = ConfigDict(extra="allow")

    finish_reason: Optional[str] = None
    response_time: int = Field(..., description="Epoch milliseconds when the provider responded")
    is_mock: bool = False


class GenerationResult(CamelModel):
    id: str
    content: Any
    provider: str
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)
    metadata: GenerationMetadata


class ProviderInfo(CamelModel):
    name: str
    available: bool
    supports_image: bool
    default: bool = False


class GenerationRecordRead(CamelModel):
    id: str
    user_id: str
    prompt: str
    content_type: str
    content: Any
    status: GenerationStatus
    provider: Optional[str] = None
    model: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


def serialize_generation(record: dict) -> dict:
    return GenerationRecordRead.model_validate(record).to_api()
