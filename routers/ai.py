"""
AI generation routes: generate content, browse and delete the caller's history.
"""
from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query

from core.security import get_current_user
from schemas.common import build_pagination, success_envelope
from schemas.documents import GenerationContentType, GenerationStatus
from schemas.generation import GenerationRequest, serialize_generation
from services.ai_manager import AIManager, get_ai_manager
from services.generation_service import GenerationService
from storage.selector import StorageSession, get_storage

router = APIRouter(prefix="/api/ai", tags=["AI Generation"])

GenerationId = Annotated[str, Path(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")]


@router.post("/generate")
async def generate_content(
    payload: GenerationRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
    ai_manager: AIManager = Depends(get_ai_manager),
):
    """
    Generate content with the requested provider and store it in the caller's history.

    Unknown provider names fall back to the mock provider.
    """
    record, result = await GenerationService(storage, ai_manager).generate(current_user, payload)
    return success_envelope(
        {"id": record["id"], "result": result.to_api()},
        message="Content generated",
    )


@router.get("/history")
async def get_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    provider: Optional[str] = Query(None, max_length=50),
    content_type: Optional[GenerationContentType] = Query(None, alias="type"),
    status: Optional[GenerationStatus] = Query(None),
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
    ai_manager: AIManager = Depends(get_ai_manager),
):
    items, total = await GenerationService(storage, ai_manager).history(
        current_user, page, limit, provider=provider, content_type=content_type, status=status
    )
    return success_envelope({
        "results": [serialize_generation(item) for item in items],
        "pagination": build_pagination(page, limit, total),
    })


@router.get("/providers")
async def list_providers(
    current_user: Dict[str, Any] = Depends(get_current_user),
    ai_manager: AIManager = Depends(get_ai_manager),
):
    return success_envelope({
        "providers": [info.to_api() for info in ai_manager.describe_providers()],
        "default": ai_manager.default_provider,
    })


@router.get("/{generation_id}")
async def get_generation(
    generation_id: GenerationId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
    ai_manager: AIManager = Depends(get_ai_manager),
):
    record = await GenerationService(storage, ai_manager).get(current_user, generation_id)
    return success_envelope({"result": serialize_generation(record)})


@router.delete("/{generation_id}")
async def delete_generation(
    generation_id: GenerationId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
    ai_manager: AIManager = Depends(get_ai_manager),
):
    await GenerationService(storage, ai_manager).delete(current_user, generation_id)
    return success_envelope(message="Generation record deleted")
