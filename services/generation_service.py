"""
Generation Service: runs a generation and keeps the caller's history.
"""
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import ResourceNotFoundException
from core.logging import ai_logger
from schemas.generation import GenerationRequest, GenerationResult
from services.ai_manager import AIManager
from storage.query import DocumentQuery, FindOptions
from storage.selector import StorageSession

logger = ai_logger


class GenerationService:
    """Service for generation records; every lookup is scoped to the owner."""

    def __init__(self, storage: StorageSession, ai_manager: AIManager):
        self.storage = storage
        self.ai_manager = ai_manager

    async def generate(
        self, account: Dict[str, Any], request: GenerationRequest
    ) -> Tuple[Dict[str, Any], GenerationResult]:
        """Dispatch to a provider, then persist the result as a completed record."""
        result = await self.ai_manager.generate(request)
        metadata = result.metadata.model_dump(by_alias=True, mode="json")
        metadata["usage"] = result.usage.to_api()
        metadata["resultId"] = result.id

        record = await self.storage.generations.create({
            "user_id": account["id"],
            "prompt": request.prompt,
            "content_type": request.type,
            "content": result.content,
            "status": "completed",
            "provider": result.provider,
            "model": result.model,
            "metadata": metadata,
        })
        logger.info(
            "Generation stored",
            record_id=record["id"],
            user_id=account["id"],
            provider=result.provider,
            storage=self.storage.mode,
        )
        return record, result

    async def history(
        self,
        account: Dict[str, Any],
        page: int,
        limit: int,
        provider: Optional[str] = None,
        content_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], int]:
        filters = {"user_id": account["id"]}
        if provider:
            filters["provider"] = provider
        if content_type:
            filters["content_type"] = content_type
        if status:
            filters["status"] = status
        query = DocumentQuery(filters=filters)
        options = FindOptions(sort_by="created_at", descending=True, skip=(page - 1) * limit, limit=limit)
        items = await self.storage.generations.find(query, options)
        total = await self.storage.generations.count(query)
        return items, total

    async def get(self, account: Dict[str, Any], record_id: str) -> Dict[str, Any]:
        record = await self.storage.generations.get(record_id)
        if record is None or record["user_id"] != account["id"]:
            raise ResourceNotFoundException("Generation record not found")
        return record

    async def delete(self, account: Dict[str, Any], record_id: str) -> None:
        await self.get(account, record_id)
        if not await self.storage.generations.delete(record_id):
            raise ResourceNotFoundException("Generation record not found")
