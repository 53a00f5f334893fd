"""
Resource Service: visibility, ownership and counters for teaching resources.
"""
from typing import Any, Dict, List, Tuple

from core.exceptions import AuthorizationException, ResourceNotFoundException
from core.logging import get_logger
from schemas.resource import SORTABLE_FIELDS, ResourceCreate, ResourceListParams, ResourceUpdate
from storage.query import DocumentQuery, FindOptions
from storage.selector import StorageSession

logger = get_logger("resources")


def is_admin(account: Dict[str, Any]) -> bool:
    return account.get("role") == "admin"


def is_owner(account: Dict[str, Any], resource: Dict[str, Any]) -> bool:
    return resource.get("creator") == account["id"]


def can_view(account: Dict[str, Any], resource: Dict[str, Any]) -> bool:
    return is_owner(account, resource) or resource.get("is_public", False) or is_admin(account)


def can_modify(account: Dict[str, Any], resource: Dict[str, Any]) -> bool:
    return is_owner(account, resource) or is_admin(account)


class ResourceService:
    """Service for resource operations against the request's storage session."""

    def __init__(self, storage: StorageSession):
        self.storage = storage

    async def _require(self, resource_id: str) -> Dict[str, Any]:
        resource = await self.storage.resources.get(resource_id)
        if resource is None:
            raise ResourceNotFoundException("Resource not found")
        return resource

    async def create(self, account: Dict[str, Any], payload: ResourceCreate) -> Dict[str, Any]:
        document = payload.model_dump()
        document.update({"creator": account["id"], "collaborators": [], "likes": [], "views": 0})
        resource = await self.storage.resources.create(document)
        logger.info("Resource created", resource_id=resource["id"], user_id=account["id"], storage=self.storage.mode)
        return resource

    async def list_visible(self, account: Dict[str, Any], params: ResourceListParams) -> Tuple[List[Dict[str, Any]], int]:
        """Visible resources for the caller, filtered, sorted and paginated."""
        filters = {}
        if params.category:
            filters["category"] = params.category
        if params.content_type:
            filters["content_type"] = params.content_type

        query = DocumentQuery(filters=filters, text=params.search or None)
        if not is_admin(account):
            query.any_of = [{"creator": account["id"]}, {"is_public": True}]

        options = FindOptions(
            sort_by=SORTABLE_FIELDS[params.sort_by],
            descending=params.sort_order == "desc",
            skip=(params.page - 1) * params.limit,
            limit=params.limit,
        )
        items = await self.storage.resources.find(query, options)
        total = await self.storage.resources.count(query)
        return items, total

    async def get(self, account: Dict[str, Any], resource_id: str) -> Dict[str, Any]:
        """Fetch a visible resource; reads by anyone but the creator bump the view counter."""
        resource = await self._require(resource_id)
        if not can_view(account, resource):
            raise AuthorizationException("You do not have permission to view this resource")

        if not is_owner(account, resource):
            viewed = await self.storage.resources.increment_views(resource_id)
            if viewed is None:
                raise ResourceNotFoundException("Resource not found")
            resource = viewed
        return resource

    async def update(self, account: Dict[str, Any], resource_id: str, payload: ResourceUpdate) -> Dict[str, Any]:
        resource = await self._require(resource_id)
        if not can_modify(account, resource):
            raise AuthorizationException("You do not have permission to modify this resource")

        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = await self.storage.resources.update(resource_id, changes)
        if updated is None:
            raise ResourceNotFoundException("Resource not found")
        return updated

    async def delete(self, account: Dict[str, Any], resource_id: str) -> None:
        resource = await self._require(resource_id)
        if not can_modify(account, resource):
            raise AuthorizationException("You do not have permission to delete this resource")
        if not await self.storage.resources.delete(resource_id):
            raise ResourceNotFoundException("Resource not found")
        logger.info("Resource deleted", resource_id=resource_id, user_id=account["id"])

    async def publish(self, account: Dict[str, Any], resource_id: str) -> Dict[str, Any]:
        resource = await self._require(resource_id)
        if not is_owner(account, resource):
            raise AuthorizationException("Only the creator can publish this resource")
        updated = await self.storage.resources.update(resource_id, {"is_public": True})
        if updated is None:
            raise ResourceNotFoundException("Resource not found")
        return updated

    async def toggle_like(self, account: Dict[str, Any], resource_id: str) -> Tuple[bool, int]:
        resource = await self._require(resource_id)
        if not can_view(account, resource):
            raise AuthorizationException("You do not have permission to view this resource")
        outcome = await self.storage.resources.toggle_like(resource_id, account["id"])
        if outcome is None:
            raise ResourceNotFoundException("Resource not found")
        updated, liked = outcome
        return liked, len(updated["likes"])
