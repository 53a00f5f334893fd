"""
Resource routes: CRUD, publishing and likes for teaching resources.
"""
from typing import Annotated, Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from core.security import get_current_user
from schemas.common import build_pagination, success_envelope
from schemas.documents import ResourceCategory, ResourceContentType
from schemas.resource import (
    LikeResult,
    ResourceCreate,
    ResourceListParams,
    ResourceUpdate,
    serialize_resource,
)
from services.resource_service import ResourceService
from storage.selector import StorageSession, get_storage

router = APIRouter(prefix="/api/resources", tags=["Resources"])

ResourceId = Annotated[str, Path(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")]


def list_params(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[ResourceCategory] = Query(None),
    content_type: Optional[ResourceContentType] = Query(None, alias="contentType"),
    search: Optional[str] = Query(None, max_length=200),
    sort_by: Literal["createdAt", "updatedAt", "title", "views", "likes"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
) -> ResourceListParams:
    return ResourceListParams(
        page=page,
        limit=limit,
        category=category,
        content_type=content_type,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_resource(
    payload: ResourceCreate,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    resource = await ResourceService(storage).create(current_user, payload)
    return success_envelope({"resource": serialize_resource(resource)}, message="Resource created")


@router.get("")
async def list_resources(
    params: ResourceListParams = Depends(list_params),
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    """
    List resources visible to the caller.

    Non-admins see their own resources plus public ones; admins see everything.
    """
    items, total = await ResourceService(storage).list_visible(current_user, params)
    return success_envelope({
        "resources": [serialize_resource(item) for item in items],
        "pagination": build_pagination(params.page, params.limit, total),
    })


@router.get("/{resource_id}")
async def get_resource(
    resource_id: ResourceId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    resource = await ResourceService(storage).get(current_user, resource_id)
    return success_envelope({"resource": serialize_resource(resource)})


@router.put("/{resource_id}")
async def update_resource(
    payload: ResourceUpdate,
    resource_id: ResourceId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    resource = await ResourceService(storage).update(current_user, resource_id, payload)
    return success_envelope({"resource": serialize_resource(resource)}, message="Resource updated")


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: ResourceId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    await ResourceService(storage).delete(current_user, resource_id)
    return success_envelope(message="Resource deleted")


@router.post("/{resource_id}/publish")
async def publish_resource(
    resource_id: ResourceId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    resource = await ResourceService(storage).publish(current_user, resource_id)
    return success_envelope({"resource": serialize_resource(resource)}, message="Resource published")


@router.post("/{resource_id}/like")
async def toggle_like(
    resource_id: ResourceId,
    current_user: Dict[str, Any] = Depends(get_current_user),
    storage: StorageSession = Depends(get_storage),
):
    liked, likes_count = await ResourceService(storage).toggle_like(current_user, resource_id)
    return success_envelope(LikeResult(liked=liked, likes_count=likes_count).to_api())
