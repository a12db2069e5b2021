from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from resource_registry.core.deps import get_resource_repository
from resource_registry.repositories import ResourceRepository
from resource_registry.schemas.common import MessageResponse
from resource_registry.schemas.resource import (
    MoveResult,
    ResourceCreate,
    ResourcePage,
    ResourceRead,
    ResourceUpdate,
)

router = APIRouter(prefix="/resources", tags=["Resources"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ResourcePage,
    summary="Search resources",
    description=(
        "One page of resources whose title or description contains `q` (case-insensitive). "
        "Without `app_name` results are ordered by id descending; with it, by group order then alias."
    ),
)
async def list_resources(
    repo: ResourceRepository = Depends(get_resource_repository),
    app_name: Optional[str] = Query(None, description="Restrict to one application"),
    q: Optional[str] = Query(None, description="Substring of title or description"),
    page_index: int = Query(0, ge=0, description="0-based page index"),
    page_size: int = Query(10, ge=1, le=1000),
) -> ResourcePage:
    if app_name is not None:
        return await repo.get_articles_by_app_name(app_name, page_index, page_size, q)
    return await repo.get_articles(page_index, page_size, q)


# PUBLIC_INTERFACE
@router.get(
    "/apps/{app_name}",
    response_model=List[ResourceRead],
    summary="List an application's resources",
    description="Every resource of one application ordered by group order then alias.",
)
async def list_app_resources(
    app_name: str = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> List[ResourceRead]:
    return await repo.get_all_by_app_name(app_name)


# PUBLIC_INTERFACE
@router.get(
    "/{resource_id}",
    response_model=ResourceRead,
    summary="Get resource",
)
async def get_resource(
    resource_id: int = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> ResourceRead:
    resource = await repo.get_by_id(resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ResourceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create resource",
    description="Create a resource. AppName defaults to ReportWriter and Created to the current time.",
)
async def create_resource(
    payload: ResourceCreate,
    repo: ResourceRepository = Depends(get_resource_repository),
) -> ResourceRead:
    return await repo.add(payload)


# PUBLIC_INTERFACE
@router.put(
    "/{resource_id}",
    response_model=ResourceRead,
    summary="Replace resource",
    description="Replace every mutable field of a resource.",
)
async def update_resource(
    payload: ResourceUpdate,
    resource_id: int = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> ResourceRead:
    if not await repo.update(resource_id, payload):
        raise HTTPException(status_code=404, detail="Resource not found")
    updated = await repo.get_by_id(resource_id)
    if updated is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return updated


# PUBLIC_INTERFACE
@router.delete(
    "/{resource_id}",
    response_model=MessageResponse,
    summary="Delete resource",
)
async def delete_resource(
    resource_id: int = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> MessageResponse:
    if not await repo.delete(resource_id):
        raise HTTPException(status_code=404, detail="Resource not found")
    return MessageResponse(message="Resource deleted", details={"id": resource_id})


# PUBLIC_INTERFACE
@router.post(
    "/{resource_id}/move-up",
    response_model=MoveResult,
    summary="Move resource up",
    description=(
        "Swap display order with the previous resource of the same application. "
        "`moved` is false at the top of the list, for unknown ids and on a concurrent reorder."
    ),
)
async def move_resource_up(
    resource_id: int = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> MoveResult:
    return MoveResult(id=resource_id, moved=await repo.move_up(resource_id))


# PUBLIC_INTERFACE
@router.post(
    "/{resource_id}/move-down",
    response_model=MoveResult,
    summary="Move resource down",
    description="Swap display order with the next resource of the same application.",
)
async def move_resource_down(
    resource_id: int = Path(...),
    repo: ResourceRepository = Depends(get_resource_repository),
) -> MoveResult:
    return MoveResult(id=resource_id, moved=await repo.move_down(resource_id))
