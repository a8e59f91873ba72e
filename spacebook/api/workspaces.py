from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from spacebook.api.deps import get_workspace_service
from spacebook.auth import CurrentUser, require_roles
from spacebook.catalog.model import (
    CreateWorkspacePayload,
    WorkspaceDto,
    WorkspaceTypeDto,
)
from spacebook.catalog.service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"])

catalog_admin = require_roles("admin", "manager")


@router.post("", response_model=WorkspaceDto, status_code=201)
async def create_workspace(
    payload: CreateWorkspacePayload,
    _: CurrentUser = Depends(catalog_admin),
    workspace_service: WorkspaceService = Depends(get_workspace_service),
):
    """Create a new workspace"""

    return await workspace_service.create_workspace(payload)


@router.get("", response_model=List[WorkspaceDto])
async def list_workspaces(
    type_id: Optional[int] = None,
    floor: Optional[int] = None,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    workspace_service: WorkspaceService = Depends(get_workspace_service),
):
    """List workspaces with filtering and pagination"""

    return await workspace_service.list_workspaces(
        type_id=type_id,
        floor=floor,
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


@router.get("/types", response_model=List[WorkspaceTypeDto])
async def list_workspace_types(
    workspace_service: WorkspaceService = Depends(get_workspace_service),
):
    """List workspace types"""

    return await workspace_service.list_types()


@router.get("/{workspace_id}", response_model=WorkspaceDto)
async def get_workspace(
    workspace_id: str,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    workspace_service: WorkspaceService = Depends(get_workspace_service),
):
    """Get workspace by ID"""

    return await workspace_service.get_workspace(
        workspace_id, include_inactive=include_inactive
    )


@router.delete("/{workspace_id}", response_model=WorkspaceDto)
async def deactivate_workspace(
    workspace_id: str,
    _: CurrentUser = Depends(catalog_admin),
    workspace_service: WorkspaceService = Depends(get_workspace_service),
):
    """Deactivate a workspace"""

    return await workspace_service.deactivate_workspace(workspace_id)
