import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spacebook.catalog.db import WorkspaceDB, WorkspaceTypeDB
from spacebook.catalog.model import (
    CreateWorkspacePayload,
    WorkspaceAmenityDto,
    WorkspaceDto,
    WorkspaceTypeDto,
)
from spacebook.catalog.repository import (
    AmenityRepository,
    WorkspaceRepository,
    WorkspaceTypeRepository,
)
from spacebook.errors import NotFoundError, PersistenceError


logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE_TYPES = [
    ("hot_desk", "Flexible unassigned workstations", 1, False),
    ("meeting_room", "Spaces for team meetings", 8, True),
]

DEFAULT_AMENITIES = [
    ("projector", "Presentation projector"),
    ("whiteboard", "Writing surface"),
]

SEED_ATTEMPTS = 3


class WorkspaceService:
    """Service for workspace catalog operations"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def seed_defaults(self) -> None:
        """Insert the default workspace types and amenities if missing.

        Several workers may seed one database at once; the loser of a race
        hits a unique violation and retries, finding the winner's rows.
        """
        for attempt in range(SEED_ATTEMPTS):
            try:
                await self._seed_once()
                return
            except IntegrityError as e:
                if attempt + 1 == SEED_ATTEMPTS:
                    logger.error(f"Error seeding catalog defaults: {e}")
                    raise PersistenceError("Failed to seed workspace catalog", e) from e
                logger.info("Catalog defaults were seeded concurrently, retrying")
            except SQLAlchemyError as e:
                logger.error(f"Error seeding catalog defaults: {e}")
                raise PersistenceError("Failed to seed workspace catalog", e) from e

    async def _seed_once(self) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                types = WorkspaceTypeRepository(session)
                for name, description, capacity, approval in DEFAULT_WORKSPACE_TYPES:
                    await types.ensure(name, description, capacity, approval)
                amenities = AmenityRepository(session)
                for name, description in DEFAULT_AMENITIES:
                    await amenities.ensure(name, description)

    async def create_workspace(self, payload: CreateWorkspacePayload) -> WorkspaceDto:
        """Create a new workspace"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    workspace_type = await WorkspaceTypeRepository(session).get_by_name(
                        payload.type_name
                    )
                    if not workspace_type:
                        raise NotFoundError(
                            f"Workspace type not found: {payload.type_name}"
                        )

                    amenity_repository = AmenityRepository(session)
                    amenities = [
                        (await amenity_repository.ensure(item.name), item.quantity, item.notes)
                        for item in payload.amenities
                    ]

                    workspace = await WorkspaceRepository(session).create(
                        name=payload.name,
                        description=payload.description,
                        workspace_type=workspace_type,
                        floor=payload.floor,
                        location=payload.location,
                        base_capacity=self._resolve_capacity(payload, workspace_type),
                        type_specific_attributes=payload.type_specific_attributes,
                        amenities=amenities,
                    )
                    dto = self._map_to_workspace_dto(workspace)

            logger.info(f"Workspace {dto.id} created ({dto.type.name}, capacity {dto.base_capacity})")
            return dto
        except SQLAlchemyError as e:
            logger.error(f"Error creating workspace: {e}")
            raise PersistenceError("Failed to create workspace", e) from e

    async def get_workspace(
        self, workspace_id: str, include_inactive: bool = False
    ) -> WorkspaceDto:
        """Get workspace by ID"""
        try:
            async with self.session_factory() as session:
                workspace = await WorkspaceRepository(session).get_by_id(
                    workspace_id, include_inactive=include_inactive
                )
                if not workspace:
                    raise NotFoundError("Workspace not found")

                return self._map_to_workspace_dto(workspace)
        except SQLAlchemyError as e:
            logger.error(f"Error getting workspace {workspace_id}: {e}")
            raise PersistenceError("Failed to fetch workspace", e) from e

    async def list_workspaces(
        self,
        type_id: Optional[int] = None,
        floor: Optional[int] = None,
        include_inactive: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WorkspaceDto]:
        """List workspaces with filtering and pagination"""
        try:
            async with self.session_factory() as session:
                workspaces = await WorkspaceRepository(session).get_all(
                    type_id=type_id,
                    floor=floor,
                    include_inactive=include_inactive,
                    limit=limit,
                    offset=offset,
                )

                return [self._map_to_workspace_dto(workspace) for workspace in workspaces]
        except SQLAlchemyError as e:
            logger.error(f"Error listing workspaces: {e}")
            raise PersistenceError("Failed to fetch workspaces", e) from e

    async def deactivate_workspace(self, workspace_id: str) -> WorkspaceDto:
        """Soft-delete a workspace; its bookings stay in place"""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    workspace = await WorkspaceRepository(session).deactivate(workspace_id)
                    if not workspace:
                        raise NotFoundError("Workspace not found")
                    dto = self._map_to_workspace_dto(workspace)
        except SQLAlchemyError as e:
            logger.error(f"Error deactivating workspace {workspace_id}: {e}")
            raise PersistenceError("Failed to deactivate workspace", e) from e

        logger.info(f"Workspace {workspace_id} deactivated")
        return dto

    async def list_types(self) -> List[WorkspaceTypeDto]:
        try:
            async with self.session_factory() as session:
                types = await WorkspaceTypeRepository(session).get_all()
                return [self._map_to_type_dto(workspace_type) for workspace_type in types]
        except SQLAlchemyError as e:
            logger.error(f"Error listing workspace types: {e}")
            raise PersistenceError("Failed to fetch workspace types", e) from e

    def _resolve_capacity(
        self, payload: CreateWorkspacePayload, workspace_type: WorkspaceTypeDB
    ) -> int:
        if payload.base_capacity is not None:
            return payload.base_capacity
        return workspace_type.default_capacity or 1

    def _map_to_type_dto(self, workspace_type: WorkspaceTypeDB) -> WorkspaceTypeDto:
        return WorkspaceTypeDto(
            id=workspace_type.id,
            name=workspace_type.name,
            description=workspace_type.description,
            default_capacity=workspace_type.default_capacity,
            requires_approval=workspace_type.requires_approval,
        )

    def _map_to_workspace_dto(self, workspace: WorkspaceDB) -> WorkspaceDto:
        return WorkspaceDto(
            id=str(workspace.id),
            name=workspace.name,
            description=workspace.description,
            type=self._map_to_type_dto(workspace.type),
            floor=workspace.floor,
            location=workspace.location,
            base_capacity=workspace.base_capacity,
            is_active=workspace.is_active,
            type_specific_attributes=workspace.type_specific_attributes,
            amenities=[
                WorkspaceAmenityDto(
                    name=link.amenity.name,
                    quantity=link.quantity,
                    notes=link.notes,
                )
                for link in workspace.amenities
            ],
            created_at=workspace.created_at,
            updated_at=workspace.updated_at,
        )
