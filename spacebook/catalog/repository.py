# pyrefly: ignore-all-errors

import logging
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import Any, Dict, List, Optional, Sequence, Tuple

from spacebook.catalog.db import (
    AmenityDB,
    WorkspaceAmenityDB,
    WorkspaceDB,
    WorkspaceTypeDB,
)
from spacebook.database import utc_now


logger = logging.getLogger(__name__)


def _with_details(query):
    return query.options(
        selectinload(WorkspaceDB.type),
        selectinload(WorkspaceDB.amenities).selectinload(WorkspaceAmenityDB.amenity),
    )


class WorkspaceRepository:
    """Catalog lookups on an open session.

    Repositories never commit: the caller owns the transaction, so a lookup can
    take part in a booking reservation and roll back with it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        workspace_type: WorkspaceTypeDB,
        floor: int,
        location: str,
        base_capacity: int,
        description: Optional[str] = None,
        type_specific_attributes: Optional[Dict[str, Any]] = None,
        amenities: Sequence[Tuple[AmenityDB, int, Optional[str]]] = (),
    ) -> WorkspaceDB:
        try:
            now = utc_now()
            workspace = WorkspaceDB(
                id=str(uuid.uuid4()),
                name=name,
                description=description,
                type=workspace_type,
                floor=floor,
                location=location,
                base_capacity=base_capacity,
                is_active=True,
                type_specific_attributes=type_specific_attributes,
                created_at=now,
                updated_at=now,
                amenities=[
                    WorkspaceAmenityDB(amenity=amenity, quantity=quantity, notes=notes)
                    for amenity, quantity, notes in amenities
                ],
            )
            self.db.add(workspace)
            await self.db.flush()
            return workspace
        except Exception as e:
            logger.error(f"Error creating workspace: {e}")
            raise e

    async def get_by_id(
        self,
        workspace_id: str,
        include_inactive: bool = False,
        for_update: bool = False,
    ) -> Optional[WorkspaceDB]:
        try:
            query = _with_details(select(WorkspaceDB)).where(
                WorkspaceDB.id == workspace_id
            )
            if not include_inactive:
                query = query.where(WorkspaceDB.is_active.is_(True))
            if for_update:
                query = query.with_for_update()
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Error getting workspace by id: {e}")
            raise e

    async def get_all(
        self,
        type_id: Optional[int] = None,
        floor: Optional[int] = None,
        include_inactive: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WorkspaceDB]:
        try:
            query = _with_details(select(WorkspaceDB))
            if type_id is not None:
                query = query.where(WorkspaceDB.type_id == type_id)
            if floor is not None:
                query = query.where(WorkspaceDB.floor == floor)
            if not include_inactive:
                query = query.where(WorkspaceDB.is_active.is_(True))
            query = query.order_by(WorkspaceDB.name, WorkspaceDB.id)
            result = await self.db.execute(query.offset(offset).limit(limit))
            return list(result.scalars().all())
        except Exception as e:
            logger.error(f"Error getting all workspaces: {e}")
            raise e

    async def deactivate(self, workspace_id: str) -> Optional[WorkspaceDB]:
        workspace = await self.get_by_id(workspace_id, include_inactive=True)
        if not workspace:
            return None
        workspace.is_active = False
        workspace.updated_at = utc_now()
        await self.db.flush()
        return workspace


class WorkspaceTypeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_name(self, name: str) -> Optional[WorkspaceTypeDB]:
        result = await self.db.execute(
            select(WorkspaceTypeDB).where(WorkspaceTypeDB.name == name)
        )
        return result.scalar_one_or_none()

    async def get_all(self) -> List[WorkspaceTypeDB]:
        result = await self.db.execute(
            select(WorkspaceTypeDB).order_by(WorkspaceTypeDB.name)
        )
        return list(result.scalars().all())

    async def ensure(
        self,
        name: str,
        description: str,
        default_capacity: int,
        requires_approval: bool,
    ) -> WorkspaceTypeDB:
        workspace_type = await self.get_by_name(name)
        if workspace_type:
            return workspace_type
        workspace_type = WorkspaceTypeDB(
            name=name,
            description=description,
            default_capacity=default_capacity,
            requires_approval=requires_approval,
        )
        self.db.add(workspace_type)
        await self.db.flush()
        return workspace_type


class AmenityRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_name(self, name: str) -> Optional[AmenityDB]:
        result = await self.db.execute(select(AmenityDB).where(AmenityDB.name == name))
        return result.scalar_one_or_none()

    async def ensure(self, name: str, description: Optional[str] = None) -> AmenityDB:
        amenity = await self.get_by_name(name)
        if amenity:
            return amenity
        amenity = AmenityDB(name=name, description=description)
        self.db.add(amenity)
        await self.db.flush()
        return amenity
