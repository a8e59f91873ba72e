from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional


class WorkspaceTypeDto(BaseModel):
    """Response model for workspace types"""

    id: int
    name: str
    description: Optional[str] = None
    default_capacity: Optional[int] = None
    requires_approval: bool


class WorkspaceAmenityDto(BaseModel):
    name: str
    quantity: int
    notes: Optional[str] = None


class WorkspaceDto(BaseModel):
    """Response model for workspace operations"""

    id: str
    name: str
    description: Optional[str] = None
    type: WorkspaceTypeDto
    floor: int
    location: str
    base_capacity: int
    is_active: bool
    type_specific_attributes: Optional[Dict[str, Any]] = None
    amenities: List[WorkspaceAmenityDto] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}


class AmenityPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1)
    notes: Optional[str] = None


class CreateWorkspacePayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type_name: str = Field(..., alias="type")
    floor: int
    location: str = Field(..., min_length=1, max_length=255)
    base_capacity: Optional[int] = Field(default=None, alias="baseCapacity", ge=1)
    type_specific_attributes: Optional[Dict[str, Any]] = Field(
        default=None, alias="typeSpecificAttributes"
    )
    amenities: List[AmenityPayload] = []

    class Config:
        populate_by_name = True
