from pydantic import BaseModel
from datetime import datetime
from enum import Enum
from typing import List, Optional


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Bookings in these states hold their slot
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def effective_status(status: str, end_time: datetime, now: datetime) -> BookingStatus:
    """Status as users see it: an active booking whose end has passed is completed."""
    current = BookingStatus(status)
    if current in ACTIVE_STATUSES and end_time <= now:
        return BookingStatus.COMPLETED
    return current


class BookingDto(BaseModel):
    """Response model for booking operations"""

    id: str
    user_id: str
    workspace_id: str
    start_time: datetime
    end_time: datetime
    attendees: int
    status: BookingStatus
    special_requests: Optional[str] = None
    workspace_name: str
    workspace_type: str
    location: str
    amenities: List[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}


class BookingResult(BaseModel):
    booking: BookingDto
    pending_approval: bool


class AvailabilityDto(BaseModel):
    """Remaining capacity of a workspace over a time window"""

    workspace_id: str
    start_time: datetime
    end_time: datetime
    base_capacity: int
    current_attendees: int
    available_slots: int
    conflicting_bookings: int
    is_available: bool
    requires_approval: bool
    workspace_type: str
    location: str

    class Config:
        json_encoders = {datetime: lambda v: v.isoformat()}


class PaginationDto(BaseModel):
    page: int
    limit: int
    total: int


class BookingPageDto(BaseModel):
    items: List[BookingDto]
    pagination: PaginationDto
