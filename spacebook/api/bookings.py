from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from spacebook.api.deps import get_booking_service
from spacebook.auth import CurrentUser, get_current_user
from spacebook.booking.model import AvailabilityDto, BookingDto, PaginationDto
from spacebook.booking.service import BookingService
from spacebook.config import settings

router = APIRouter(prefix="/bookings", tags=["bookings"])


class CreateBookingRequest(BaseModel):
    workspace_id: str = Field(..., alias="workspaceId")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    attendees: int = 1
    special_requests: Optional[str] = Field(default=None, alias="specialRequests")


class BookingResponse(BaseModel):
    success: bool = True
    data: BookingDto
    message: Optional[str] = None


class AvailabilityResponse(BaseModel):
    success: bool = True
    data: AvailabilityDto
    buffer_notice: str


class BookingListResponse(BaseModel):
    success: bool = True
    data: List[BookingDto]
    pagination: PaginationDto


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    payload: CreateBookingRequest,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Create a new workspace booking"""

    result = await booking_service.create_booking(
        user_id=user.id,
        workspace_id=payload.workspace_id,
        start=payload.start_time,
        end=payload.end_time,
        attendees=payload.attendees,
        special_request=payload.special_requests,
    )

    return BookingResponse(
        data=result.booking,
        message=(
            "Booking request submitted for approval"
            if result.pending_approval
            else "Booking confirmed"
        ),
    )


@router.get("/availability/{workspace_id}", response_model=AvailabilityResponse)
async def check_availability(
    workspace_id: str,
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
    attendees: int = Query(default=1),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Check workspace availability"""

    availability = await booking_service.check_availability(
        workspace_id, start_time, end_time, attendees
    )

    return AvailabilityResponse(
        data=availability, buffer_notice=booking_service.buffer_notice
    )


@router.get("/user", response_model=BookingListResponse)
async def get_user_bookings(
    upcoming: bool = True,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_limit, ge=1, le=settings.max_page_limit),
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Get the caller's upcoming or past bookings"""

    bookings = await booking_service.get_user_bookings(
        user.id, upcoming=upcoming, page=page, limit=limit
    )

    return BookingListResponse(data=bookings.items, pagination=bookings.pagination)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Get one of the caller's bookings"""

    return BookingResponse(data=await booking_service.get_booking(booking_id, user.id))


@router.delete("/{booking_id}", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Cancel a booking"""

    booking = await booking_service.cancel_booking(booking_id, user.id)

    return BookingResponse(data=booking, message="Booking cancelled successfully")
