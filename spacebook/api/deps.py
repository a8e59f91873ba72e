from fastapi import Request

from spacebook.booking.service import BookingService
from spacebook.catalog.service import WorkspaceService


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_workspace_service(request: Request) -> WorkspaceService:
    return request.app.state.workspace_service
