import logging
from datetime import datetime
from enum import Enum
from typing import Protocol

from pydantic import BaseModel

from spacebook.booking.model import BookingDto


logger = logging.getLogger(__name__)


class BookingEventType(str, Enum):
    CREATED = "booking.created"
    CANCELLED = "booking.cancelled"


class BookingEvent(BaseModel):
    type: BookingEventType
    booking: BookingDto
    occurred_at: datetime


class BookingNotifier(Protocol):
    """Receives booking lifecycle events once the change is committed.

    Delivery (email, SMS, chat) lives outside this service.
    """

    async def notify(self, event: BookingEvent) -> None: ...


class LoggingNotifier:
    async def notify(self, event: BookingEvent) -> None:
        booking = event.booking
        logger.info(
            f"{event.type.value}: booking {booking.id} for user {booking.user_id} "
            f"on {booking.workspace_name} ({booking.status.value})"
        )
