import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spacebook.booking.availability import (
    AvailabilityCalculator,
    validate_attendees,
    validate_window,
)
from spacebook.booking.ledger import BookingLedger, WorkspaceLocks
from spacebook.booking.model import (
    AvailabilityDto,
    BookingDto,
    BookingPageDto,
    BookingResult,
    BookingStatus,
    PaginationDto,
)
from spacebook.booking.notifications import (
    BookingEvent,
    BookingEventType,
    BookingNotifier,
    LoggingNotifier,
)
from spacebook.config import settings
from spacebook.database import utc_now
from spacebook.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


logger = logging.getLogger(__name__)


class BookingService:
    """Entry point for booking operations.

    Holds no state of its own: each call validates policy, asks the
    availability calculator for a fast pre-check and then lets the ledger
    reserve atomically. The pre-check only gives an early, friendly error;
    the ledger re-checks under its lock and is the one that decides.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Optional[BookingNotifier] = None,
        clock: Callable[[], datetime] = utc_now,
        advance_notice: Optional[timedelta] = None,
        locks: Optional[WorkspaceLocks] = None,
    ):
        self.clock = clock
        self.calculator = AvailabilityCalculator(session_factory)
        self.ledger = BookingLedger(session_factory, locks=locks, clock=clock)
        self.notifier = notifier or LoggingNotifier()
        self.advance_notice = (
            advance_notice
            if advance_notice is not None
            else timedelta(hours=settings.advance_notice_hours)
        )

    @property
    def buffer_notice(self) -> str:
        return f"All bookings require {self._notice_hours()}-hour advance notice"

    async def create_booking(
        self,
        user_id: str,
        workspace_id: str,
        start: datetime,
        end: datetime,
        attendees: int = 1,
        special_request: Optional[str] = None,
    ) -> BookingResult:
        """Validate, pre-check availability and reserve a slot"""
        start, end = validate_window(start, end)
        attendees = validate_attendees(attendees)
        if start < self.clock():
            raise ValidationError("Cannot book in the past")

        availability = await self.calculator.check_availability(
            workspace_id, start, end, attendees
        )
        self._ensure_capacity(attendees, availability)
        if not availability.is_available:
            raise ConflictError("Workspace not available for the requested time/slots")

        booking = await self.ledger.reserve(
            user_id, workspace_id, start, end, attendees, special_request
        )
        await self._emit(BookingEventType.CREATED, booking)

        return BookingResult(
            booking=booking,
            pending_approval=booking.status == BookingStatus.PENDING,
        )

    async def check_availability(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
        attendees: int = 1,
    ) -> AvailabilityDto:
        """Availability summary for a window that respects the advance-notice policy"""
        start, end = validate_window(start, end)
        attendees = validate_attendees(attendees)

        earliest_allowed_start = self.clock() + self.advance_notice
        if start < earliest_allowed_start:
            raise ValidationError(
                f"Bookings require at least {self._notice_hours()} hours advance notice"
            )

        availability = await self.calculator.check_availability(
            workspace_id, start, end, attendees
        )
        self._ensure_capacity(attendees, availability)
        return availability

    async def cancel_booking(self, booking_id: str, user_id: str) -> BookingDto:
        """Cancel one of the caller's bookings"""
        try:
            booking = await self.ledger.cancel(booking_id, user_id)
        except AuthorizationError as e:
            # Other users' bookings are reported as missing
            raise NotFoundError("Booking not found", e) from e

        await self._emit(BookingEventType.CANCELLED, booking)
        return booking

    async def get_booking(self, booking_id: str, user_id: str) -> BookingDto:
        return await self.ledger.get(booking_id, user_id)

    async def get_user_bookings(
        self,
        user_id: str,
        upcoming: bool = True,
        page: int = 1,
        limit: int = 10,
    ) -> BookingPageDto:
        """List upcoming or past bookings of a user"""
        bookings = await self.ledger.list_for_user(
            user_id, upcoming=upcoming, page=page, limit=limit
        )

        return BookingPageDto(
            items=bookings,
            pagination=PaginationDto(page=page, limit=limit, total=len(bookings)),
        )

    def _ensure_capacity(self, attendees: int, availability: AvailabilityDto) -> None:
        if attendees > availability.base_capacity:
            raise ValidationError(
                f"Workspace only accommodates {availability.base_capacity} attendees"
            )

    def _notice_hours(self) -> str:
        return f"{self.advance_notice.total_seconds() / 3600:g}"

    async def _emit(self, event_type: BookingEventType, booking: BookingDto) -> None:
        event = BookingEvent(type=event_type, booking=booking, occurred_at=self.clock())
        try:
            await self.notifier.notify(event)
        except Exception:
            # Committed changes stay committed when delivery fails
            logger.exception(f"Failed to dispatch {event_type.value} for booking {booking.id}")
