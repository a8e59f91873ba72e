# pyrefly: ignore-all-errors

import asyncio
import logging
import uuid
import weakref
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from spacebook.booking.availability import (
    conflicting_bookings,
    validate_attendees,
    validate_window,
)
from spacebook.booking.db import EXCLUSION_CONSTRAINT_NAME, BookingDB
from spacebook.booking.model import (
    ACTIVE_STATUSES,
    BookingDto,
    BookingStatus,
    effective_status,
)
from spacebook.catalog.db import WorkspaceAmenityDB, WorkspaceDB
from spacebook.catalog.repository import WorkspaceRepository
from spacebook.database import utc_now
from spacebook.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)


logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "The selected time slot is already booked"

# PostgreSQL exclusion_violation
EXCLUSION_VIOLATION_SQLSTATE = "23P01"


def _is_overlap_violation(error: IntegrityError) -> bool:
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    return sqlstate == EXCLUSION_VIOLATION_SQLSTATE or EXCLUSION_CONSTRAINT_NAME in str(
        error.orig
    )


def _with_workspace(query):
    return query.options(
        selectinload(BookingDB.workspace).selectinload(WorkspaceDB.type),
        selectinload(BookingDB.workspace)
        .selectinload(WorkspaceDB.amenities)
        .selectinload(WorkspaceAmenityDB.amenity),
    )


class WorkspaceLocks:
    """In-process mutual exclusion keyed by workspace id.

    Serializes check-then-insert for one workspace inside this process. The
    row lock and the storage overlap guard cover writers in other processes.
    A lock lives only while some reservation holds or awaits it.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def for_workspace(self, workspace_id: str) -> asyncio.Lock:
        lock = self._locks.get(workspace_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[workspace_id] = lock
        return lock


class BookingLedger:
    """Authoritative store of bookings.

    Every mutation runs in its own transaction; an exception anywhere inside
    it rolls the whole unit back, so a failed reservation leaves no row.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: Optional[WorkspaceLocks] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session_factory = session_factory
        self.locks = locks if locks is not None else WorkspaceLocks()
        self.clock = clock

    async def reserve(
        self,
        user_id: str,
        workspace_id: str,
        start: datetime,
        end: datetime,
        attendees: int = 1,
        special_request: Optional[str] = None,
    ) -> BookingDto:
        start, end = validate_window(start, end)
        attendees = validate_attendees(attendees)
        now = self.clock()
        if start < now:
            raise ValidationError("Cannot book in the past")

        async with self.locks.for_workspace(workspace_id):
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        workspace = await WorkspaceRepository(session).get_by_id(
                            workspace_id, for_update=True
                        )
                        if not workspace:
                            raise NotFoundError(f"Workspace not found with ID: {workspace_id}")

                        if attendees > workspace.base_capacity:
                            raise ValidationError(
                                f"Attendees exceed workspace capacity of {workspace.base_capacity}"
                            )

                        if await conflicting_bookings(session, workspace.id, start, end):
                            raise ConflictError(SLOT_TAKEN_MESSAGE)

                        status = (
                            BookingStatus.PENDING
                            if workspace.type.requires_approval
                            else BookingStatus.CONFIRMED
                        )
                        booking = BookingDB(
                            id=str(uuid.uuid4()),
                            user_id=user_id,
                            workspace_id=workspace.id,
                            workspace=workspace,
                            start_time=start,
                            end_time=end,
                            status=status.value,
                            attendees=attendees,
                            special_requests=special_request,
                            created_at=now,
                            updated_at=now,
                        )
                        session.add(booking)
                        await session.flush()
                        dto = self._map_to_booking_dto(booking, now)
            except IntegrityError as e:
                if _is_overlap_violation(e):
                    logger.warning(
                        f"Overlapping reservation rejected by storage for workspace {workspace_id}"
                    )
                    raise ConflictError(SLOT_TAKEN_MESSAGE, e) from e
                logger.error(f"Integrity error creating booking: {e}")
                raise PersistenceError("Failed to create booking", e) from e
            except SQLAlchemyError as e:
                logger.error(f"Error creating booking: {e}")
                raise PersistenceError("Failed to create booking", e) from e

        logger.info(
            f"Booking {dto.id} reserved on workspace {workspace_id} "
            f"[{start.isoformat()}, {end.isoformat()}) as {dto.status.value}"
        )
        return dto

    async def cancel(self, booking_id: str, user_id: str) -> BookingDto:
        now = self.clock()
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        _with_workspace(select(BookingDB))
                        .where(BookingDB.id == booking_id)
                        .with_for_update()
                    )
                    booking = result.scalar_one_or_none()
                    if not booking:
                        raise NotFoundError("Booking not found")
                    if booking.user_id != user_id:
                        raise AuthorizationError("Booking belongs to another user")

                    current = effective_status(booking.status, booking.end_time, now)
                    if current not in ACTIVE_STATUSES:
                        raise ConflictError(
                            "Cannot cancel a completed or already cancelled booking"
                        )

                    booking.status = BookingStatus.CANCELLED.value
                    booking.updated_at = now
                    await session.flush()
                    dto = self._map_to_booking_dto(booking, now)
        except SQLAlchemyError as e:
            logger.error(f"Error cancelling booking {booking_id}: {e}")
            raise PersistenceError("Failed to cancel booking", e) from e

        logger.info(f"Booking {booking_id} cancelled by user {user_id}")
        return dto

    async def get(self, booking_id: str, user_id: str) -> BookingDto:
        now = self.clock()
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    _with_workspace(select(BookingDB))
                    .where(BookingDB.id == booking_id)
                    .where(BookingDB.user_id == user_id)
                )
                booking = result.scalar_one_or_none()
                if not booking:
                    raise NotFoundError("Booking not found")
                return self._map_to_booking_dto(booking, now)
        except SQLAlchemyError as e:
            logger.error(f"Error getting booking {booking_id}: {e}")
            raise PersistenceError("Failed to fetch booking", e) from e

    async def list_for_user(
        self,
        user_id: str,
        upcoming: bool = True,
        page: int = 1,
        limit: int = 10,
    ) -> List[BookingDto]:
        if page < 1:
            raise ValidationError("Page must be a positive number")
        if limit < 1:
            raise ValidationError("Limit must be a positive number")

        now = self.clock()
        query = _with_workspace(select(BookingDB)).where(BookingDB.user_id == user_id)
        if upcoming:
            query = query.where(BookingDB.end_time > now).order_by(
                BookingDB.start_time.asc(), BookingDB.id
            )
        else:
            query = query.where(BookingDB.end_time <= now).order_by(
                BookingDB.start_time.desc(), BookingDB.id
            )

        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    query.offset((page - 1) * limit).limit(limit)
                )
                return [
                    self._map_to_booking_dto(booking, now)
                    for booking in result.scalars().all()
                ]
        except SQLAlchemyError as e:
            logger.error(f"Error listing bookings for user {user_id}: {e}")
            raise PersistenceError("Failed to fetch bookings", e) from e

    def _map_to_booking_dto(self, booking: BookingDB, now: datetime) -> BookingDto:
        workspace = booking.workspace
        return BookingDto(
            id=str(booking.id),
            user_id=booking.user_id,
            workspace_id=str(booking.workspace_id),
            start_time=booking.start_time,
            end_time=booking.end_time,
            attendees=booking.attendees,
            status=effective_status(booking.status, booking.end_time, now),
            special_requests=booking.special_requests,
            workspace_name=workspace.name,
            workspace_type=workspace.type.name,
            location=workspace.location,
            amenities=[link.amenity.name for link in workspace.amenities],
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )
