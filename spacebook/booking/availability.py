"""Availability of a workspace over a time window.

A booking conflicts with a window when it is active (pending or confirmed)
and the two half-open intervals intersect. The same predicate is used in
Python (``overlaps``) and in SQL (``conflicting_bookings``).

Occupancy is exclusive: an active booking holds the whole workspace for its
window. Summed attendees are still reported so callers can show how full the
room is, but any conflicting booking makes the window unavailable. This is
the rule the ledger (and the PostgreSQL exclusion constraint) enforces at
commit time.
"""

import logging
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from spacebook.booking.db import BookingDB
from spacebook.booking.model import ACTIVE_STATUSES, AvailabilityDto
from spacebook.catalog.db import WorkspaceDB
from spacebook.catalog.repository import WorkspaceRepository
from spacebook.errors import NotFoundError, PersistenceError, ValidationError


logger = logging.getLogger(__name__)


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and b_start < a_end


def as_utc(value: datetime, field: str = "time") -> datetime:
    """Normalize an instant to aware UTC; naive values are taken as UTC."""
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid {field} format")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_window(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    start = as_utc(start, "start time")
    end = as_utc(end, "end time")
    if start >= end:
        raise ValidationError("End time must be after start time")
    return start, end


def validate_attendees(attendees: int) -> int:
    if isinstance(attendees, bool) or not isinstance(attendees, int) or attendees < 1:
        raise ValidationError("Attendees must be a positive number")
    return attendees


async def conflicting_bookings(
    session: AsyncSession,
    workspace_id: str,
    start: datetime,
    end: datetime,
) -> List[BookingDB]:
    """Active bookings on the workspace intersecting [start, end)."""
    result = await session.execute(
        select(BookingDB)
        .where(BookingDB.workspace_id == workspace_id)
        .where(BookingDB.status.in_([status.value for status in ACTIVE_STATUSES]))
        .where(BookingDB.start_time < end)
        .where(BookingDB.end_time > start)
        .order_by(BookingDB.start_time)
    )
    return list(result.scalars().all())


def summarize(
    workspace: WorkspaceDB,
    start: datetime,
    end: datetime,
    attendees: int,
    conflicts: Sequence[BookingDB],
) -> AvailabilityDto:
    current_attendees = sum(booking.attendees for booking in conflicts)
    available_slots = workspace.base_capacity - current_attendees

    return AvailabilityDto(
        workspace_id=str(workspace.id),
        start_time=start,
        end_time=end,
        base_capacity=workspace.base_capacity,
        current_attendees=current_attendees,
        available_slots=available_slots,
        conflicting_bookings=len(conflicts),
        is_available=not conflicts and available_slots >= attendees,
        requires_approval=workspace.type.requires_approval,
        workspace_type=workspace.type.name,
        location=workspace.location,
    )


class AvailabilityCalculator:
    """Read-only availability checks; safe to call concurrently."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def check_availability(
        self,
        workspace_id: str,
        start: datetime,
        end: datetime,
        attendees: int = 1,
        include_inactive: bool = False,
    ) -> AvailabilityDto:
        start, end = validate_window(start, end)
        attendees = validate_attendees(attendees)

        try:
            async with self.session_factory() as session:
                # One transaction so the lookup and the conflict scan share a snapshot
                async with session.begin():
                    workspace = await WorkspaceRepository(session).get_by_id(
                        workspace_id, include_inactive=include_inactive
                    )
                    if not workspace:
                        raise NotFoundError(f"Workspace not found with ID: {workspace_id}")

                    conflicts = await conflicting_bookings(
                        session, workspace.id, start, end
                    )
                    return summarize(workspace, start, end, attendees, conflicts)
        except SQLAlchemyError as e:
            logger.error(f"Error checking availability for workspace {workspace_id}: {e}")
            raise PersistenceError("Availability check failed", e) from e

