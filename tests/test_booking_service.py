import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from spacebook.booking.availability import overlaps
from spacebook.booking.model import BookingStatus
from spacebook.booking.notifications import BookingEventType
from spacebook.booking.service import BookingService
from spacebook.errors import ConflictError, NotFoundError, ValidationError

from conftest import NOW, RecordingNotifier, count_bookings


START = datetime(2025, 7, 25, 14, 0, tzinfo=timezone.utc)
END = datetime(2025, 7, 25, 16, 0, tzinfo=timezone.utc)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def booking_service(session_factory, clock, notifier):
    return BookingService(session_factory, notifier=notifier, clock=clock)


async def test_create_booking_confirmed(booking_service, notifier, team_space):
    result = await booking_service.create_booking("user-1", team_space.id, START, END, 4)

    assert not result.pending_approval
    assert result.booking.status == BookingStatus.CONFIRMED
    assert [event.type for event in notifier.events] == [BookingEventType.CREATED]
    assert notifier.events[0].booking.id == result.booking.id
    assert notifier.events[0].occurred_at == NOW


async def test_create_booking_pending_approval(booking_service, meeting_room):
    result = await booking_service.create_booking("user-1", meeting_room.id, START, END)

    assert result.pending_approval
    assert result.booking.status == BookingStatus.PENDING


async def test_capacity_boundary(booking_service, session_factory, team_space):
    with pytest.raises(ValidationError, match="only accommodates 8 attendees"):
        await booking_service.create_booking("user-1", team_space.id, START, END, 9)
    assert await count_bookings(session_factory) == 0

    result = await booking_service.create_booking("user-1", team_space.id, START, END, 8)
    assert result.booking.attendees == 8


async def test_create_booking_rejects_bad_input(booking_service, team_space):
    with pytest.raises(ValidationError):
        await booking_service.create_booking("user-1", team_space.id, END, START)
    with pytest.raises(ValidationError):
        await booking_service.create_booking("user-1", team_space.id, START, END, 0)
    with pytest.raises(ValidationError, match="Cannot book in the past"):
        await booking_service.create_booking(
            "user-1", team_space.id, NOW - timedelta(hours=1), NOW + timedelta(hours=1)
        )


async def test_create_booking_unknown_workspace(booking_service, workspace_service):
    with pytest.raises(NotFoundError):
        await booking_service.create_booking("user-1", "missing", START, END)


async def test_overlap_is_rejected_by_precheck(booking_service, notifier, team_space):
    await booking_service.create_booking("user-1", team_space.id, START, END, 2)

    with pytest.raises(
        ConflictError, match="Workspace not available for the requested time/slots"
    ):
        await booking_service.create_booking(
            "user-2", team_space.id, START + timedelta(hours=1), END + timedelta(hours=1)
        )
    assert len(notifier.events) == 1


async def test_concurrent_create_booking_race(booking_service, session_factory, team_space):
    first, second = await asyncio.gather(
        booking_service.create_booking("user-1", team_space.id, START, END),
        booking_service.create_booking("user-2", team_space.id, START, END),
        return_exceptions=True,
    )

    outcomes = [first, second]
    assert sum(1 for outcome in outcomes if isinstance(outcome, ConflictError)) == 1
    assert sum(1 for outcome in outcomes if not isinstance(outcome, Exception)) == 1
    assert await count_bookings(session_factory, team_space.id) == 1


async def test_random_attempts_never_leave_overlapping_active_bookings(
    booking_service, team_space
):
    rng = random.Random(7)
    base = datetime(2025, 8, 1, 8, 0, tzinfo=timezone.utc)

    for n in range(40):
        start = base + timedelta(minutes=15 * rng.randint(0, 40))
        end = start + timedelta(minutes=15 * rng.randint(1, 8))
        try:
            result = await booking_service.create_booking(
                f"user-{n % 4}", team_space.id, start, end
            )
        except ConflictError:
            continue
        if rng.random() < 0.2:
            await booking_service.cancel_booking(result.booking.id, result.booking.user_id)

    active = []
    for user in range(4):
        page = await booking_service.get_user_bookings(f"user-{user}", limit=100)
        active.extend(
            b for b in page.items
            if b.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)
        )

    assert active
    for i, a in enumerate(active):
        for b in active[i + 1:]:
            assert not overlaps(a.start_time, a.end_time, b.start_time, b.end_time)


async def test_advance_notice_boundary(booking_service, team_space):
    earliest = NOW + timedelta(hours=24)

    availability = await booking_service.check_availability(
        team_space.id, earliest, earliest + timedelta(hours=1)
    )
    assert availability.is_available

    with pytest.raises(ValidationError, match="at least 24 hours advance notice"):
        await booking_service.check_availability(
            team_space.id,
            earliest - timedelta(seconds=1),
            earliest + timedelta(hours=1),
        )


async def test_advance_notice_is_configurable(session_factory, clock, team_space):
    service = BookingService(session_factory, clock=clock, advance_notice=timedelta(hours=2))

    availability = await service.check_availability(
        team_space.id, NOW + timedelta(hours=2), NOW + timedelta(hours=3)
    )

    assert availability.is_available
    assert service.buffer_notice == "All bookings require 2-hour advance notice"


async def test_check_availability_capacity(booking_service, team_space):
    with pytest.raises(ValidationError):
        await booking_service.check_availability(team_space.id, START, END, 9)


async def test_book_check_cancel_check(booking_service, team_space):
    """Full lifecycle of one booking seen through availability"""
    result = await booking_service.create_booking(
        "user-1", team_space.id, START, END, attendees=4
    )
    assert result.booking.status == BookingStatus.CONFIRMED

    window = (datetime(2025, 7, 25, 15, 0, tzinfo=timezone.utc),
              datetime(2025, 7, 25, 17, 0, tzinfo=timezone.utc))
    availability = await booking_service.check_availability(team_space.id, *window, 6)
    assert not availability.is_available
    assert availability.current_attendees == 4
    assert availability.available_slots == 4

    cancelled = await booking_service.cancel_booking(result.booking.id, "user-1")
    assert cancelled.status == BookingStatus.CANCELLED

    availability = await booking_service.check_availability(team_space.id, *window, 6)
    assert availability.is_available
    assert availability.available_slots == 8


async def test_cancel_by_other_user_looks_missing(booking_service, notifier, team_space):
    result = await booking_service.create_booking("user-1", team_space.id, START, END)

    with pytest.raises(NotFoundError, match="Booking not found"):
        await booking_service.cancel_booking(result.booking.id, "user-2")

    booking = await booking_service.get_booking(result.booking.id, "user-1")
    assert booking.status == BookingStatus.CONFIRMED
    assert [event.type for event in notifier.events] == [BookingEventType.CREATED]


async def test_cancel_emits_event_and_is_not_repeatable(
    booking_service, notifier, team_space
):
    result = await booking_service.create_booking("user-1", team_space.id, START, END)

    await booking_service.cancel_booking(result.booking.id, "user-1")
    with pytest.raises(ConflictError):
        await booking_service.cancel_booking(result.booking.id, "user-1")

    assert [event.type for event in notifier.events] == [
        BookingEventType.CREATED,
        BookingEventType.CANCELLED,
    ]


async def test_notifier_failure_keeps_booking(session_factory, clock, team_space):
    service = BookingService(
        session_factory, notifier=RecordingNotifier(fail=True), clock=clock
    )

    result = await service.create_booking("user-1", team_space.id, START, END)

    assert await count_bookings(session_factory) == 1
    assert (await service.get_booking(result.booking.id, "user-1")).id == result.booking.id


async def test_user_bookings_pagination_metadata(booking_service, team_space):
    for day in range(3):
        await booking_service.create_booking(
            "user-1", team_space.id, START + timedelta(days=day), END + timedelta(days=day)
        )

    page = await booking_service.get_user_bookings("user-1", page=2, limit=2)

    assert len(page.items) == 1
    assert page.pagination.page == 2
    assert page.pagination.limit == 2
    assert page.pagination.total == 1
