import os
from datetime import datetime, timedelta, timezone

# Settings are read on import; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "spacebook-test-signing-secret-0123456789"

import jwt
import pytest
from sqlalchemy import func, select

from spacebook.booking.db import BookingDB
from spacebook.catalog.model import CreateWorkspacePayload
from spacebook.catalog.service import WorkspaceService
from spacebook.config import settings
from spacebook.database import build_engine, build_session_factory, close_db, create_tables


NOW = datetime(2025, 7, 20, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.events = []
        self.fail = fail

    async def notify(self, event) -> None:
        self.events.append(event)
        if self.fail:
            raise RuntimeError("mail relay unavailable")


def make_token(user_id: str = "user-1", role: str = "user", **claims) -> str:
    payload = {"sub": user_id, "role": role, **claims}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str = "user-1", role: str = "user") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


async def count_bookings(session_factory, workspace_id=None) -> int:
    query = select(func.count()).select_from(BookingDB)
    if workspace_id is not None:
        query = query.where(BookingDB.workspace_id == workspace_id)
    async with session_factory() as session:
        result = await session.execute(query)
        return result.scalar_one()


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'spacebook.db'}")
    await create_tables(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
async def workspace_service(session_factory):
    service = WorkspaceService(session_factory)
    await service.seed_defaults()
    return service


@pytest.fixture
async def team_space(workspace_service):
    """Eight-seat space that confirms bookings immediately"""
    return await workspace_service.create_workspace(
        CreateWorkspacePayload(
            name="Team Space",
            type="hot_desk",
            floor=3,
            location="East wing",
            baseCapacity=8,
            amenities=[{"name": "whiteboard", "quantity": 2}],
        )
    )


@pytest.fixture
async def meeting_room(workspace_service):
    """Room whose bookings wait for approval"""
    return await workspace_service.create_workspace(
        CreateWorkspacePayload(
            name="Board Room",
            type="meeting_room",
            floor=5,
            location="North wing",
            amenities=[{"name": "projector"}],
        )
    )


@pytest.fixture
async def hot_desk(workspace_service):
    return await workspace_service.create_workspace(
        CreateWorkspacePayload(name="Desk 12", type="hot_desk", floor=1, location="Open area")
    )
