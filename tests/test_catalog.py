import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError

from spacebook.catalog.model import CreateWorkspacePayload
from spacebook.catalog.repository import WorkspaceRepository
from spacebook.catalog.service import WorkspaceService
from spacebook.database import build_engine, build_session_factory
from spacebook.errors import NotFoundError, PersistenceError


async def test_seed_defaults_is_idempotent(workspace_service):
    await workspace_service.seed_defaults()

    types = await workspace_service.list_types()

    assert [t.name for t in types] == ["hot_desk", "meeting_room"]


async def test_capacity_falls_back_to_type_default(hot_desk, meeting_room, team_space):
    assert hot_desk.base_capacity == 1
    assert meeting_room.base_capacity == 8
    assert team_space.base_capacity == 8


async def test_create_workspace_with_amenities(workspace_service):
    workspace = await workspace_service.create_workspace(
        CreateWorkspacePayload(
            name="Studio",
            type="meeting_room",
            floor=2,
            location="South wing",
            typeSpecificAttributes={"video_conferencing": True},
            amenities=[
                {"name": "projector", "quantity": 1},
                {"name": "standing desk", "quantity": 4, "notes": "height adjustable"},
            ],
        )
    )

    fetched = await workspace_service.get_workspace(workspace.id)

    assert fetched.type.requires_approval
    assert fetched.type_specific_attributes == {"video_conferencing": True}
    assert {(a.name, a.quantity) for a in fetched.amenities} == {
        ("projector", 1),
        ("standing desk", 4),
    }


async def test_unknown_type_is_not_found(workspace_service):
    with pytest.raises(NotFoundError, match="Workspace type not found: sauna"):
        await workspace_service.create_workspace(
            CreateWorkspacePayload(name="Spa", type="sauna", floor=0, location="Basement")
        )


async def test_list_workspaces_filters(workspace_service, hot_desk, team_space, meeting_room):
    on_first_floor = await workspace_service.list_workspaces(floor=1)
    assert [w.id for w in on_first_floor] == [hot_desk.id]

    desks = await workspace_service.list_workspaces(type_id=hot_desk.type.id)
    assert {w.id for w in desks} == {hot_desk.id, team_space.id}

    page = await workspace_service.list_workspaces(limit=2, offset=1)
    assert [w.name for w in page] == ["Desk 12", "Team Space"]


async def test_deactivated_workspace_is_hidden(workspace_service, session_factory, hot_desk):
    await workspace_service.deactivate_workspace(hot_desk.id)

    with pytest.raises(NotFoundError):
        await workspace_service.get_workspace(hot_desk.id)
    assert await workspace_service.list_workspaces() == []
    assert len(await workspace_service.list_workspaces(include_inactive=True)) == 1

    async with session_factory() as session:
        workspace = await WorkspaceRepository(session).get_by_id(
            hot_desk.id, include_inactive=True
        )
    assert workspace.is_active is False


async def test_deactivate_unknown_workspace(workspace_service):
    with pytest.raises(NotFoundError):
        await workspace_service.deactivate_workspace("missing")


async def test_concurrent_seeding_settles_on_one_set_of_defaults(session_factory):
    """Workers booting together each seed the same database"""
    first = WorkspaceService(session_factory)
    second = WorkspaceService(session_factory)

    results = await asyncio.gather(
        first.seed_defaults(), second.seed_defaults(), return_exceptions=True
    )

    assert results == [None, None]
    assert [t.name for t in await first.list_types()] == ["hot_desk", "meeting_room"]


async def test_storage_failures_become_persistence_errors(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'catalog.db'}")
    service = WorkspaceService(build_session_factory(engine))

    try:
        with pytest.raises(PersistenceError, match="Failed to fetch workspace types"):
            await service.list_types()
        with pytest.raises(PersistenceError, match="Failed to fetch workspaces"):
            await service.list_workspaces()
        with pytest.raises(PersistenceError) as excinfo:
            await service.get_workspace("any")
        assert isinstance(excinfo.value.cause, SQLAlchemyError)
        with pytest.raises(PersistenceError, match="Failed to deactivate workspace"):
            await service.deactivate_workspace("any")
    finally:
        await engine.dispose()
