"""
Resource Monitor test fixtures

Store-level tests run against a throwaway SQLite file per test; the HTTP tests
drive the FastAPI app in-process through httpx with get_db / get_broadcaster
overridden, so no PostgreSQL or Redis is needed.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.core.broadcast import RedisBroadcaster, get_broadcaster
from app.db.database import Base, get_db
from app.db.seed import seed_catalog
from app.main import app
from app.models.resource import ResourceType


class RecordingBroadcaster(RedisBroadcaster):
    """Keeps published events in memory; listen() replays whatever was queued."""

    def __init__(self, queued=None):
        super().__init__(redis=None, channel="test:resources")
        self.events: list[tuple[str, dict]] = []
        self.queued = list(queued or [])

    async def publish(self, event, data):
        self.events.append((event, data))
        return 1

    async def listen(self):
        for message in self.queued:
            yield message


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'resources.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        await seed_catalog(session)
        yield session


@pytest_asyncio.fixture
async def type_ids(db) -> dict[str, int]:
    result = await db.execute(select(ResourceType.name, ResourceType.id))
    return {name: type_id for name, type_id in result.all()}


@pytest_asyncio.fixture
async def broadcaster():
    return RecordingBroadcaster()


@pytest_asyncio.fixture
async def client(session_factory, db, broadcaster):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
