"""Test fixtures — a fresh in-memory store and hub per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite, StaticPool so
   every session sees the same database) with the tables created.
2. get_db is overridden so every request opens a session on that engine.
3. Each test builds its own app via create_app(), so the BroadcastHub on
   app.state starts empty and never leaks connections between tests.

FakeTransport stands in for a Starlette WebSocket: it records every frame
sent to it and can be told to fail, to exercise best-effort delivery.
"""

import os

os.environ.setdefault("TASKIFY_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskify.db.engine import get_db, init_db
from taskify.main import create_app
from taskify.realtime.hub import BroadcastHub, Connection


class FakeTransport:
    """Records frames like a WebSocket would put them on the wire."""

    def __init__(self, fail: bool = False):
        self.sent: list[str] = []
        self.fail = fail
        self.closed = False

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def hub():
    return BroadcastHub()


@pytest.fixture
def app(session_factory, hub):
    app = create_app()
    app.state.hub = hub

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client wired to the test app.

    Background tasks (the hub broadcasts) finish before each request returns.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def live(hub):
    """Factory for connections registered with the test hub."""

    async def _open(fail: bool = False) -> tuple[Connection, FakeTransport]:
        transport = FakeTransport(fail=fail)
        connection = Connection(transport)
        await hub.register(connection)
        return connection, transport

    return _open
