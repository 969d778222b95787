"""Shared pytest fixtures for the povsync test suite.

Provides:
- db_engine: in-memory SQLite async engine with all tables and FK enforcement
- session_factory: one-session-per-operation factory bound to db_engine
- db_session: plain session for repository tests (rolled back at teardown)
- actor / identity / notifier / store: collaborator doubles
- sync: EngagementSync wired to all of the above, blobs under tmp_path
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from uuid_extensions import uuid7

from povsync.collaborators import Actor, RecordingNotifier, StaticIdentity
from povsync.config.settings import Settings
from povsync.core.unit_of_work import OperationContext
from povsync.db.session import Base, build_session_factory, enable_sqlite_foreign_keys
import povsync.db.tables  # noqa: F401 - register ORM models on Base.metadata
from povsync.models.inputs import EngagementCreate
from povsync.operations import EngagementSync
from povsync.storage import BlobStorage
from povsync.store import AggregateStore


@pytest.fixture
def anyio_backend():
    """The async stack (SQLAlchemy asyncio, aiosqlite, asyncpg) runs on asyncio only."""
    return "asyncio"


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with all tables."""
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    """Session for repository tests. Never committed; rolled back at teardown."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        OBJECT_STORAGE_PATH=str(tmp_path / "blobs"),
        DOCUMENTS_BUCKET="test-documents",
    )


@pytest.fixture
def actor() -> Actor:
    return Actor(id=uuid7(), email="owner@example.com", display_name="Olivia Owner")


@pytest.fixture
def identity(actor) -> StaticIdentity:
    return StaticIdentity(actor)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> AggregateStore:
    return AggregateStore()


@pytest.fixture
def ctx(store, session_factory, identity, notifier, settings) -> OperationContext:
    return OperationContext(
        store=store,
        session_factory=session_factory,
        identity=identity,
        notifier=notifier,
        storage=BlobStorage(settings.OBJECT_STORAGE_PATH),
        settings=settings,
    )


@pytest.fixture
def sync(ctx) -> EngagementSync:
    return EngagementSync(ctx)


@pytest.fixture
async def engagement(sync):
    """A freshly created (and loaded) engagement."""
    return await sync.engagements.create(
        EngagementCreate(title="Acme POV", customer_name="Acme Corp"),
    )
