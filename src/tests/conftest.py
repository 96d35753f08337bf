"""Shared fixtures for remotedev tests.

Database tests run against a file-backed SQLite database through aiosqlite;
tables come from SQLModel metadata.
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from remotedev.adapters.sealer.fernet import FernetSealer
from remotedev.app.config import SealingConfig
from remotedev.core.interfaces.clock import Clock
from remotedev.core.models import AgentConfig
from remotedev.infra.postgresql import close_db, init_db
from remotedev.services.workspace_service import create_workspace

DNS_ZONE = "workspaces.example.dev"


class FakeClock(Clock):
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 1.0) -> datetime:
        self._now = self._now + timedelta(seconds=seconds)
        return self._now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sealer() -> FernetSealer:
    """Sealer with a cheap key derivation for tests."""
    return FernetSealer(
        SealingConfig(secret="test-secret", salt="test-salt", iterations=1_000)
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh SQLite database with all tables."""
    engine = await init_db(f"sqlite+aiosqlite:///{tmp_path / 'remotedev.db'}", create_tables=True)
    yield engine
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_agent_config(db_session: AsyncSession, clock: FakeClock):
    """Factory that persists an AgentConfig row."""

    async def _make(
        agent_id: str = "agent-1",
        enabled: bool = True,
        dns_zone: str = DNS_ZONE,
        workspaces_quota: int = -1,
        workspaces_per_user_quota: int = -1,
    ) -> AgentConfig:
        config = AgentConfig(
            agent_id=agent_id,
            enabled=enabled,
            dns_zone=dns_zone,
            workspaces_quota=workspaces_quota,
            workspaces_per_user_quota=workspaces_per_user_quota,
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        db_session.add(config)
        await db_session.commit()
        return config

    return _make


@pytest.fixture
def make_workspace(db_session: AsyncSession, clock: FakeClock, sealer: FernetSealer):
    """Factory that creates a workspace through the service layer."""

    async def _make(
        user_id: str = "user-1",
        agent_id: str = "agent-1",
        desired_state: str = "Running",
        project_id: str = "project-1",
        **kwargs,
    ):
        return await create_workspace(
            db_session,
            user_id=user_id,
            project_id=project_id,
            agent_id=agent_id,
            desired_state=desired_state,
            editor=kwargs.pop("editor", "webide"),
            max_hours_before_termination=kwargs.pop("max_hours_before_termination", 24),
            clock=clock,
            sealer=sealer,
            **kwargs,
        )

    return _make
