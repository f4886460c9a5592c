"""Pytest fixtures for lead sync tests."""

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leadsync.database import Base, get_db
from leadsync.main import app
from leadsync.models import Account, AccountRole, Team
from leadsync.models.source import source_lead_table, source_metadata, source_remarks_table
from leadsync.routers.sync import get_source_client
from leadsync.services.source_client import SourceClient

# Both stores use SQLite in memory; StaticPool keeps one connection so the
# schema survives between sessions.
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _memory_engine() -> AsyncEngine:
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Target store engine with the full schema."""
    engine = _memory_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def source_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Stand-in for the external lead database."""
    engine = _memory_engine()
    async with engine.begin() as conn:
        await conn.run_sync(source_metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def source_client(source_engine) -> SourceClient:
    return SourceClient(engine=source_engine, max_retries=2, retry_base_delay=0)


@pytest_asyncio.fixture
async def accounts(db_session) -> dict[str, Account]:
    """Admin, sales head and one BD account in the North team."""
    admin = Account(name="System Admin", email="admin@mediend.local", password_hash="x", role=AccountRole.ADMIN.value)
    head = Account(name="Sunita Rao", email="sunita@mediend.local", password_hash="x", role=AccountRole.SALES_HEAD.value)
    db_session.add_all([admin, head])
    await db_session.flush()

    team = Team(name="North Team", circle="North", sales_head_id=head.id)
    db_session.add(team)
    await db_session.flush()

    ravi = Account(
        name="Ravi Kumar",
        email="ravi.kumar@mediend.local",
        password_hash="x",
        role=AccountRole.BD.value,
        team_id=team.id,
    )
    db_session.add(ravi)
    await db_session.commit()

    return {"admin": admin, "head": head, "ravi": ravi, "team": team}


def make_source_lead(lead_id: int, lead_date: datetime | None, **overrides: Any) -> dict[str, Any]:
    """A source `lead` row with sensible defaults, keyed by source column names."""
    row = {
        "id": lead_id,
        "Lead_Date": lead_date,
        "LeadEntryDate": None,
        "create_date": lead_date,
        "update_date": lead_date,
        "Patient_Name": f"Patient {lead_id}",
        "Patient_Number": f"98100{lead_id:05d}",
        "BDM": "Ravi",
        "Circle": "North",
        "Status": "1",
        "Treatment": "5",
        "Category": "General Surgery",
        "Source": "1",
        "Age": 40,
        "Sex": "Male",
        "Notification": 0,
        "email": 1,
        "sms": 0,
        "whatsapp_msg": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_lead():
    """Factory for source lead rows."""
    return make_source_lead


@pytest.fixture
def seed_leads(source_engine):
    """Insert rows into the source `lead` table."""

    async def _seed(rows: list[dict[str, Any]]) -> None:
        async with source_engine.begin() as conn:
            for row in rows:
                await conn.execute(insert(source_lead_table).values(**row))

    return _seed


@pytest.fixture
def seed_remarks(source_engine):
    """Insert rows into the source `lead_remarks` table."""

    async def _seed(rows: list[dict[str, Any]]) -> None:
        async with source_engine.begin() as conn:
            for row in rows:
                await conn.execute(insert(source_remarks_table).values(**row))

    return _seed


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, source_client: SourceClient) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and source overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_source_client] = lambda: source_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
