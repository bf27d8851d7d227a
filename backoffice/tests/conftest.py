"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from backoffice.app.main import app
from backoffice.app.db.session import get_db, Base
from backoffice.app.core.jwt import issue_actor_token
from backoffice.app.domain.ledger.accounts import AccountService

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

ACTOR = "finance.tester"


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply overrides once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}

@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session

@pytest.fixture
def auth_headers():
    token = issue_actor_token(ACTOR)
    return {"Authorization": f"Bearer {token}"}

# Master data
@pytest.fixture
async def usdt(db_session):
    return await AccountService.create_currency(db_session, "USDT", "Tether", actor_id=ACTOR)

@pytest.fixture
async def cny(db_session):
    return await AccountService.create_currency(db_session, "CNY", "Renminbi", symbol="¥", actor_id=ACTOR)

@pytest.fixture
async def account(db_session, usdt):
    """USDT bank account starting at zero."""
    return await AccountService.create_account(db_session, "Main USDT", "USDT", actor_id=ACTOR)

@pytest.fixture
async def funded_account(db_session, usdt):
    """USDT account with a 1,000,000.00 opening balance."""
    return await AccountService.create_account(
        db_session, "Payroll USDT", "USDT", opening_cents=100_000_000, actor_id=ACTOR
    )
