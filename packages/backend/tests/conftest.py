"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Auth secrets and a cheap bcrypt work factor are put in the
   environment *before* svipp is imported, because create_app()
   refuses to build without them.
2. Each test gets its own in-memory SQLite database (aiosqlite +
   StaticPool so every session sees the same connection). Tables are
   created from the models, and the whole database vanishes afterwards.
3. Only get_db is overridden. Authentication is never mocked — tests
   register, log in and send real tokens through the real pipeline.
"""

import os

os.environ.setdefault("SVIPP_JWT_SECRET", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("SVIPP_PASSWORD_PEPPER", "test-pepper")
os.environ.setdefault("SVIPP_BCRYPT_ROUNDS", "4")
os.environ.setdefault("SVIPP_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SVIPP_ENVIRONMENT", "development")

import uuid  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from svipp.db.engine import get_db  # noqa: E402
from svipp.db.models import Base, Customer, Driver  # noqa: E402
from svipp.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

DEFAULT_PASSWORD = "Secret123!"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with the app's get_db pointed at the test database.

    Learn: Auth is NOT overridden. Protected routes need a real token
    from /auth/register or /auth/login (see the `account` fixture).
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Auth components (the ones the app was built with) ─────────


@pytest.fixture()
def hasher():
    return app.state.password_hasher


@pytest.fixture()
def issuer():
    return app.state.token_issuer


@pytest.fixture()
def validator():
    return app.state.token_validator


# ─── Accounts and owned resources ──────────────────────────────


def registration(**overrides) -> dict:
    """A valid registration body with unique email and phone."""
    suffix = uuid.uuid4().int % 10**8
    body = {
        "first_name": "Kari",
        "last_name": "Nordmann",
        "email": f"kari-{suffix}@example.no",
        "phone_number": f"9{suffix:08d}",
        "password": DEFAULT_PASSWORD,
    }
    body.update(overrides)
    return body


async def register(client, **overrides) -> dict:
    """Register through the API; return body + token + password.

    Clears the client's cookie jar afterwards so each test decides
    explicitly whether to authenticate by header or by cookie.
    """
    body = registration(**overrides)
    r = await client.post("/api/v1/auth/register", json=body)
    assert r.status_code == 201, r.text
    client.cookies.clear()
    data = r.json()
    return {
        "token": data["token"],
        "user": data["user"],
        "password": body["password"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest_asyncio.fixture()
async def account(client):
    """A registered account (Account A)."""
    return await register(client)


@pytest_asyncio.fixture()
async def other_account(client):
    """A second, unrelated account (Account B)."""
    return await register(client, first_name="Ola")


@pytest_asyncio.fixture()
async def make_driver(db_session):
    """Factory: insert a driver, optionally owned by an account id."""
    async def _make(user_id=None, name="Driver"):
        driver = Driver(
            name=name,
            availability_status="offline",
            user_id=uuid.UUID(user_id) if isinstance(user_id, str) else user_id,
        )
        db_session.add(driver)
        await db_session.commit()
        return driver
    return _make


@pytest_asyncio.fixture()
async def make_customer(db_session):
    """Factory: insert a customer, optionally owned by an account id."""
    async def _make(user_id=None, name="Customer"):
        customer = Customer(
            name=name,
            phone_number="22222222",
            email=f"customer-{uuid.uuid4().hex[:8]}@example.no",
            user_id=uuid.UUID(user_id) if isinstance(user_id, str) else user_id,
        )
        db_session.add(customer)
        await db_session.commit()
        return customer
    return _make
