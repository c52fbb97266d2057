"""Shared test configuration and fixtures.

Each test gets its own SQLite database file (via aiosqlite) so tests are
fully isolated and need no database server. Every session opens its own
connection, which lets the availability store run its reads concurrently
just as it does against PostgreSQL.
"""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import roomops.models  # noqa: F401  (registers every table on Base.metadata)
from roomops.auth.jwt import create_access_token
from roomops.database import Base, get_db, get_session_factory
from roomops.main import app
from roomops.models.availability_block import AvailabilityBlock
from roomops.models.booking import Booking
from roomops.models.property import Property
from roomops.models.user import User


# ---------------------------------------------------------------------------
# Per-test database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh SQLite database with every table for a single test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'roomops_test.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session for arranging test data. Fixtures commit what they create."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the per-test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: users and auth
# ---------------------------------------------------------------------------


async def _create_user(db_session: AsyncSession, role: str = "owner", is_active: bool = True) -> User:
    unique = uuid.uuid4().hex[:8]
    user = User(
        email=f"{role}-{unique}@test.com",
        name=f"Test {role.title()}",
        is_active=is_active,
        role=role,
    )
    db_session.add(user)
    await db_session.commit()
    return user


def auth_headers_for(user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_owner(db_session: AsyncSession) -> User:
    """Create and return a property owner."""
    return await _create_user(db_session, role="owner")


@pytest_asyncio.fixture
async def other_owner(db_session: AsyncSession) -> User:
    """A second owner, for ownership checks."""
    return await _create_user(db_session, role="owner")


@pytest_asyncio.fixture
async def auth_headers(test_owner: User) -> dict[str, str]:
    """Return Authorization headers for the test owner."""
    return auth_headers_for(test_owner)


@pytest_asyncio.fixture
async def headers_for() -> Callable[[User], dict[str, str]]:
    """Return a helper that builds Authorization headers for any user."""
    return auth_headers_for


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    async def _make(role: str = "owner", is_active: bool = True) -> User:
        return await _create_user(db_session, role=role, is_active=is_active)

    return _make


# ---------------------------------------------------------------------------
# Convenience fixtures: property, booking, block factories
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def make_property(db_session: AsyncSession, test_owner: User) -> Callable[..., Awaitable[Property]]:
    async def _make(
        layout=None,
        rooms_spec=None,
        owner: User | None = None,
        status: str = "APPROVED",
        name: str = "Test Lodge",
    ) -> Property:
        prop = Property(
            owner_id=(owner or test_owner).id,
            name=name,
            status=status,
            layout=layout,
            rooms_spec=rooms_spec,
        )
        db_session.add(prop)
        await db_session.commit()
        return prop

    return _make


@pytest_asyncio.fixture
async def make_booking(db_session: AsyncSession) -> Callable[..., Awaitable[Booking]]:
    async def _make(
        property_id: int,
        check_in: datetime,
        check_out: datetime,
        room_code: str | None = None,
        status: str = "CONFIRMED",
        guest_name: str | None = "Test Guest",
        total_amount: Decimal | None = None,
    ) -> Booking:
        booking = Booking(
            property_id=property_id,
            check_in=check_in,
            check_out=check_out,
            room_code=room_code,
            status=status,
            guest_name=guest_name,
            total_amount=total_amount,
        )
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _make


@pytest_asyncio.fixture
async def make_block(db_session: AsyncSession, test_owner: User) -> Callable[..., Awaitable[AvailabilityBlock]]:
    async def _make(
        property_id: int,
        start_date: datetime,
        end_date: datetime,
        room_code: str | None = None,
        beds_blocked: int | None = 1,
        source: str | None = "Airbnb",
        owner: User | None = None,
    ) -> AvailabilityBlock:
        block = AvailabilityBlock(
            property_id=property_id,
            owner_id=(owner or test_owner).id,
            start_date=start_date,
            end_date=end_date,
            room_code=room_code,
            beds_blocked=beds_blocked,
            source=source,
        )
        db_session.add(block)
        await db_session.commit()
        return block

    return _make
