"""Test configuration and fixtures."""

import os
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from school_api.core.database import Base, get_db
from school_api.core.permissions import Role
from school_api.core.rate_limit import limiter
from school_api.core.security import get_password_hash
from school_api.models.classroom import Classroom
from school_api.models.school import School
from school_api.models.student import Student
from school_api.models.user import User
from school_api.services.counters import reserve_classroom_seat, reserve_school_seat
from school_api.services.student import generate_student_code
from main import app

# Test database URL - a local SQLite file unless overridden
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_school_api.db")

# Create test engine with NullPool to avoid connection issues
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=NullPool,
)
test_session_maker = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

PASSWORD = "password123"


async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
    """Override database dependency for tests."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def setup_database() -> AsyncGenerator[None, None]:
    """Create test database tables before each test that needs it."""
    app.dependency_overrides[get_db] = override_get_db

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def db(setup_database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with test_session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(setup_database: None) -> AsyncGenerator[AsyncClient, None]:
    """Get async HTTP client."""
    limiter.reset()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ============== Data helpers ==============


async def create_school(db: AsyncSession, name: str = "Test School", **kwargs) -> School:
    school = School(name=name, **kwargs)
    db.add(school)
    await db.commit()
    await db.refresh(school)
    return school


async def create_classroom(db: AsyncSession, school: School, name: str = "Room 101", **kwargs) -> Classroom:
    classroom = Classroom(school_id=school.id, name=name, **kwargs)
    db.add(classroom)
    await db.commit()
    await db.refresh(classroom)
    return classroom


async def create_student(
    db: AsyncSession,
    school: School,
    classroom: Classroom | None = None,
    first_name: str = "Jane",
    last_name: str = "Doe",
    **kwargs,
) -> Student:
    """Insert an active student and keep the counters consistent with it."""
    student = Student(
        student_code=generate_student_code(),
        school_id=school.id,
        classroom_id=classroom.id if classroom else None,
        first_name=first_name,
        last_name=last_name,
        **kwargs,
    )
    db.add(student)
    if kwargs.get("is_active", True):
        await reserve_school_seat(db, school.id)
        if classroom:
            await reserve_classroom_seat(db, classroom.id)
    await db.commit()
    await db.refresh(student)
    await db.refresh(school)
    if classroom:
        await db.refresh(classroom)
    return student


async def create_user(
    db: AsyncSession,
    username: str,
    role: Role,
    school: School | None = None,
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=get_password_hash(PASSWORD),
        role=role,
        school_id=school.id if school else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def login(client: AsyncClient, email: str, password: str = PASSWORD) -> str:
    response = await client.post("/api/user/login", json={"email": email, "password": password})
    return response.json()["data"]["longToken"]


def auth_header(token: str) -> dict[str, str]:
    """Create authorization header."""
    return {"Authorization": f"Bearer {token}"}


# ============== Fixtures ==============


@pytest_asyncio.fixture
async def school(db: AsyncSession) -> School:
    """Create the school the school admin belongs to."""
    return await create_school(db, "Lincoln High", address_city="Springfield", max_students=100)


@pytest_asyncio.fixture
async def other_school(db: AsyncSession) -> School:
    return await create_school(db, "Roosevelt Middle", address_city="Shelbyville", max_students=100)


@pytest_asyncio.fixture
async def superadmin(db: AsyncSession) -> User:
    """Create a superadmin user for tests."""
    return await create_user(db, "superadmin", Role.SUPERADMIN)


@pytest_asyncio.fixture
async def school_admin(db: AsyncSession, school: School) -> User:
    """Create a school admin of `school` for tests."""
    return await create_user(db, "schooladmin", Role.SCHOOL_ADMIN, school)


@pytest_asyncio.fixture
async def superadmin_token(client: AsyncClient, superadmin: User) -> str:
    """Get auth token for superadmin."""
    return await login(client, superadmin.email)


@pytest_asyncio.fixture
async def school_admin_token(client: AsyncClient, school_admin: User) -> str:
    """Get auth token for school admin."""
    return await login(client, school_admin.email)
