"""
Test fixtures for EduAdmin.

The app runs in-process over ``httpx.ASGITransport`` against a fresh
in-memory SQLite database per test; ``get_db`` is overridden to hand out
sessions bound to that database.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "eduadmin-test-secret"

import httpx
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eduadmin import models
from eduadmin.database import Base, get_db
from eduadmin.main import app
from eduadmin.middleware.auth import hash_password

BASE_URL = "http://test"
PASSWORD = "admin123"

# bcrypt is slow on purpose; hash once for every seeded user
PASSWORD_HASH = hash_password(PASSWORD)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with every table created."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; emit it ourselves so SAVEPOINTs work
    @event.listens_for(eng.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """A session for calling services directly (do not mix with ``client``)."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Async HTTP client talking to the app in-process."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL) as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------

async def seed_user(session_factory, email: str, role: str, office_location=None, is_active=True) -> int:
    async with session_factory() as s:
        user = models.User(
            email=email,
            password_hash=PASSWORD_HASH,
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            role=role,
            office_location=office_location,
            is_active=is_active,
        )
        s.add(user)
        await s.commit()
        return user.id


async def seed_permissions(session_factory, role: str, entries: list[tuple]) -> None:
    """*entries* are ``(menu, feature, allowed)`` triples."""
    async with session_factory() as s:
        for menu, feature, allowed in entries:
            s.add(models.RolePermission(role=role, menu=menu, feature=feature, allowed=allowed))
        await s.commit()


async def seed_agent(session_factory, rate, students=(), name="Test Agent") -> int:
    """Create an agent and its students.

    Each student is a dict with optional ``collections`` (list of amounts)
    and ``payments`` (list of ``(amount_due, amount_paid)`` pairs).
    """
    async with session_factory() as s:
        agent = models.Agent(
            name=name,
            contact_person="Contact",
            email=f"{name.lower().replace(' ', '.')}@agents.test",
            commission_rate=rate,
        )
        s.add(agent)
        await s.flush()
        for i, ledger in enumerate(students):
            student = models.Student(first_name=f"Student{i}", last_name=name, agent_id=agent.id)
            s.add(student)
            await s.flush()
            for amount in ledger.get("collections", []):
                s.add(models.FeeCollection(student_id=student.id, amount_paid=amount))
            for due, paid in ledger.get("payments", []):
                s.add(models.FeePayment(student_id=student.id, amount_due=due, amount_paid=paid))
        await s.commit()
        return agent.id


async def seed_hostel(session_factory, name="North Hostel", mess_budget=None, remaining=None, year=None) -> int:
    async with session_factory() as s:
        hostel = models.Hostel(
            name=name,
            location="Campus",
            capacity=100,
            mess_budget=mess_budget,
            mess_budget_remaining=remaining,
            mess_budget_year=year,
        )
        s.add(hostel)
        await s.commit()
        return hostel.id


async def login(client: httpx.AsyncClient, email: str, password: str = PASSWORD) -> str:
    """Login and return the JWT token."""
    r = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.text}"
    return r.json()["access_token"]


def auth_headers(token: str) -> dict:
    """Return auth header dict for a given token."""
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Role fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def headers_for(client, session_factory):
    """Factory: seed a user with *role* and return its auth headers."""

    async def _make(role: str, email: str | None = None, **kwargs) -> dict:
        email = email or f"{role}@eduadmin.test"
        await seed_user(session_factory, email, role, **kwargs)
        return auth_headers(await login(client, email))

    return _make


@pytest_asyncio.fixture
async def admin_headers(headers_for):
    return await headers_for("admin")


@pytest_asyncio.fixture
async def hostel_headers(headers_for):
    return await headers_for("hostel_team")


@pytest_asyncio.fixture
async def staff_headers(headers_for):
    return await headers_for("staff")
