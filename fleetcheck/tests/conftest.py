"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fleetcheck.app.main import app
from fleetcheck.app.db.session import get_db, Base
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.services.archive import get_archive_uploader
from fleetcheck.app.services.document_renderer import get_document_renderer
from fleetcheck.app.services.fleet import create_vehicle, create_trailer
from fleetcheck.app.services.templates import create_template
from fleetcheck.app.services.users import create_user

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
    engine, class_=AsyncSession, expire_on_commit=False
)


# Stand-ins for the document renderer and the archive store
class FakeRenderer:
    def __init__(self):
        self.reports = []
        self.error = None

    def render(self, report):
        if self.error:
            raise self.error
        self.reports.append(report)
        return b"%PDF-fake " + str(report.submission_id).encode()


class FakeUploader:
    def __init__(self):
        self.folders = []
        self.uploads = []
        self.error = None

    async def ensure_folder(self, name):
        if self.error:
            raise self.error
        self.folders.append(name)
        return f"folder-{name}"

    async def upload(self, folder_id, filename, content, mime_type="application/pdf"):
        if self.error:
            raise self.error
        self.uploads.append((folder_id, filename, content, mime_type))
        return f"file-{len(self.uploads)}"


class Collaborators:
    """Mutable holder so a test can swap or disable a collaborator mid-flight."""

    def __init__(self):
        self.renderer = FakeRenderer()
        self.uploader = FakeUploader()


@pytest.fixture
def collaborators():
    return Collaborators()


@pytest.fixture(autouse=True)
def apply_overrides(collaborators):
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_document_renderer] = lambda: collaborators.renderer
    app.dependency_overrides[get_archive_uploader] = lambda: collaborators.uploader
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


async def login(client, email, password):
    response = await client.post("/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(db_session):
    return await create_user(db_session, "admin@fleet.test", "admin123", UserRole.ADMIN)


@pytest.fixture
async def driver(db_session):
    return await create_user(db_session, "driver1@fleet.test", "driver123")


@pytest.fixture
async def second_driver(db_session):
    return await create_user(db_session, "driver2@fleet.test", "driver123")


@pytest.fixture
async def admin_headers(client, admin_user):
    return auth(await login(client, "admin@fleet.test", "admin123"))


@pytest.fixture
async def driver_headers(client, driver):
    return auth(await login(client, "driver1@fleet.test", "driver123"))


@pytest.fixture
async def vehicle(db_session):
    return await create_vehicle(db_session, "AB 123 CD", "Volvo FH16")


@pytest.fixture
async def second_vehicle(db_session):
    return await create_vehicle(db_session, "EF 456 GH", "Scania R450")


@pytest.fixture
async def trailer(db_session):
    return await create_trailer(db_session, "TR-001")


@pytest.fixture
async def template(db_session):
    return await create_template(db_session, "Standard Daily Check", ["Lights", "Tyres", "Brakes"])
