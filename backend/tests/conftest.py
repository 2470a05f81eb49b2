"""
PlantScan Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock database session (no real DB needed)
    ├── temp_storage: Temporary directory for file operations
    ├── sample_image_bytes: Fake image content for upload tests
    ├── app_settings: Settings pointing at a per-test SQLite file and upload dir
    ├── seeded_app: FastAPI app with a seeded PlantList table
    └── test_client: HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="plantscan_test_")
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from plantscan.config import Settings
from plantscan.database import Database
from plantscan.main import attach_runtime, create_app
from plantscan.models.plant import PlantRecord


# Origins allowed by the test app
FRONTEND_ORIGIN = "http://localhost:3000"

SEED_RECORDS = [
    {
        "group_id": 7,
        "plant_id": 99,
        "common_name": "Japanese Maple",
        "botanical_name": "Acer palmatum",
        "size": "5 gal",
        "quantity": 12,
        "location": "Row B",
        "notes": None,
        "image_links": None,
    },
    {
        "group_id": 7,
        "plant_id": 100,
        "common_name": "Coral Bark Maple",
        "botanical_name": "Acer palmatum 'Sango-kaku'",
        "size": "15 gal",
        "quantity": 3,
        "location": "Row C",
        "notes": "Staked",
        "image_links": "/uploads/a.png,/uploads/b.png",
    },
    {
        "group_id": 12,
        "plant_id": 5,
        "common_name": "Lavender",
        "botanical_name": "Lavandula angustifolia",
        "size": "1 gal",
        "quantity": 40,
        "location": "Greenhouse 2",
        "notes": None,
        "image_links": "",
    },
]


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_scan(mock_db_session):
            result = await service.scan(mock_db_session, payload)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh upload directory for each test."""
    storage_dir = tmp_path / "uploads"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Provides minimal JPEG bytes for upload tests.

    Minimal JPEG: SOI marker + JFIF header + EOI marker. Not a viewable
    photograph, but a non-empty file with an image extension.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def app_settings(tmp_path, temp_storage):
    """Settings isolated to this test's temporary directory."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'PlantList.db'}",
        upload_dir=temp_storage,
        cors_origins=f"{FRONTEND_ORIGIN},http://nursery.test",
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def seeded_app(app_settings):
    """
    FastAPI app backed by a real SQLite PlantList with three records.

    ASGITransport does not run the lifespan, so the Database is opened and
    attached here the same way the lifespan does it.
    """
    app = create_app(app_settings)
    database = Database(app_settings)
    await database.create_all()

    async with database.session_factory() as session:
        session.add_all([PlantRecord(**record) for record in SEED_RECORDS])
        await session.commit()

    attach_runtime(app, database)
    yield app
    await database.dispose()


@pytest_asyncio.fixture
async def test_client(seeded_app):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_root(test_client):
            response = await test_client.get("/")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=seeded_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
