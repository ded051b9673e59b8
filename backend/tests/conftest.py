"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STORE_ACCESS_KEY_ID", "test-access-key")
os.environ.setdefault("STORE_SECRET_ACCESS_KEY", "test-secret-key")
os.environ.setdefault("STORE_BUCKET", "audit-files-test")
os.environ.setdefault("DEEPSEEK_API_KEY", "test-deepseek-key")
os.environ.setdefault("GOOGLE_VISION_API_KEY", "test-vision-key")
os.environ.setdefault("DISABLE_PDF", "true")

import json
import pytest
from typing import AsyncGenerator, Dict, Any
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import models.db_models  # noqa: F401
from database import get_async_session
from app.main import app
from services.building_service import BuildingService
from services.document_store import StoredDocument
from services.error_types import OCRError
from services.ocr_service import OCRResult

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FLOOR_PLAN_TEXT = """FIRST FLOOR PLAN
BEDROOM 12'-0" x 11'-6"
KITCHEN 10' x 12'
LIVING ROOM 15'-6" x 18'-0"
UP
"""

BILL_TEXT = "ELECTRICITY BILL\nAccount 1234\nUsage: 850 kWh\nAmount due: $127.50"

INITIAL_REPORT = {
    "energyConsumption": {"annual": 10200, "peak": 6.5, "average": 850},
    "carbonFootprint": 4.3,
    "costMetrics": {"annual": 1530, "perSquareMeter": 7.65},
    "recommendations": [
        {"title": "LED retrofit", "description": "Replace halogen lamps", "potentialSavings": 220, "priority": "high"},
    ],
}

DETAILED_ANALYSIS = {
    "findings": {
        "buildingOverview": {"description": "Small office", "metrics": {}},
        "equipmentAnalysis": {"description": "Aging HVAC", "keyIssues": ["Low efficiency"]},
        "energyConsumption": {"description": "Daytime peaks", "patterns": []},
        "maintenanceStatus": {"description": "Irregular", "issues": []},
    },
    "recommendations": [
        {
            "category": "HVAC",
            "title": "Replace chiller",
            "description": "High-efficiency chiller",
            "implementation": "Phase 1",
            "savings": {"energy": 12000, "cost": 1800, "carbon": 5.1},
            "investment": 25000,
            "roi": 7.2,
            "priority": "high",
        }
    ],
    "keyMetrics": {"totalEnergyConsumption": 64000, "potentialSavings": 1800},
    "executiveSummary": {"overview": "Savings available", "keyFindings": [], "nextSteps": []},
}


@pytest.fixture
async def test_engine():
    """In-memory database shared by every connection of one test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def test_client(test_db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""

    async def override_get_db():
        yield test_db_session

    app.dependency_overrides[get_async_session] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def building(test_db_session):
    """200 m² residential building declared with 4 rooms"""
    return await BuildingService.create_building({
        "name": "Test House",
        "address": "1 Test Street",
        "type": "residential",
        "customer_type": "residential",
        "area": 200.0,
        "rooms_count": 4,
        "residents": 3,
    }, test_db_session)


@pytest.fixture
def fake_store():
    """Store whose uploads land at https://store.test/<file name>"""
    store = AsyncMock()

    async def upload(data, content_type, file_name):
        return StoredDocument(key=file_name, url=f"https://store.test/{file_name}",
                              size=len(data), content_type=content_type)

    store.upload.side_effect = upload
    store.upload_json.return_value = "https://store.test/reports/report.json"
    return store


@pytest.fixture
def ocr_texts() -> Dict[str, Any]:
    """file name -> OCR text, or an exception to raise"""
    return {}


@pytest.fixture
def fake_ocr(ocr_texts):
    ocr = AsyncMock()

    async def recognize(image_url, file_name=None, language_hints=("en", "ar")):
        outcome = ocr_texts.get(file_name, BILL_TEXT)
        if isinstance(outcome, Exception):
            raise outcome
        return OCRResult(full_text=outcome)

    ocr.recognize.side_effect = recognize
    return ocr


@pytest.fixture
def fake_llm():
    llm = AsyncMock()
    llm.complete_prompt.return_value = json.dumps(INITIAL_REPORT)
    return llm


def ocr_failure(file_name: str) -> OCRError:
    return OCRError(file_name, f"OCR failed for {file_name}: No text detected in image.")
