# Pytest configuration for the CraftAds test suite
import asyncio
import os
import random
import sys
import tempfile
import uuid
from datetime import datetime, timedelta

import pytest

# Add the project root to Python path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Point the app at a throwaway database before anything from craftads is imported
_TMP_DIR = tempfile.mkdtemp(prefix="craftads-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GENERATION_BACKEND"] = "mock"
os.environ["MOCK_GENERATION_DELAY_SECONDS"] = "0"
os.environ["MOCK_GENERATION_FAILURE_RATE"] = "0"
os.environ["SIGNUP_BONUS_CREDITS"] = "10"
os.environ.pop("OPENAI_API_KEY", None)

from craftads.core.database import SessionLocal, init_models  # noqa: E402
from craftads.models.ad_template import AdTemplate, TemplateCategoryRelationship  # noqa: E402
from craftads.models.template_category import TemplateCategory  # noqa: E402
from craftads.services.generation import MockGenerationBackend  # noqa: E402
from craftads.services.user_service import ensure_user  # noqa: E402


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests for isolated components")
    config.addinivalue_line("markers", "integration: HTTP tests through the FastAPI app")


@pytest.fixture(autouse=True)
def fresh_db():
    asyncio.run(init_models(drop=True))
    yield


@pytest.fixture
def make_user():
    """Provision a user through the normal sign-in path (starts with the signup bonus)."""
    def _make(email=None):
        user, _ = asyncio.run(ensure_user(email or f"user-{uuid.uuid4().hex[:8]}@example.com", name="Test User"))
        return user
    return _make


@pytest.fixture
def mock_backend():
    return MockGenerationBackend(delay_seconds=0, failure_rate=0, rng=random.Random(7))


@pytest.fixture
def client(mock_backend):
    from fastapi.testclient import TestClient
    from craftads.main import create_app

    app = create_app(generation_backend=mock_backend)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(client):
    """Register a fresh account and return its bearer header."""
    def _register(email=None, password="secret123"):
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        resp = client.post("/api/auth/register", json={"email": email, "password": password, "name": "Ad Maker"})
        assert resp.status_code == 201, resp.text
        token = resp.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}
    return _register


async def _seed_gallery():
    now = datetime.utcnow()
    async with SessionLocal() as session:
        async with session.begin():
            fashion = TemplateCategory(id="cat-fashion", name="Fashion", slug="fashion", sort_order=1)
            food = TemplateCategory(id="cat-food", name="Food", slug="food", sort_order=2)
            hidden = TemplateCategory(id="cat-hidden", name="Hidden", slug="hidden", sort_order=3, is_active=False)
            session.add_all([fashion, food, hidden])

            rows = [
                # id, title, premium, featured, usage, views, age_days, categories
                ("tpl-1", "Summer Dress Sale", False, True, 5, 50, 3, ["cat-fashion"]),
                ("tpl-2", "Burger Night", False, False, 20, 10, 2, ["cat-food"]),
                ("tpl-3", "Luxury Watch", True, False, 20, 30, 1, ["cat-fashion"]),
                ("tpl-4", "Pizza Party", True, True, 1, 5, 4, ["cat-food"]),
                ("tpl-5", "Sneaker Drop", False, False, 0, 0, 5, ["cat-fashion", "cat-food", "cat-hidden"]),
                ("tpl-6", "Coffee 100% Organic", False, False, 0, 0, 6, []),
            ]
            for tid, title, premium, featured, usage, views, age, cats in rows:
                session.add(AdTemplate(
                    id=tid,
                    title=title,
                    slug=title.lower().replace(" ", "-").replace("%", ""),
                    description=f"{title} ad template",
                    preview_image_url=f"/images/templates/{tid}.jpg",
                    width=1080,
                    height=1350,
                    is_premium=premium,
                    is_featured=featured,
                    usage_count=usage,
                    view_count=views,
                    tags=["ad"],
                    created_at=now - timedelta(days=age),
                    updated_at=now,
                ))
            await session.flush()
            for tid, *_rest, cats in rows:
                for cid in cats:
                    session.add(TemplateCategoryRelationship(template_id=tid, category_id=cid))
            session.add(AdTemplate(
                id="tpl-off", title="Retired Template", slug="retired-template",
                preview_image_url="/images/templates/off.jpg", is_active=False,
                created_at=now, updated_at=now,
            ))


@pytest.fixture
def gallery_data():
    asyncio.run(_seed_gallery())
