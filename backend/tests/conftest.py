"""Master test fixtures.

Environment variables are set BEFORE any application imports so that
``config.Settings()`` initialises with test-safe values and never
touches Docker secrets or a production database.
"""

import os

# ── Set test env vars before any app import ──────────────────────────
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite://",
    "REDIS_URL": "redis://localhost:6379/0",
    "LLM_API_KEY": "test-llm-key",
    "APP_SECRET_KEY": "test-secret-key-for-jwt-signing",
    "ADMIN_KEY": "test-admin-key",
    "ARTICLES_ADMIN_KEY": "test-articles-password",
    "PUBLIC_BASE_URL": "https://test.example.com",
})

import base64
import io
from datetime import datetime, timedelta, timezone

import pytest
import fakeredis
from PIL import Image

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Now safe to import application code
from models.base import Base, create_tables, get_db
from models import ApiKeyRecord, ImageRecord
from auth.jwt import SCOPE_ARTICLES, SCOPE_MODERATION, create_admin_token


_test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
_TestSession = async_sessionmaker(_test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
async def _create_tables():
    """Create and drop SQLite tables around every test."""
    await create_tables(_test_engine)
    yield
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Replace the anchor cache's Redis connection with a fakeredis instance."""
    server = fakeredis.FakeServer()
    fr = fakeredis.FakeAsyncRedis(server=server, decode_responses=True)
    import images.anchor_cache as ac
    monkeypatch.setattr(ac, "_get_redis", lambda: fr)
    return fr


@pytest.fixture
async def db_session():
    """Yield a test DB session."""
    async with _TestSession() as session:
        yield session


@pytest.fixture
async def test_client(db_session: AsyncSession):
    """HTTPX async client wired to the FastAPI app, with DB override.

    The startup event is NOT run; tables come from ``_create_tables``.
    """
    from main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def moderator_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token(SCOPE_MODERATION)}"}


@pytest.fixture
def editor_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_admin_token(SCOPE_ARTICLES)}"}


@pytest.fixture
async def api_key(db_session: AsyncSession) -> ApiKeyRecord:
    """An active key in the store."""
    record = ApiKeyRecord(
        key="img_" + "a" * 32,
        active=True,
        name="Tester",
        email="tester@example.com",
        use_case="testing",
    )
    db_session.add(record)
    await db_session.commit()
    return record


def make_png(width: int = 50, height: int = 50, color=(255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def red_png_b64() -> str:
    return base64.b64encode(make_png()).decode("ascii")


@pytest.fixture
def seed_images(db_session: AsyncSession):
    """Factory inserting ``count`` images, one minute apart, oldest first.

    Returns the ids newest first (the listing order).
    """

    async def _seed(count: int, same_timestamp: bool = False) -> list[str]:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        ids = []
        for i in range(count):
            uploaded_at = base if same_timestamp else base + timedelta(minutes=i)
            record = ImageRecord(
                id=f"{i:032x}",
                file_name=f"img-{i}.png",
                mime_type="image/png",
                base64_data=base64.b64encode(f"image-{i}".encode()).decode("ascii"),
                file_size=8,
                file_size_mb=0.0,
                uploaded_at=uploaded_at,
                created_at=uploaded_at.isoformat(),
                api_key="img_" + "a" * 32,
            )
            db_session.add(record)
            ids.append(record.id)
        await db_session.commit()
        return list(reversed(ids))

    return _seed
