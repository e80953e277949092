"""
Test infrastructure for the Blogger API.

Strategy
--------
- SQLite in-memory via aiosqlite, so no Postgres instance is needed.
- StaticPool makes every session share the one in-memory connection;
  a fresh connection would see an empty database.
- ``get_db`` is overridden to use the test session factory, and
  ``get_media_host`` is overridden with ``FakeMediaHost`` so no request
  ever reaches Cloudinary.
- Tables are created before each test and dropped after it.
- bcrypt runs at its minimum cost factor to keep the suite fast.
"""
import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from blogger.database import Base, get_db
from blogger.exceptions import UpstreamFailure
from blogger.main import app
from blogger.media import HostedImage, get_media_host
from blogger.middleware import install_query_counter
from blogger.models import User

# ---------------------------------------------------------------------------
# Test database engine
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fake media host
# ---------------------------------------------------------------------------

class FakeMediaHost:
    """In-memory stand-in for ``MediaHost`` that records every call."""

    def __init__(self) -> None:
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_upload = False
        self.fail_delete = False
        self._counter = 0

    async def upload(self, data: bytes, filename: str) -> HostedImage:
        if self.fail_upload:
            raise UpstreamFailure("Error uploading image")
        self._counter += 1
        asset_id = f"banner/asset-{self._counter}"
        self.uploaded.append(asset_id)
        return HostedImage(url=f"https://media.test/{asset_id}.png", asset_id=asset_id)

    async def delete(self, asset_id: str) -> bool:
        if self.fail_delete:
            return False
        self.deleted.append(asset_id)
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def media() -> FakeMediaHost:
    fake = FakeMediaHost()
    app.dependency_overrides[get_media_host] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_media_host, None)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for seeding data or asserting stored state directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client(media: FakeMediaHost) -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PASSWORD = "secret123"

IMAGE = ("banner.png", b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register(client: AsyncClient, name: str, email: str | None = None,
                   password: str = PASSWORD) -> dict:
    """Register a user through the API and return ``{"user", "token", "headers"}``."""
    email = email or f"{name.lower()}@example.com"
    resp = await client.post("/api/auth/register", json={
        "name": name,
        "email": email,
        "password": password,
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return {"user": data["user"], "token": data["token"], "headers": auth(data["token"])}


async def make_admin(user_id: int) -> None:
    """Promote a user directly in the database; the API never grants admin."""
    async with async_session_test() as session:
        await session.execute(update(User).where(User.id == user_id).values(is_admin=True))
        await session.commit()


async def create_article(client: AsyncClient, headers: dict, **fields):
    """POST a multipart article with sensible defaults; returns the response."""
    form = {
        "title": "A practical guide to testing",
        "content": "Testing keeps refactoring safe and cheap over time.",
        "category": "Programming",
    }
    form.update({k: v for k, v in fields.items() if v is not None})
    return await client.post("/api/articles", data=form, files={"file": IMAGE}, headers=headers)
