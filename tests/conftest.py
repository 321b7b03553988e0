"""
Pytest Configuration and Fixtures

Provides fixtures for:
- Database sessions (async, in-memory SQLite)
- HTTP client bound to the FastAPI app
- Channel post factory
"""
# Settings are read at import time; the validator requires a secret and a channel
# when DEBUG=False, so the environment must be prepared before importing the app.
import os
os.environ.setdefault("TELEGRAM_WEBHOOK_SECRET_TOKEN", "test-webhook-secret")
os.environ.setdefault("TELEGRAM_CHANNEL_USERNAME", "testchannel")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from channel_feed.api.dependencies.channel_config import get_channel_config
from channel_feed.core.config import ChannelConfig
from channel_feed.db.database import Base, get_db
from channel_feed.db.models.channel_post import ChannelPost
from channel_feed.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_WEBHOOK_SECRET = os.environ["TELEGRAM_WEBHOOK_SECRET_TOKEN"]
TEST_CHANNEL = os.environ["TELEGRAM_CHANNEL_USERNAME"]
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def make_config(**overrides) -> ChannelConfig:
    values = {
        "webhook_secret": TEST_WEBHOOK_SECRET,
        "channel_username": TEST_CHANNEL,
        "default_limit": 8,
        "max_limit": 30,
        "cache_max_age": 15,
    }
    values.update(overrides)
    return ChannelConfig(**values)


def channel_post_update(
    message_id: int,
    username: str | None = TEST_CHANNEL,
    date: int | None = 1700000000,
    update_id: int = 1,
    kind: str = "channel_post",
) -> dict:
    """Telegram update carrying a channel post, as the Bot API sends it."""
    chat = {"id": -1001234567890, "type": "channel", "title": "Test Channel"}
    if username is not None:
        chat["username"] = username
    post = {"message_id": message_id, "chat": chat, "text": f"post {message_id}"}
    if date is not None:
        post["date"] = date
    return {"update_id": update_id, kind: post}


def naive_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; compare timestamps as naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@pytest.fixture(scope="function")
async def async_engine():
    """Create async test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests"""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def channel_config() -> ChannelConfig:
    return make_config()


@pytest.fixture(scope="function")
async def test_client(db_session: AsyncSession, channel_config: ChannelConfig):
    """Create test client with database and config overrides"""
    from httpx import ASGITransport, AsyncClient

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_channel_config] = lambda: channel_config

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def post_factory(db_session: AsyncSession):
    """Insert channel posts directly, bypassing the webhook"""
    async def _create_posts(
        *message_ids: int,
        channel: str = TEST_CHANNEL,
        posted_at: datetime | None = None,
    ) -> list[ChannelPost]:
        posts = [
            ChannelPost(
                channel_username=channel,
                message_id=message_id,
                posted_at=posted_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
            )
            for message_id in message_ids
        ]
        db_session.add_all(posts)
        await db_session.commit()
        return posts

    return _create_posts
