import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import update

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="socialgraph_test_"))

# Must be set before anything under app/ reads settings
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT / 'api.db'}"
os.environ["REDIS_URL"] = ""
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["ENVIRONMENT"] = "test"

from app.core.exceptions import DependencyUnavailableError  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import build_engine, build_session_factory  # noqa: E402
from app.modules.posts.schemas.post import PostCreate  # noqa: E402
from app.modules.posts.services.post import create_post  # noqa: E402
from app.modules.user_management.schemas.user import UserCreate  # noqa: E402
from app.modules.user_management.services.user import register_user  # noqa: E402


class RecordingCache:
    """Stands in for RedisListCache and records every append"""

    def __init__(self, fail=False, on_append=None):
        self.fail = fail
        self.on_append = on_append
        self.appends = []

    async def append_to_list_with_expiry(self, key, value, ttl_seconds):
        if self.on_append is not None:
            await self.on_append(key, value, ttl_seconds)
        if self.fail:
            raise DependencyUnavailableError("Cache store unavailable: connection refused")
        self.appends.append((key, value, ttl_seconds))
        return len([k for k, _, _ in self.appends if k == key])


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'graph.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def create_user(db):
    async def _create(username, **kwargs):
        kwargs.setdefault("email", f"{username.lower().replace('%', '')}@example.com")
        kwargs.setdefault("password", "correct horse battery")
        return await register_user(db, UserCreate(username=username, **kwargs))
    return _create


@pytest.fixture
def create_post_for(db):
    async def _create(user_id, text="hello", tags=()):
        return await create_post(db, PostCreate(text=text, tags=list(tags)), user_id)
    return _create


@pytest.fixture
def set_created_at(db):
    """Pin created_at on rows matched by column=value pairs, for ordering tests"""
    async def _set(model, when, **keys):
        stmt = update(model).values(created_at=when).execution_options(synchronize_session=False)
        for column, value in keys.items():
            stmt = stmt.where(getattr(model, column) == value)
        await db.execute(stmt)
        await db.commit()
        db.expire_all()
    return _set


@pytest.fixture
def recording_cache():
    return RecordingCache()


@pytest.fixture
def make_cache():
    return RecordingCache
