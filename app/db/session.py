import asyncio
import functools
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Awaitable, Optional, TypeVar

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.core.config import settings
from app.core.exceptions import DependencyUnavailableError

logger = logging.getLogger("app")

T = TypeVar("T")

# Check if DATABASE_URL is properly set
if not settings.DATABASE_URL:
    logger.error("DATABASE_URL is not set or empty!")
    raise ValueError("DATABASE_URL environment variable is required")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine configured for the backend named in the URL"""
    url = make_url(database_url)
    options: dict = {"pool_pre_ping": True}
    if url.get_backend_name() == "postgresql":
        options["pool_size"] = settings.DB_POOL_SIZE
        options["pool_recycle"] = 3600  # Recycle connections after 1 hour
        if url.get_driver_name() == "asyncpg":
            options["connect_args"] = {"command_timeout": settings.DB_COMMAND_TIMEOUT}
    options.update(kwargs)

    engine = create_async_engine(database_url, **options)
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: committed objects are still read after commit,
    # and lazy refreshes are not possible under asyncio
    return async_sessionmaker(bind=bind, expire_on_commit=False, autoflush=False)


try:
    engine = build_engine(settings.DATABASE_URL)
    logger.info("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Session factory shared by request handlers and notification handlers
SessionLocal = build_session_factory(engine)

# Base class for all SQLAlchemy models
Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC with microseconds; SQLite's CURRENT_TIMESTAMP only keeps whole seconds
    return datetime.now(timezone.utc).replace(tzinfo=None)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency for FastAPI"""
    async with SessionLocal() as db:
        yield db


def store_operation(func):
    """
    Translate connectivity failures of the relational store into
    DependencyUnavailableError. No retry is attempted here.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (OperationalError, InterfaceError, PoolTimeoutError, OSError, asyncio.TimeoutError) as exc:
            logger.error(f"Relational store unavailable during {func.__name__}: {exc}")
            raise DependencyUnavailableError(
                f"Relational store unavailable: {exc.__class__.__name__}"
            ) from exc
    return wrapper


async def with_deadline(awaitable: Awaitable[T], seconds: Optional[float]) -> T:
    """Await a store-bound coroutine, cancelling it once the deadline passes"""
    if seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as exc:
        logger.warning(f"Store call exceeded deadline of {seconds}s")
        raise DependencyUnavailableError(f"Store call exceeded {seconds}s deadline") from exc
