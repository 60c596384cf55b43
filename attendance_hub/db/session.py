# attendance_hub/db/session.py
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from attendance_hub.core.config import get_settings
from attendance_hub.db.base import Base

# Import ORM models so that Base.metadata is aware of them.
from attendance_hub.models import attendance_record, meeting, member  # noqa: F401

settings = get_settings()

# Tests run the app in TestClient's own event loop as well as in
# pytest-asyncio's loop, so connections must not be pooled across loops.
IS_TEST = settings.APP_ENV == "test"

engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    future=True,
    poolclass=NullPool if IS_TEST else None,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    The session is automatically closed when the request is completed.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_db() -> None:
    """
    Create missing tables. Safe to call on every application startup.

    Typically you'd eventually replace this with Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_db() -> None:
    """
    TEST-ONLY: drop and recreate every table.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
