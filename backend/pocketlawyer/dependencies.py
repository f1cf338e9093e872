"""Application dependencies and database initialization."""
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from tenacity import retry, stop_after_attempt, wait_fixed, before_sleep_log
import structlog

from pocketlawyer.config import settings
from pocketlawyer.integrations.email_client import EmailClient
from pocketlawyer.models import Base

logger = structlog.get_logger()


def _engine_options(url: str) -> dict:
    # SQLite (local runs, tests) rejects the pool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_pre_ping": True,
        "pool_timeout": 30,
    }


engine = create_async_engine(
    settings.get_database_url,
    echo=settings.debug,
    **_engine_options(settings.get_database_url),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@retry(
    stop=stop_after_attempt(5),
    wait=wait_fixed(2),
    before_sleep=before_sleep_log(logger, logging.INFO)
)
async def init_db() -> None:
    """Initialize database tables with retry logic."""
    logger.info("Connecting to database", host=settings.get_database_url.split("@")[-1])
    async with engine.begin() as conn:
        # Production schema is managed by Alembic; create_all is a no-op there
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Session factory for work that outlives the request (background tasks)."""
    return async_session_maker


def get_email_client() -> EmailClient:
    """Transport used by request handlers."""
    return EmailClient()
