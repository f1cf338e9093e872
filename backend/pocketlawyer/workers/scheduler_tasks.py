"""Periodic scheduler sweep, run by Celery beat."""
import asyncio

import structlog
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from pocketlawyer.workers import celery_app
from pocketlawyer.config import settings
from pocketlawyer.services.scheduler import run_sweep

logger = structlog.get_logger()


@celery_app.task(name="scheduler.run_sweep")
def run_sweep_task():
    """Dispatch due scheduled emails and campaigns."""
    async def _run():
        engine = create_async_engine(settings.get_database_url, pool_pre_ping=True)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        try:
            async with async_session() as db:
                result = await run_sweep(db)
                return {
                    "emails": result.emails.model_dump(),
                    "campaigns": result.campaigns.model_dump(),
                    "failures": [failure.model_dump() for failure in result.failures],
                }
        finally:
            await engine.dispose()

    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(_run())
