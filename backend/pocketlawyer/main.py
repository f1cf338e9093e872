import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from pocketlawyer.config import settings
from pocketlawyer.logging import setup_logging
from pocketlawyer.api.routes import analytics, campaigns, emails, health, scheduler, tracking
from pocketlawyer.dependencies import init_db, engine
from pocketlawyer.models.base import utcnow

# Initialize logging before logger creation
setup_logging(logging.DEBUG if settings.debug else logging.INFO)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting PocketLawyer mail API", server_time=utcnow().isoformat())
    await init_db()

    if not settings.scheduler_api_key:
        logger.warning("SCHEDULER_API_KEY is empty; /scheduler/run will reject every request")

    yield

    logger.info("Shutting down PocketLawyer mail API")
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="PocketLawyer Mail API",
        description="Transactional and bulk email with open/click tracking and scheduled delivery",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Public endpoints hit by mail clients and cron
    app.include_router(tracking.router, prefix="/tracking", tags=["Tracking"])
    app.include_router(scheduler.router, prefix="/scheduler", tags=["Scheduler"])

    # Admin API
    app.include_router(emails.router, prefix="/api/v1/emails", tags=["Emails"])
    app.include_router(campaigns.router, prefix="/api/v1/campaigns", tags=["Campaigns"])
    app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])
    app.include_router(health.router, prefix="/api/v1/health", tags=["Health"])

    @app.get("/")
    async def root():
        return {
            "message": "PocketLawyer Mail API is running",
            "docs": "/docs",
            "version": "1.0.0",
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pocketlawyer.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info",
    )
