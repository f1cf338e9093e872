"""Health check endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.dependencies import get_db
from pocketlawyer.integrations.email_client import EmailClient

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check - verifies database connectivity and transport configuration."""
    transport = "configured" if EmailClient().is_configured else "not_configured"
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "ready", "database": "connected", "email_transport": transport}
    except Exception as e:
        return {"status": "not_ready", "database": "disconnected", "email_transport": transport, "error": str(e)}
