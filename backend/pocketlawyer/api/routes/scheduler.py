"""Scheduler trigger, called by an external cron with a shared key."""
import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.config import settings
from pocketlawyer.dependencies import get_db, get_email_client
from pocketlawyer.integrations.email_client import EmailClient
from pocketlawyer.models.base import utcnow
from pocketlawyer.services.scheduler import run_sweep

router = APIRouter()
logger = structlog.get_logger()


def _authorized(api_key: Optional[str]) -> bool:
    expected = settings.scheduler_api_key
    if not expected or not api_key:
        return False
    return secrets.compare_digest(api_key.encode(), expected.encode())


@router.post("/run")
async def run_scheduler(
    x_api_key: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    client: EmailClient = Depends(get_email_client),
):
    """Run one sweep over due scheduled emails and campaigns."""
    if not _authorized(x_api_key):
        logger.warning("Rejected scheduler trigger")
        return JSONResponse(status_code=401, content={"detail": "Unauthorized"})

    result = await run_sweep(db, client=client)
    return {
        "success": True,
        "emails": result.emails.model_dump(),
        "campaigns": result.campaigns.model_dump(),
        "failures": [failure.model_dump() for failure in result.failures],
        "timestamp": utcnow().isoformat(),
    }
