"""Open and click recording for delivery records."""
import base64
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pocketlawyer.models.base import utcnow
from pocketlawyer.models.delivery import DeliveryRecord
from pocketlawyer.services import analytics

logger = structlog.get_logger()

# 1x1 transparent GIF (43 bytes)
TRANSPARENT_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAP///wAAACH5BAEAAAAALAAAAAABAAEAAAICRAEAOw==")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


async def record_open(db: AsyncSession, delivery_id: str, now: Optional[datetime] = None) -> bool:
    """
    Count one open. Returns False when the delivery record does not exist.

    open_count is incremented server side and opened_at keeps its first value.
    """
    now = now or utcnow()
    record = await db.get(DeliveryRecord, delivery_id, populate_existing=True)
    if record is None:
        logger.warning("Tracking data not found", delivery_id=delivery_id, kind="open")
        return False

    stmt = (
        update(DeliveryRecord)
        .where(DeliveryRecord.id == delivery_id)
        .values(
            opened=True,
            open_count=DeliveryRecord.open_count + 1,
            opened_at=func.coalesce(DeliveryRecord.opened_at, now),
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
    await analytics.increment_opens(db, now)
    await db.commit()
    return True


async def record_click(db: AsyncSession, delivery_id: str, url: str, now: Optional[datetime] = None) -> bool:
    """
    Count one click on url. Returns False when the delivery record does not exist.

    The links list is rewritten whole from the loaded snapshot, so two
    simultaneous clicks on the same link can undercount that entry.
    """
    now = now or utcnow()
    record = await db.get(DeliveryRecord, delivery_id, populate_existing=True)
    if record is None:
        logger.warning("Tracking data not found", delivery_id=delivery_id, kind="click")
        return False

    links = [dict(link) for link in (record.links or [])]
    for link in links:
        if link.get("url") == url:
            link["clicks"] = int(link.get("clicks", 0)) + 1
            break
    else:
        links.append({"url": url, "clicks": 1})

    stmt = (
        update(DeliveryRecord)
        .where(DeliveryRecord.id == delivery_id)
        .values(
            links=links,
            clicked=True,
            click_count=DeliveryRecord.click_count + 1,
            clicked_at=func.coalesce(DeliveryRecord.clicked_at, now),
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
    await analytics.increment_clicks(db, now)
    await db.commit()
    return True


async def track_open_in_background(session_factory: async_sessionmaker, delivery_id: str) -> None:
    """Background entry point for the pixel endpoint; never raises."""
    try:
        async with session_factory() as db:
            await record_open(db, delivery_id)
    except Exception:
        logger.exception("Failed to record email open", delivery_id=delivery_id)


async def track_click_in_background(session_factory: async_sessionmaker, delivery_id: str, url: str) -> None:
    """Background entry point for the link endpoint; never raises."""
    try:
        async with session_factory() as db:
            await record_click(db, delivery_id, url)
    except Exception:
        logger.exception("Failed to record link click", delivery_id=delivery_id, url=url)
