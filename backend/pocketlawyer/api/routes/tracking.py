"""Open-pixel and click-redirect endpoints embedded in outgoing email."""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import RedirectResponse, Response
from sqlalchemy.ext.asyncio import async_sessionmaker

from pocketlawyer.config import settings
from pocketlawyer.dependencies import get_session_factory
from pocketlawyer.services.tracking import (
    NO_CACHE_HEADERS,
    TRANSPARENT_PIXEL,
    track_click_in_background,
    track_open_in_background,
)

router = APIRouter()


@router.get("/pixel/{delivery_id}")
async def tracking_pixel(
    delivery_id: str,
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Serve the 1x1 GIF immediately; the open is recorded after the response."""
    background_tasks.add_task(track_open_in_background, session_factory, delivery_id)
    return Response(content=TRANSPARENT_PIXEL, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.get("/link/{delivery_id}")
async def tracked_link(
    delivery_id: str,
    background_tasks: BackgroundTasks,
    url: Optional[str] = None,
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Redirect to the original URL (site root when missing) and record the click."""
    if not url:
        return RedirectResponse(url=settings.public_base_url or "/", status_code=302)

    background_tasks.add_task(track_click_in_background, session_factory, delivery_id, url)
    return RedirectResponse(url=url, status_code=302)
