"""Analytics API endpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.dependencies import get_db
from pocketlawyer.schemas.analytics import AnalyticsResponse
from pocketlawyer.services.analytics import build_summary

router = APIRouter()


@router.get("", response_model=AnalyticsResponse)
async def get_email_analytics(
    period: str = Query("month", pattern="^(week|month|quarter|year)$"),
    db: AsyncSession = Depends(get_db),
):
    """Sends, opens and clicks over the period, with daily series and top templates."""
    return await build_summary(db, period)
