"""Engagement counters and the admin analytics summary.

Counters are only ever changed with INSERT ... ON CONFLICT DO UPDATE
SET col = col + 1, so concurrent tracking events never lose an update.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.models.analytics import COUNTERS_KEY, AnalyticsCounters, DailyEmailStats
from pocketlawyer.models.base import utcnow
from pocketlawyer.models.delivery import DeliveryRecord

PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 91,
    "year": 365,
}


def day_key(now: Optional[datetime] = None) -> str:
    """Day bucket for a (naive UTC) timestamp: YYYY-MM-DD."""
    return (now or utcnow()).strftime("%Y-%m-%d")


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Atomic upsert not supported for dialect {dialect}")


async def _increment(db: AsyncSession, total_column: str, daily_column: str, now: datetime) -> None:
    insert = _insert_for(db)

    totals = insert(AnalyticsCounters).values({"key": COUNTERS_KEY, total_column: 1, "updated_at": now})
    totals = totals.on_conflict_do_update(
        index_elements=[AnalyticsCounters.key],
        set_={
            total_column: getattr(AnalyticsCounters, total_column) + 1,
            "updated_at": now,
        },
    )
    await db.execute(totals)

    daily = insert(DailyEmailStats).values({"day": day_key(now), daily_column: 1})
    daily = daily.on_conflict_do_update(
        index_elements=[DailyEmailStats.day],
        set_={daily_column: getattr(DailyEmailStats, daily_column) + 1},
    )
    await db.execute(daily)


async def increment_opens(db: AsyncSession, now: Optional[datetime] = None) -> None:
    await _increment(db, "total_opens", "opens", now or utcnow())


async def increment_clicks(db: AsyncSession, now: Optional[datetime] = None) -> None:
    await _increment(db, "total_clicks", "clicks", now or utcnow())


async def get_counters(db: AsyncSession) -> Dict[str, Any]:
    """Totals plus per-day maps, shaped like the emailEvents document."""
    counters = await db.get(AnalyticsCounters, COUNTERS_KEY, populate_existing=True)
    result = await db.execute(
        select(DailyEmailStats).order_by(DailyEmailStats.day).execution_options(populate_existing=True)
    )
    days = result.scalars().all()

    return {
        "total_opens": counters.total_opens if counters else 0,
        "total_clicks": counters.total_clicks if counters else 0,
        "daily_opens": {d.day: d.opens for d in days if d.opens},
        "daily_clicks": {d.day: d.clicks for d in days if d.clicks},
    }


async def build_summary(db: AsyncSession, period: str = "month", now: Optional[datetime] = None) -> Dict[str, Any]:
    """Dashboard view: totals, rates, daily series and top templates for a period."""
    now = now or utcnow()
    if period not in PERIOD_DAYS:
        period = "month"
    start = (now - timedelta(days=PERIOD_DAYS[period])).replace(hour=0, minute=0, second=0, microsecond=0)

    sent_stmt = select(func.count(DeliveryRecord.id)).where(DeliveryRecord.sent_at >= start)
    total_sent = (await db.execute(sent_stmt)).scalar() or 0

    opened_stmt = select(func.count(DeliveryRecord.id)).where(
        DeliveryRecord.sent_at >= start,
        DeliveryRecord.opened.is_(True),
    )
    unique_opens = (await db.execute(opened_stmt)).scalar() or 0

    clicked_stmt = select(func.count(DeliveryRecord.id)).where(
        DeliveryRecord.sent_at >= start,
        DeliveryRecord.clicked.is_(True),
    )
    unique_clicks = (await db.execute(clicked_stmt)).scalar() or 0

    # Daily series: sends from delivery records, opens/clicks from day buckets
    series: Dict[str, Dict[str, int]] = {}
    cursor = start
    while cursor <= now:
        series[day_key(cursor)] = {"sent": 0, "opens": 0, "clicks": 0}
        cursor += timedelta(days=1)

    sent_rows = await db.execute(select(DeliveryRecord.sent_at).where(DeliveryRecord.sent_at >= start))
    for (sent_at,) in sent_rows:
        bucket = series.get(day_key(sent_at))
        if bucket is not None:
            bucket["sent"] += 1

    day_rows = await db.execute(
        select(DailyEmailStats)
        .where(DailyEmailStats.day >= day_key(start))
        .execution_options(populate_existing=True)
    )
    period_opens = 0
    period_clicks = 0
    for stats in day_rows.scalars():
        period_opens += stats.opens
        period_clicks += stats.clicks
        bucket = series.get(stats.day)
        if bucket is not None:
            bucket["opens"] = stats.opens
            bucket["clicks"] = stats.clicks

    template_stmt = (
        select(DeliveryRecord.template, func.count(DeliveryRecord.id).label("usage"))
        .where(DeliveryRecord.sent_at >= start)
        .group_by(DeliveryRecord.template)
        .order_by(func.count(DeliveryRecord.id).desc())
        .limit(5)
    )
    template_usage = [
        {"template": template, "usage_count": usage}
        for template, usage in (await db.execute(template_stmt)).all()
    ]

    counters = await get_counters(db)
    time_series: List[Dict[str, Any]] = [{"date": day, **values} for day, values in sorted(series.items())]

    return {
        "period": period,
        "summary": {
            "total_sent": total_sent,
            "total_opens": period_opens,
            "total_clicks": period_clicks,
            "unique_opens": unique_opens,
            "unique_clicks": unique_clicks,
            "open_rate": round(unique_opens / total_sent * 100, 2) if total_sent else 0.0,
            "click_rate": round(unique_clicks / unique_opens * 100, 2) if unique_opens else 0.0,
            "lifetime_opens": counters["total_opens"],
            "lifetime_clicks": counters["total_clicks"],
        },
        "template_usage": template_usage,
        "time_series": time_series,
    }
