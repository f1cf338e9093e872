"""Engagement counters, mutated only through atomic increments."""
from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from pocketlawyer.models.base import Base, utcnow

COUNTERS_KEY = "emailEvents"


class AnalyticsCounters(Base):
    """Singleton row holding lifetime totals."""

    __tablename__ = "email_analytics"

    key: Mapped[str] = mapped_column(String(50), primary_key=True, default=COUNTERS_KEY)
    total_opens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class DailyEmailStats(Base):
    """Per-day bucket, keyed by YYYY-MM-DD (UTC)."""

    __tablename__ = "email_daily_stats"

    day: Mapped[str] = mapped_column(String(10), primary_key=True)
    opens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
