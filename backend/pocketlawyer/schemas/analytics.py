"""Analytics schemas for the admin dashboard."""
from typing import List

from pydantic import BaseModel


class AnalyticsSummary(BaseModel):
    total_sent: int
    total_opens: int
    total_clicks: int
    unique_opens: int
    unique_clicks: int
    open_rate: float
    click_rate: float
    lifetime_opens: int
    lifetime_clicks: int


class TemplateUsage(BaseModel):
    template: str
    usage_count: int


class TimeSeriesPoint(BaseModel):
    date: str
    sent: int
    opens: int
    clicks: int


class AnalyticsResponse(BaseModel):
    period: str
    summary: AnalyticsSummary
    template_usage: List[TemplateUsage]
    time_series: List[TimeSeriesPoint]
