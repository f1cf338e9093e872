"""SQLAlchemy models package."""
from pocketlawyer.models.base import Base
from pocketlawyer.models.delivery import DeliveryRecord
from pocketlawyer.models.scheduled import ScheduledEmail, ScheduledEmailStatus
from pocketlawyer.models.campaign import Campaign, CampaignStatus
from pocketlawyer.models.analytics import AnalyticsCounters, DailyEmailStats, COUNTERS_KEY

__all__ = [
    "Base",
    "DeliveryRecord",
    "ScheduledEmail",
    "ScheduledEmailStatus",
    "Campaign",
    "CampaignStatus",
    "AnalyticsCounters",
    "DailyEmailStats",
    "COUNTERS_KEY",
]
