"""Factories for test rows."""
from datetime import datetime, timedelta
from typing import List, Optional

from pocketlawyer.models import Campaign, CampaignStatus, DeliveryRecord, ScheduledEmail, ScheduledEmailStatus
from pocketlawyer.models.base import utcnow


async def create_delivery(db, delivery_id: str = "a" * 32, template: str = "welcome", sent_at: Optional[datetime] = None, **kwargs):
    fields = {
        "recipient": "reader@example.com",
        "subject": "Hello",
        "opened": False,
        "open_count": 0,
        "clicked": False,
        "click_count": 0,
        "links": [],
    }
    fields.update(kwargs)
    record = DeliveryRecord(id=delivery_id, template=template, sent_at=sent_at or utcnow(), **fields)
    db.add(record)
    await db.commit()
    return record


async def create_scheduled_email(db, to: Optional[List[str]] = None, minutes_ago: int = 5, **kwargs):
    email = ScheduledEmail(
        to=to or ["due@example.com"],
        subject=kwargs.pop("subject", "Reminder"),
        template=kwargs.pop("template", "custom"),
        data=kwargs.pop("data", {"content": "Your trial ends soon"}),
        tracking_enabled=kwargs.pop("tracking_enabled", True),
        scheduled_for=utcnow() - timedelta(minutes=minutes_ago),
        status=kwargs.pop("status", ScheduledEmailStatus.SCHEDULED),
        **kwargs,
    )
    db.add(email)
    await db.commit()
    return email


async def create_campaign(db, recipients=None, minutes_ago: int = 5, **kwargs):
    recipients = recipients if recipients is not None else [
        {"email": "alice@example.com", "name": "Alice"},
        {"email": "bob@example.com", "name": None},
    ]
    campaign = Campaign(
        name=kwargs.pop("name", "October newsletter"),
        subject=kwargs.pop("subject", "Legal news"),
        template=kwargs.pop("template", "newsletter"),
        data=kwargs.pop("data", {}),
        recipients=recipients,
        scheduled_for=utcnow() - timedelta(minutes=minutes_ago),
        status=kwargs.pop("status", CampaignStatus.SCHEDULED),
        total_count=len(recipients),
        sent_count=0,
        failed_count=0,
        **kwargs,
    )
    db.add(campaign)
    await db.commit()
    return campaign
