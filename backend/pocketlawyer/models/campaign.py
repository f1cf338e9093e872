"""Campaign model for bulk sends."""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocketlawyer.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class CampaignStatus:
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"


class Campaign(Base, UUIDMixin, TimestampMixin):
    """Bulk send definition: recipients, template and schedule."""

    __tablename__ = "email_campaigns"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(998), nullable=False)
    template: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSONType)
    recipients: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)  # [{"email", "name"}]
    attachments: Mapped[Optional[list]] = mapped_column(JSONType)

    scheduled_for: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=CampaignStatus.SCHEDULED,
        nullable=False,
    )  # scheduled, processing, sent, failed

    # Progress
    processing_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    total_count: Mapped[int] = mapped_column(Integer, default=0)
    sent_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_campaigns_status_due", "status", "scheduled_for"),
    )
