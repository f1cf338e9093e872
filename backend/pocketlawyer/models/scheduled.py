"""ScheduledEmail model for individually scheduled messages."""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pocketlawyer.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ScheduledEmailStatus:
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"


class ScheduledEmail(Base, UUIDMixin, TimestampMixin):
    """A single email waiting for its send time."""

    __tablename__ = "scheduled_emails"

    to: Mapped[list] = mapped_column(JSONType, nullable=False)  # ["a@example.com", ...]
    subject: Mapped[str] = mapped_column(String(998), nullable=False)
    template: Mapped[str] = mapped_column(String(50), nullable=False)
    data: Mapped[Optional[dict]] = mapped_column(JSONType)
    tracking_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    campaign_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    attachments: Mapped[Optional[list]] = mapped_column(JSONType)  # [{"filename", "content" (base64), "content_type"}]

    scheduled_for: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ScheduledEmailStatus.SCHEDULED,
        nullable=False,
    )  # scheduled, processing, sent, failed

    # Outcome
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    error: Mapped[Optional[str]] = mapped_column(Text)
    message_ids: Mapped[Optional[list]] = mapped_column(JSONType)

    __table_args__ = (
        Index("idx_scheduled_status_due", "status", "scheduled_for"),
    )
