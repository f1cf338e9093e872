"""DeliveryRecord model: per-recipient open/click tracking state."""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from pocketlawyer.models.base import Base, JSONType, utcnow


class DeliveryRecord(Base):
    """One tracked outbound email to a single recipient."""

    __tablename__ = "email_tracking"

    # 32 hex chars, embedded in pixel and link URLs
    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(998), nullable=False)
    template: Mapped[str] = mapped_column(String(50), nullable=False)
    campaign_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    message_id: Mapped[Optional[str]] = mapped_column(String(255))  # transport id

    sent_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Opens
    opened: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    open_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    opened_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Clicks
    clicked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    clicked_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    links: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)  # [{"url": ..., "clicks": n}]

    __table_args__ = (
        Index("idx_tracking_campaign", "campaign_id"),
        Index("idx_tracking_sent_at", "sent_at"),
    )
