"""Campaign schemas for request/response validation."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pocketlawyer.schemas.email import Attachment, BulkRecipient


class CampaignCreate(BaseModel):
    """Schema for creating a campaign. Without scheduled_for it is due immediately."""
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=998)
    template: str = "custom"
    data: Optional[Dict[str, Any]] = None
    recipients: List[BulkRecipient] = Field(..., min_length=1)
    scheduled_for: Optional[datetime] = None
    attachments: Optional[List[Attachment]] = None


class CampaignResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    subject: str
    template: str
    status: str
    scheduled_for: datetime
    processing_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_count: int
    sent_count: int
    failed_count: int
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CampaignListResponse(BaseModel):
    items: List[CampaignResponse]
    total: int


class CampaignStats(BaseModel):
    recipient_count: int
    sent: int
    opened: int
    clicked: int
    open_rate: float
    click_rate: float


class PopularLink(BaseModel):
    url: str
    clicks: int


class CampaignRecipientStatus(BaseModel):
    email: str
    sent_at: datetime
    opened: bool
    opened_at: Optional[datetime] = None
    clicked: bool
    clicked_at: Optional[datetime] = None
    click_count: int


class CampaignDetailResponse(CampaignResponse):
    """Campaign with engagement derived from its delivery records."""
    stats: CampaignStats
    popular_links: List[PopularLink]
    recipients: List[CampaignRecipientStatus]
