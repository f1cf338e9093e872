"""Schemas for sending and listing email."""
import base64
import binascii
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pocketlawyer.services.templates import TEMPLATE_NAMES


# ============== Requests ==============

class Attachment(BaseModel):
    """A file sent with the message; content is base64 encoded."""
    filename: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    content_type: Optional[str] = None

    @field_validator("content")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        try:
            base64.b64decode(v, validate=True)
        except (binascii.Error, ValueError):
            raise ValueError("content must be base64 encoded")
        return v


class SendEmailRequest(BaseModel):
    """Send now, or schedule when scheduled_for is in the future."""
    to: Union[str, List[str]]
    subject: str = Field(..., min_length=1, max_length=998)
    template: str = Field("custom", description=f"One of: {', '.join(TEMPLATE_NAMES)}")
    data: Optional[Dict[str, Any]] = None
    tracking_enabled: bool = True
    campaign_id: Optional[UUID] = None
    scheduled_for: Optional[datetime] = None
    attachments: Optional[List[Attachment]] = None


class BulkRecipient(BaseModel):
    email: str
    name: Optional[str] = None


class BulkSendRequest(BaseModel):
    """Send to many recipients; a future scheduled_for creates a campaign."""
    recipients: List[BulkRecipient] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=998)
    template: str = "custom"
    data: Optional[Dict[str, Any]] = None
    name: Optional[str] = Field(None, max_length=255)
    campaign_id: Optional[UUID] = None
    scheduled_for: Optional[datetime] = None
    attachments: Optional[List[Attachment]] = None


# ============== Responses ==============

class RecipientResultResponse(BaseModel):
    email: str
    success: bool
    delivery_id: Optional[str] = None
    message_id: Optional[str] = None
    error: Optional[str] = None


class SendResponse(BaseModel):
    success: bool
    scheduled: bool = False
    scheduled_id: Optional[UUID] = None
    sent: int = 0
    failed: int = 0
    results: List[RecipientResultResponse] = []


class ScheduledEmailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    to: List[str]
    subject: str
    template: str
    campaign_id: Optional[UUID] = None
    scheduled_for: datetime
    status: str
    sent_at: Optional[datetime] = None
    error: Optional[str] = None
    created_at: datetime


class SentEmailResponse(BaseModel):
    """A delivery record as shown in the admin sent list."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    recipient: str
    subject: str
    template: str
    campaign_id: Optional[UUID] = None
    sent_at: datetime
    opened: bool
    open_count: int
    opened_at: Optional[datetime] = None
    clicked: bool
    click_count: int
    clicked_at: Optional[datetime] = None
    links: List[Dict[str, Any]] = []
