"""API routes for sending email and listing scheduled/sent mail."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.dependencies import get_db, get_email_client
from pocketlawyer.integrations.email_client import EmailClient
from pocketlawyer.models.base import as_naive_utc
from pocketlawyer.models.delivery import DeliveryRecord
from pocketlawyer.models.scheduled import ScheduledEmail
from pocketlawyer.schemas.email import (
    BulkSendRequest,
    RecipientResultResponse,
    ScheduledEmailResponse,
    SendEmailRequest,
    SendResponse,
    SentEmailResponse,
)
from pocketlawyer.services.email_service import EmailService, SendResult

router = APIRouter()


def _attachments(request) -> Optional[List[dict]]:
    if not request.attachments:
        return None
    return [a.model_dump() for a in request.attachments]


def _to_response(result: SendResult) -> SendResponse:
    return SendResponse(
        success=result.success,
        scheduled=result.scheduled,
        scheduled_id=result.scheduled_id,
        sent=result.sent,
        failed=result.failed,
        results=[RecipientResultResponse(**vars(r)) for r in result.results],
    )


@router.post("/send", response_model=SendResponse)
async def send_email(
    request: SendEmailRequest,
    db: AsyncSession = Depends(get_db),
    client: EmailClient = Depends(get_email_client),
):
    """Send an email now, or queue it for the scheduler."""
    if not request.to:
        raise HTTPException(status_code=400, detail="At least one recipient is required")

    service = EmailService(db, client=client)
    result = await service.send_email(
        to=request.to,
        subject=request.subject,
        template=request.template,
        data=request.data,
        tracking_enabled=request.tracking_enabled,
        campaign_id=request.campaign_id,
        scheduled_for=as_naive_utc(request.scheduled_for),
        attachments=_attachments(request),
    )
    return _to_response(result)


@router.post("/bulk", response_model=SendResponse)
async def send_bulk(
    request: BulkSendRequest,
    db: AsyncSession = Depends(get_db),
    client: EmailClient = Depends(get_email_client),
):
    """Send to a recipient list, or schedule it as a campaign."""
    service = EmailService(db, client=client)
    result = await service.send_bulk(
        recipients=[r.model_dump() for r in request.recipients],
        subject=request.subject,
        template=request.template,
        data=request.data,
        name=request.name,
        campaign_id=request.campaign_id,
        scheduled_for=as_naive_utc(request.scheduled_for),
        attachments=_attachments(request),
    )
    return _to_response(result)


@router.get("/scheduled", response_model=List[ScheduledEmailResponse])
async def list_scheduled(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Scheduled emails, latest send time first."""
    stmt = select(ScheduledEmail).order_by(ScheduledEmail.scheduled_for.desc()).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()


@router.get("/sent", response_model=List[SentEmailResponse])
async def list_sent(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Most recent tracked deliveries."""
    stmt = select(DeliveryRecord).order_by(DeliveryRecord.sent_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return result.scalars().all()
