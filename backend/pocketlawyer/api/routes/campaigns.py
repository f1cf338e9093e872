"""Campaign API endpoints."""
from collections import Counter
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.dependencies import get_db
from pocketlawyer.models.base import as_naive_utc, utcnow
from pocketlawyer.models.campaign import Campaign, CampaignStatus
from pocketlawyer.models.delivery import DeliveryRecord
from pocketlawyer.schemas.campaign import (
    CampaignCreate,
    CampaignDetailResponse,
    CampaignListResponse,
    CampaignRecipientStatus,
    CampaignResponse,
    CampaignStats,
    PopularLink,
)

router = APIRouter()


@router.get("", response_model=CampaignListResponse)
async def list_campaigns(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """List campaigns, newest first."""
    stmt = select(Campaign)
    count_stmt = select(func.count(Campaign.id))
    if status:
        stmt = stmt.where(Campaign.status == status)
        count_stmt = count_stmt.where(Campaign.status == status)

    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(stmt.order_by(Campaign.created_at.desc()).limit(limit))
    return CampaignListResponse(items=result.scalars().all(), total=total)


@router.post("", response_model=CampaignResponse, status_code=201)
async def create_campaign(
    campaign_in: CampaignCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a campaign; the next scheduler sweep after scheduled_for sends it."""
    recipients = [r.model_dump() for r in campaign_in.recipients]
    campaign = Campaign(
        name=campaign_in.name,
        subject=campaign_in.subject,
        template=campaign_in.template,
        data=campaign_in.data or {},
        recipients=recipients,
        attachments=[a.model_dump() for a in campaign_in.attachments] if campaign_in.attachments else None,
        scheduled_for=as_naive_utc(campaign_in.scheduled_for) or utcnow(),
        status=CampaignStatus.SCHEDULED,
        total_count=len(recipients),
        sent_count=0,
        failed_count=0,
    )
    db.add(campaign)
    await db.flush()
    await db.refresh(campaign)
    return campaign


@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Campaign details with per-recipient engagement and most clicked links."""
    campaign = await db.get(Campaign, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")

    stmt = (
        select(DeliveryRecord)
        .where(DeliveryRecord.campaign_id == campaign_id)
        .order_by(DeliveryRecord.sent_at.desc())
    )
    records = (await db.execute(stmt)).scalars().all()

    sent = len(records)
    opened = sum(1 for r in records if r.opened)
    clicked = sum(1 for r in records if r.clicked)

    link_clicks: Counter = Counter()
    for record in records:
        for link in record.links or []:
            link_clicks[link.get("url", "")] += int(link.get("clicks", 0))

    return CampaignDetailResponse(
        **CampaignResponse.model_validate(campaign).model_dump(),
        stats=CampaignStats(
            recipient_count=campaign.total_count or len(campaign.recipients or []),
            sent=sent,
            opened=opened,
            clicked=clicked,
            open_rate=round(opened / sent * 100, 1) if sent else 0.0,
            click_rate=round(clicked / opened * 100, 1) if opened else 0.0,
        ),
        popular_links=[PopularLink(url=url, clicks=n) for url, n in link_clicks.most_common(5)],
        recipients=[
            CampaignRecipientStatus(
                email=r.recipient,
                sent_at=r.sent_at,
                opened=r.opened,
                opened_at=r.opened_at,
                clicked=r.clicked,
                clicked_at=r.clicked_at,
                click_count=r.click_count,
            )
            for r in records[:100]
        ],
    )


@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a campaign that has not started sending."""
    campaign = await db.get(Campaign, campaign_id)
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")

    if campaign.status != CampaignStatus.SCHEDULED:
        raise HTTPException(status_code=400, detail="Only scheduled campaigns can be deleted")

    await db.delete(campaign)
    return {"success": True, "message": "Campaign deleted successfully"}
