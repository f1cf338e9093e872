"""Scheduler sweep: dispatch every due scheduled email and campaign.

A sweep is triggered from outside (cron calling POST /scheduler/run, or the
Celery beat entry). It is safe to run repeatedly or concurrently:

- a scheduled email is claimed with a conditional ``scheduled -> processing``
  update committed before the send, and ends in ``sent`` or ``failed``;
- a campaign is claimed with a conditional ``scheduled -> processing``
  update, and only the sweep whose update matched a row sends it.

Only the sweep whose update matched a row dispatches the item. A sweep that
dies mid-send leaves the item in ``processing``; it is not retried.

Per-item errors are recorded on the item and in the returned result; the
sweep itself never raises. The session must be created with
expire_on_commit=False, since items are read back after each commit.
"""
import uuid
from datetime import datetime
from typing import List, Optional

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.config import settings
from pocketlawyer.integrations.email_client import EmailClient
from pocketlawyer.models.base import utcnow
from pocketlawyer.models.campaign import Campaign, CampaignStatus
from pocketlawyer.models.scheduled import ScheduledEmail, ScheduledEmailStatus
from pocketlawyer.services.email_service import EmailService

logger = structlog.get_logger()


class EmailSweepStats(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0


class CampaignSweepStats(BaseModel):
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0  # already processing, or claimed by another sweep


class SweepFailure(BaseModel):
    kind: str  # "email" or "campaign"
    id: Optional[str] = None
    error: str


class SweepResult(BaseModel):
    emails: EmailSweepStats = Field(default_factory=EmailSweepStats)
    campaigns: CampaignSweepStats = Field(default_factory=CampaignSweepStats)
    failures: List[SweepFailure] = Field(default_factory=list)

    @property
    def emails_processed(self) -> int:
        return self.emails.processed

    @property
    def campaigns_processed(self) -> int:
        return self.campaigns.processed


# ============== Scheduled emails ==============

async def _due_email_ids(db: AsyncSession, now: datetime) -> List[uuid.UUID]:
    stmt = (
        select(ScheduledEmail.id)
        .where(
            ScheduledEmail.status == ScheduledEmailStatus.SCHEDULED,
            ScheduledEmail.scheduled_for <= now,
        )
        .limit(settings.scheduled_email_batch_limit)
    )
    return list((await db.execute(stmt)).scalars().all())


async def claim_scheduled_email(db: AsyncSession, email_id: uuid.UUID) -> bool:
    """Compare-and-set scheduled -> processing; True if this sweep won the claim."""
    stmt = (
        update(ScheduledEmail)
        .where(ScheduledEmail.id == email_id, ScheduledEmail.status == ScheduledEmailStatus.SCHEDULED)
        .values(status=ScheduledEmailStatus.PROCESSING)
        .execution_options(synchronize_session=False)
    )
    claimed = (await db.execute(stmt)).rowcount == 1
    await db.commit()
    return claimed


async def _send_scheduled_email(db: AsyncSession, service: EmailService, email_id: uuid.UUID) -> Optional[ScheduledEmail]:
    """Claim and dispatch one email, then persist its terminal status. None if another sweep has it."""
    if not await claim_scheduled_email(db, email_id):
        return None
    email = await db.get(ScheduledEmail, email_id, populate_existing=True)

    outcome = await service.send_email(
        to=email.to,
        subject=email.subject,
        template=email.template,
        data=email.data,
        tracking_enabled=email.tracking_enabled,
        campaign_id=email.campaign_id,
        attachments=email.attachments,
    )

    if outcome.success:
        email.status = ScheduledEmailStatus.SENT
        email.sent_at = utcnow()
        email.error = None
    else:
        # Terminal: a failed send is reported to the caller, not retried
        email.status = ScheduledEmailStatus.FAILED
        email.error = "; ".join(outcome.errors) or "no recipients"
    email.message_ids = outcome.message_ids
    await db.commit()
    return email


async def _mark_email_failed(db: AsyncSession, email_id: uuid.UUID, error: str) -> None:
    try:
        await db.execute(
            update(ScheduledEmail)
            .where(
                ScheduledEmail.id == email_id,
                ScheduledEmail.status.in_([ScheduledEmailStatus.SCHEDULED, ScheduledEmailStatus.PROCESSING]),
            )
            .values(status=ScheduledEmailStatus.FAILED, error=error)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        logger.exception("Could not mark scheduled email as failed", scheduled_id=str(email_id))
        await db.rollback()


async def process_scheduled_emails(
    db: AsyncSession,
    service: EmailService,
    result: SweepResult,
    now: datetime,
) -> None:
    """Send every ScheduledEmail that is still scheduled and due."""
    try:
        email_ids = await _due_email_ids(db, now)
    except Exception as e:
        logger.exception("Failed to query scheduled emails")
        await db.rollback()
        result.failures.append(SweepFailure(kind="email", error=str(e)))
        return

    for email_id in email_ids:
        try:
            email = await _send_scheduled_email(db, service, email_id)
        except Exception as e:
            logger.exception("Failed to process scheduled email", scheduled_id=str(email_id))
            await db.rollback()
            await _mark_email_failed(db, email_id, str(e))
            result.emails.processed += 1
            result.emails.failed += 1
            result.failures.append(SweepFailure(kind="email", id=str(email_id), error=str(e)))
            continue

        if email is None:
            continue

        result.emails.processed += 1
        if email.status == ScheduledEmailStatus.SENT:
            result.emails.succeeded += 1
            logger.info("Scheduled email sent", scheduled_id=str(email_id), recipients=len(email.to))
        else:
            result.emails.failed += 1
            result.failures.append(SweepFailure(kind="email", id=str(email_id), error=email.error))
            logger.warning("Scheduled email failed", scheduled_id=str(email_id), error=email.error)


# ============== Campaigns ==============

async def claim_campaign(db: AsyncSession, campaign_id: uuid.UUID, now: datetime) -> bool:
    """Compare-and-set scheduled -> processing; True if this sweep won the claim."""
    stmt = (
        update(Campaign)
        .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.SCHEDULED)
        .values(status=CampaignStatus.PROCESSING, processing_started_at=now)
        .execution_options(synchronize_session=False)
    )
    claimed = (await db.execute(stmt)).rowcount == 1
    await db.commit()
    return claimed


async def _send_campaign(db: AsyncSession, service: EmailService, campaign_id: uuid.UUID) -> Campaign:
    campaign = await db.get(Campaign, campaign_id, populate_existing=True)
    recipients = campaign.recipients or []

    outcome = await service.send_bulk(
        recipients=recipients,
        subject=campaign.subject,
        template=campaign.template,
        data=campaign.data,
        campaign_id=campaign.id,
        attachments=campaign.attachments,
    )

    campaign.total_count = len(recipients)
    campaign.sent_count = outcome.sent
    campaign.failed_count = outcome.failed
    campaign.completed_at = utcnow()
    if recipients and outcome.sent == 0:
        campaign.status = CampaignStatus.FAILED
        campaign.error = "; ".join(outcome.errors[:10])
    else:
        campaign.status = CampaignStatus.SENT
    await db.commit()
    return campaign


async def _mark_campaign_failed(db: AsyncSession, campaign_id: uuid.UUID, error: str) -> None:
    try:
        await db.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id, Campaign.status == CampaignStatus.PROCESSING)
            .values(status=CampaignStatus.FAILED, error=error, completed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except Exception:
        logger.exception("Could not mark campaign as failed", campaign_id=str(campaign_id))
        await db.rollback()


async def process_scheduled_campaigns(
    db: AsyncSession,
    service: EmailService,
    result: SweepResult,
    now: datetime,
) -> None:
    """Claim and send every due campaign; leave in-flight ones alone."""
    try:
        stmt = (
            select(Campaign.id, Campaign.status)
            .where(
                Campaign.status.in_([CampaignStatus.SCHEDULED, CampaignStatus.PROCESSING]),
                Campaign.scheduled_for <= now,
            )
            .limit(settings.campaign_batch_limit)
        )
        due = (await db.execute(stmt)).all()
    except Exception as e:
        logger.exception("Failed to query scheduled campaigns")
        await db.rollback()
        result.failures.append(SweepFailure(kind="campaign", error=str(e)))
        return

    for campaign_id, status in due:
        if status == CampaignStatus.PROCESSING:
            logger.info("Campaign already processing, skipping", campaign_id=str(campaign_id))
            result.campaigns.skipped += 1
            continue

        try:
            claimed = await claim_campaign(db, campaign_id, now)
        except Exception as e:
            logger.exception("Failed to claim campaign", campaign_id=str(campaign_id))
            await db.rollback()
            result.failures.append(SweepFailure(kind="campaign", id=str(campaign_id), error=str(e)))
            continue

        if not claimed:
            logger.info("Campaign claimed by another sweep", campaign_id=str(campaign_id))
            result.campaigns.skipped += 1
            continue

        result.campaigns.processed += 1
        try:
            campaign = await _send_campaign(db, service, campaign_id)
        except Exception as e:
            logger.exception("Failed to process campaign", campaign_id=str(campaign_id))
            await db.rollback()
            await _mark_campaign_failed(db, campaign_id, str(e))
            result.campaigns.failed += 1
            result.failures.append(SweepFailure(kind="campaign", id=str(campaign_id), error=str(e)))
            continue

        if campaign.status == CampaignStatus.SENT:
            result.campaigns.succeeded += 1
            logger.info(
                "Campaign sent",
                campaign_id=str(campaign_id),
                sent=campaign.sent_count,
                failed=campaign.failed_count,
            )
        else:
            result.campaigns.failed += 1
            result.failures.append(SweepFailure(kind="campaign", id=str(campaign_id), error=campaign.error))
            logger.warning("Campaign failed", campaign_id=str(campaign_id), error=campaign.error)


async def run_sweep(
    db: AsyncSession,
    client: Optional[EmailClient] = None,
    now: Optional[datetime] = None,
) -> SweepResult:
    """Process all due scheduled emails, then all due campaigns."""
    now = now or utcnow()
    service = EmailService(db, client=client)
    result = SweepResult()

    await process_scheduled_emails(db, service, result, now)
    await process_scheduled_campaigns(db, service, result, now)

    logger.info(
        "Scheduler sweep finished",
        emails=result.emails.model_dump(),
        campaigns=result.campaigns.model_dump(),
        failures=len(result.failures),
    )
    return result
