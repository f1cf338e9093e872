from datetime import timedelta

import pytest
from sqlalchemy import func, select

from pocketlawyer.models import Campaign, CampaignStatus, DeliveryRecord, ScheduledEmail, ScheduledEmailStatus
from pocketlawyer.models.base import utcnow
from pocketlawyer.services.email_service import EmailService
from pocketlawyer.services.scheduler import claim_campaign, claim_scheduled_email, run_sweep
from tests.conftest import FakeEmailClient
from tests.utils import create_campaign, create_scheduled_email


async def _reload(db, model, pk):
    return await db.get(model, pk, populate_existing=True)


async def test_due_scheduled_email_is_sent_once(db, email_client):
    email = await create_scheduled_email(db, to=["one@example.com", "two@example.com"])

    result = await run_sweep(db, client=email_client)

    assert result.emails.model_dump() == {"processed": 1, "succeeded": 1, "failed": 0}
    assert email_client.recipients() == ["one@example.com", "two@example.com"]
    email = await _reload(db, ScheduledEmail, email.id)
    assert email.status == ScheduledEmailStatus.SENT
    assert email.sent_at is not None
    assert email.message_ids == ["msg-1", "msg-2"]

    second = await run_sweep(db, client=email_client)
    assert second.emails.processed == 0
    assert len(email_client.sent) == 2


async def test_future_scheduled_email_is_left_alone(db, email_client):
    email = await create_scheduled_email(db, minutes_ago=-30)

    result = await run_sweep(db, client=email_client)

    assert result.emails.processed == 0
    assert email_client.sent == []
    assert (await _reload(db, ScheduledEmail, email.id)).status == ScheduledEmailStatus.SCHEDULED


async def test_failed_transport_marks_email_failed_and_never_retries(db):
    transport = FakeEmailClient(fail_for=["bounce@example.com"])
    email = await create_scheduled_email(db, to=["bounce@example.com"])

    result = await run_sweep(db, client=transport)

    assert result.emails.failed == 1
    assert result.failures[0].kind == "email"
    assert result.failures[0].id == str(email.id)
    email = await _reload(db, ScheduledEmail, email.id)
    assert email.status == ScheduledEmailStatus.FAILED
    assert "mailbox unavailable" in email.error

    again = await run_sweep(db, client=transport)
    assert again.emails.processed == 0


async def test_exception_while_sending_is_recorded_and_sweep_continues(db, email_client, monkeypatch):
    broken_id = (await create_scheduled_email(db, to=["broken@example.com"], minutes_ago=10)).id
    campaign_id = (await create_campaign(db)).id

    async def explode(self, **kwargs):
        raise RuntimeError("template exploded")

    monkeypatch.setattr(EmailService, "send_email", explode)

    result = await run_sweep(db, client=email_client)

    assert result.emails.model_dump() == {"processed": 1, "succeeded": 0, "failed": 1}
    assert result.failures[0].error == "template exploded"
    # The sweep rolled back, so earlier instances are expired; reload by id
    broken = await _reload(db, ScheduledEmail, broken_id)
    assert broken.status == ScheduledEmailStatus.FAILED
    assert broken.error == "template exploded"

    # Campaigns still ran in the same sweep
    assert result.campaigns.succeeded == 1
    assert (await _reload(db, Campaign, campaign_id)).status == CampaignStatus.SENT


async def test_campaign_is_sent_with_personalised_names(db, email_client):
    campaign = await create_campaign(db)

    result = await run_sweep(db, client=email_client)

    assert result.campaigns.model_dump() == {"processed": 1, "succeeded": 1, "failed": 0, "skipped": 0}
    assert email_client.recipients() == ["alice@example.com", "bob@example.com"]
    assert "Hello Alice," in email_client.sent[0]["html"]
    assert "Hello bob," in email_client.sent[1]["html"]

    campaign = await _reload(db, Campaign, campaign.id)
    assert campaign.status == CampaignStatus.SENT
    assert (campaign.sent_count, campaign.failed_count, campaign.total_count) == (2, 0, 2)
    assert campaign.processing_started_at is not None
    assert campaign.completed_at is not None

    tracked = (await db.execute(
        select(func.count(DeliveryRecord.id)).where(DeliveryRecord.campaign_id == campaign.id)
    )).scalar()
    assert tracked == 2


async def test_campaign_is_dispatched_at_most_once(db, email_client):
    await create_campaign(db)

    await run_sweep(db, client=email_client)
    await run_sweep(db, client=email_client)

    assert len(email_client.sent) == 2


async def test_processing_campaign_is_skipped(db, email_client):
    campaign = await create_campaign(db, status=CampaignStatus.PROCESSING)

    result = await run_sweep(db, client=email_client)

    assert result.campaigns.skipped == 1
    assert result.campaigns.processed == 0
    assert email_client.sent == []
    assert (await _reload(db, Campaign, campaign.id)).status == CampaignStatus.PROCESSING


async def test_claim_is_compare_and_set(db):
    campaign = await create_campaign(db)
    now = utcnow()

    assert await claim_campaign(db, campaign.id, now) is True
    assert await claim_campaign(db, campaign.id, now) is False
    assert (await _reload(db, Campaign, campaign.id)).status == CampaignStatus.PROCESSING


async def test_campaign_with_every_recipient_failing_is_failed(db):
    transport = FakeEmailClient(fail_for=["alice@example.com", "bob@example.com"])
    campaign = await create_campaign(db)

    result = await run_sweep(db, client=transport)

    assert result.campaigns.failed == 1
    assert result.failures[0].kind == "campaign"
    campaign = await _reload(db, Campaign, campaign.id)
    assert campaign.status == CampaignStatus.FAILED
    assert campaign.failed_count == 2
    assert "alice@example.com" in campaign.error


async def test_partial_campaign_failure_still_counts_as_sent(db):
    transport = FakeEmailClient(fail_for=["bob@example.com"])
    campaign = await create_campaign(db)

    result = await run_sweep(db, client=transport)

    assert result.campaigns.succeeded == 1
    campaign = await _reload(db, Campaign, campaign.id)
    assert campaign.status == CampaignStatus.SENT
    assert (campaign.sent_count, campaign.failed_count) == (1, 1)


async def test_empty_campaign_completes_as_sent(db, email_client):
    campaign = await create_campaign(db, recipients=[])

    await run_sweep(db, client=email_client)

    campaign = await _reload(db, Campaign, campaign.id)
    assert campaign.status == CampaignStatus.SENT
    assert campaign.total_count == 0
    assert email_client.sent == []


@pytest.mark.parametrize("limit_attr, factory", [
    ("scheduled_email_batch_limit", create_scheduled_email),
    ("campaign_batch_limit", create_campaign),
])
async def test_sweep_respects_batch_limits(db, email_client, monkeypatch, limit_attr, factory):
    from pocketlawyer.config import settings

    monkeypatch.setattr(settings, limit_attr, 2)
    for _ in range(3):
        await factory(db)

    first = await run_sweep(db, client=email_client)
    second = await run_sweep(db, client=email_client)

    assert first.emails_processed + first.campaigns_processed == 2
    assert second.emails_processed + second.campaigns_processed == 1


async def test_sweep_uses_given_now(db, email_client):
    await create_scheduled_email(db, minutes_ago=-60)

    early = await run_sweep(db, client=email_client)
    late = await run_sweep(db, client=email_client, now=utcnow() + timedelta(hours=2))

    assert early.emails.processed == 0
    assert late.emails.processed == 1


class OverlappingSweepClient(FakeEmailClient):
    """Starts a second sweep on its own session while the first one is mid-send."""

    def __init__(self, session_factory):
        super().__init__()
        self.session_factory = session_factory
        self.started = False
        self.overlapping = None

    async def send_email(self, to_email, subject, html, **kwargs):
        if not self.started:
            self.started = True
            async with self.session_factory() as other:
                self.overlapping = await run_sweep(other, client=self)
        return await super().send_email(to_email, subject, html, **kwargs)


async def test_overlapping_sweeps_send_scheduled_email_once(db, session_factory):
    transport = OverlappingSweepClient(session_factory)
    email_id = (await create_scheduled_email(db, to=["once@example.com"])).id

    result = await run_sweep(db, client=transport)

    assert transport.recipients() == ["once@example.com"]
    assert transport.overlapping.emails.processed == 0
    assert result.emails.succeeded == 1
    assert (await _reload(db, ScheduledEmail, email_id)).status == ScheduledEmailStatus.SENT


async def test_scheduled_email_claim_is_compare_and_set(db):
    email = await create_scheduled_email(db)

    assert await claim_scheduled_email(db, email.id) is True
    assert await claim_scheduled_email(db, email.id) is False
    assert (await _reload(db, ScheduledEmail, email.id)).status == ScheduledEmailStatus.PROCESSING


async def test_processing_scheduled_email_is_not_picked_up(db, email_client):
    await create_scheduled_email(db, status=ScheduledEmailStatus.PROCESSING)

    result = await run_sweep(db, client=email_client)

    assert result.emails.processed == 0
    assert email_client.sent == []


async def test_sweep_sends_stored_attachments(db, email_client):
    attachment = {"filename": "lease.pdf", "content": "JVBERi0xLjQ=", "content_type": "application/pdf"}
    await create_scheduled_email(db, to=["tenant@example.com"], attachments=[attachment])
    await create_campaign(db, recipients=[{"email": "alice@example.com", "name": "Alice"}], attachments=[attachment])

    await run_sweep(db, client=email_client)

    assert email_client.recipients() == ["tenant@example.com", "alice@example.com"]
    assert [m["attachments"] for m in email_client.sent] == [[attachment], [attachment]]
