from datetime import timedelta

from pocketlawyer.models import Campaign, CampaignStatus
from pocketlawyer.models.base import utcnow
from tests.utils import create_campaign, create_delivery


async def test_send_endpoint_sends_now(client, email_client):
    resp = await client.post("/api/v1/emails/send", json={
        "to": "user@example.com",
        "subject": "Welcome aboard",
        "template": "welcome",
        "data": {"name": "Ngozi"},
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["sent"] == 1
    assert len(body["results"][0]["delivery_id"]) == 32
    assert "Hello Ngozi," in email_client.sent[0]["html"]


async def test_send_endpoint_schedules_future_mail(client, email_client):
    when = (utcnow() + timedelta(days=2)).isoformat() + "Z"
    resp = await client.post("/api/v1/emails/send", json={
        "to": ["a@example.com", "b@example.com"],
        "subject": "Trial ends soon",
        "template": "trial-reminder",
        "scheduled_for": when,
    })

    assert resp.status_code == 200
    assert resp.json()["scheduled"] is True
    assert email_client.sent == []

    listed = (await client.get("/api/v1/emails/scheduled")).json()
    assert len(listed) == 1
    assert listed[0]["to"] == ["a@example.com", "b@example.com"]
    assert listed[0]["status"] == "scheduled"


async def test_send_endpoint_rejects_empty_recipients(client):
    resp = await client.post("/api/v1/emails/send", json={"to": [], "subject": "x"})
    assert resp.status_code == 400


async def test_bulk_endpoint_reports_per_recipient(client, email_client):
    email_client.fail_for.add("gone@example.com")

    resp = await client.post("/api/v1/emails/bulk", json={
        "recipients": [{"email": "ok@example.com", "name": "Ok"}, {"email": "gone@example.com"}],
        "subject": "News",
        "template": "newsletter",
    })

    body = resp.json()
    assert body["success"] is False
    assert (body["sent"], body["failed"]) == (1, 1)
    assert body["results"][1]["error"] == "mailbox unavailable"


async def test_sent_lists_latest_deliveries(client, session_factory):
    async with session_factory() as session:
        await create_delivery(session, "older", sent_at=utcnow() - timedelta(hours=2))
        await create_delivery(session, "newer")

    resp = await client.get("/api/v1/emails/sent")

    assert [row["id"] for row in resp.json()] == ["newer", "older"]


async def test_campaign_create_list_and_detail(client, email_client):
    resp = await client.post("/api/v1/campaigns", json={
        "name": "Launch",
        "subject": "We are live",
        "template": "system-update",
        "recipients": [{"email": "a@example.com"}, {"email": "b@example.com"}],
    })
    assert resp.status_code == 201
    campaign = resp.json()
    assert campaign["status"] == "scheduled"
    assert campaign["total_count"] == 2

    listed = (await client.get("/api/v1/campaigns")).json()
    assert listed["total"] == 1

    # Due immediately: the next sweep sends it
    from tests.conftest import SCHEDULER_KEY
    await client.post("/scheduler/run", headers={"x-api-key": SCHEDULER_KEY})
    delivery_id = email_client.sent[0]["html"].split("/tracking/pixel/")[1][:32]
    await client.get(f"/tracking/pixel/{delivery_id}")
    await client.get(f"/tracking/link/{delivery_id}", params={"url": "https://pocketlawyer.test/docs"})

    detail = (await client.get(f"/api/v1/campaigns/{campaign['id']}")).json()
    assert detail["status"] == "sent"
    assert detail["stats"]["sent"] == 2
    assert detail["stats"]["opened"] == 1
    assert detail["stats"]["clicked"] == 1
    assert detail["stats"]["open_rate"] == 50.0
    assert detail["popular_links"] == [{"url": "https://pocketlawyer.test/docs", "clicks": 1}]
    assert len(detail["recipients"]) == 2


async def test_campaign_detail_missing_is_404(client):
    resp = await client.get("/api/v1/campaigns/00000000-0000-0000-0000-000000000000")
    assert resp.status_code == 404


async def test_only_scheduled_campaigns_can_be_deleted(client, session_factory):
    async with session_factory() as session:
        scheduled_id = (await create_campaign(session, minutes_ago=-60)).id
        sent_id = (await create_campaign(session, status=CampaignStatus.SENT)).id

    assert (await client.delete(f"/api/v1/campaigns/{sent_id}")).status_code == 400
    resp = await client.delete(f"/api/v1/campaigns/{scheduled_id}")
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert (await client.delete(f"/api/v1/campaigns/{scheduled_id}")).status_code == 404

    async with session_factory() as session:
        assert await session.get(Campaign, scheduled_id) is None
        assert await session.get(Campaign, sent_id) is not None


async def test_analytics_endpoint(client, session_factory):
    async with session_factory() as session:
        await create_delivery(session, "x1", opened=True)

    resp = await client.get("/api/v1/analytics", params={"period": "week"})

    assert resp.status_code == 200
    assert resp.json()["summary"]["total_sent"] == 1
    assert resp.json()["summary"]["open_rate"] == 100.0
    assert (await client.get("/api/v1/analytics", params={"period": "decade"})).status_code == 422


async def test_health_endpoints(client):
    assert (await client.get("/api/v1/health/health")).json() == {"status": "healthy"}
    ready = (await client.get("/api/v1/health/ready")).json()
    assert ready["status"] == "ready"
    assert ready["database"] == "connected"


async def test_send_endpoint_forwards_attachments(client, email_client):
    resp = await client.post("/api/v1/emails/send", json={
        "to": "user@example.com",
        "subject": "Your contract",
        "data": {"content": "Attached."},
        "attachments": [{"filename": "contract.pdf", "content": "JVBERi0xLjQ=", "content_type": "application/pdf"}],
    })

    assert resp.status_code == 200
    assert email_client.sent[0]["attachments"] == [
        {"filename": "contract.pdf", "content": "JVBERi0xLjQ=", "content_type": "application/pdf"},
    ]


async def test_attachment_content_must_be_base64(client, email_client):
    resp = await client.post("/api/v1/emails/send", json={
        "to": "user@example.com",
        "subject": "Broken",
        "attachments": [{"filename": "a.txt", "content": "not base64!"}],
    })

    assert resp.status_code == 422
    assert email_client.sent == []


async def test_campaign_attachments_are_sent_by_the_sweep(client, email_client):
    from tests.conftest import SCHEDULER_KEY

    attachment = {"filename": "guide.txt", "content": "aGVsbG8=", "content_type": "text/plain"}
    resp = await client.post("/api/v1/campaigns", json={
        "name": "Guide",
        "subject": "Your guide",
        "recipients": [{"email": "a@example.com"}],
        "attachments": [attachment],
    })
    assert resp.status_code == 201

    await client.post("/scheduler/run", headers={"x-api-key": SCHEDULER_KEY})

    assert email_client.sent[0]["attachments"] == [attachment]
