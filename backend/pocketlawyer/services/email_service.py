"""Email dispatch: rendering, tracking injection, delivery records and queuing."""
import html as html_lib
import re
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from pocketlawyer.config import settings
from pocketlawyer.integrations.email_client import EmailClient
from pocketlawyer.models.base import utcnow
from pocketlawyer.models.campaign import Campaign, CampaignStatus
from pocketlawyer.models.delivery import DeliveryRecord
from pocketlawyer.models.scheduled import ScheduledEmail, ScheduledEmailStatus
from pocketlawyer.services.templates import render_template

logger = structlog.get_logger()

TRACKING_PATH = "/tracking/"

_LINK_RE = re.compile(r"""<a\s+(?:[^>]*?\s+)?href=(["'])(.*?)\1[^>]*>""", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>?")
_WS_RE = re.compile(r"\s+")


def generate_delivery_id() -> str:
    """Unique tracking id: 16 random bytes, hex encoded."""
    return secrets.token_hex(16)


def pixel_url(delivery_id: str) -> str:
    return f"{settings.public_base_url}{TRACKING_PATH}pixel/{delivery_id}"


def link_url(delivery_id: str, target: str) -> str:
    return f"{settings.public_base_url}{TRACKING_PATH}link/{delivery_id}?url={quote(target, safe='')}"


def add_tracking_pixel(html: str, delivery_id: str) -> str:
    """Insert a 1x1 tracking image before </body> (or at the end)."""
    pixel = f'<img src="{pixel_url(delivery_id)}" width="1" height="1" alt="" style="display:none;" />'
    index = html.lower().rfind("</body>")
    if index == -1:
        return html + pixel
    return html[:index] + pixel + html[index:]


def add_link_tracking(html: str, delivery_id: str) -> str:
    """Route every outbound href through the click tracker."""

    def _rewrite(match: "re.Match[str]") -> str:
        quote_char, url = match.group(1), match.group(2)
        if not url or url.startswith("#") or url.lower().startswith("mailto:") or TRACKING_PATH in url:
            return match.group(0)
        # Attribute values are entity-encoded; track the decoded URL
        return match.group(0).replace(
            f"href={quote_char}{url}{quote_char}",
            f"href={quote_char}{link_url(delivery_id, html_lib.unescape(url))}{quote_char}",
            1,
        )

    return _LINK_RE.sub(_rewrite, html)


def strip_html(html: str) -> str:
    """Plain-text fallback for the text part."""
    return _WS_RE.sub(" ", _TAG_RE.sub("", html)).strip()


@dataclass
class RecipientResult:
    email: str
    success: bool
    delivery_id: Optional[str] = None
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SendResult:
    """Outcome of send_email / send_bulk."""

    scheduled: bool = False
    scheduled_id: Optional[uuid.UUID] = None
    results: List[RecipientResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def success(self) -> bool:
        return self.scheduled or (bool(self.results) and self.failed == 0)

    @property
    def errors(self) -> List[str]:
        return [f"{r.email}: {r.error}" for r in self.results if not r.success]

    @property
    def message_ids(self) -> List[str]:
        return [r.message_id for r in self.results if r.message_id]


class EmailService:
    """
    Sends templated email through the transport.

    Each recipient gets its own message and, when tracking is enabled, its
    own DeliveryRecord so opens and clicks are attributed per recipient.
    Delivery records are added to the session; committing is the caller's
    responsibility.
    """

    def __init__(self, db: AsyncSession, client: Optional[EmailClient] = None):
        self.db = db
        self.client = client or EmailClient()

    async def deliver(
        self,
        to_email: str,
        subject: str,
        template: str,
        data: Optional[Dict[str, Any]] = None,
        tracking_enabled: bool = True,
        campaign_id: Optional[uuid.UUID] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> RecipientResult:
        """Render, track and send one message to one recipient."""
        html = render_template(template, subject, data)
        delivery_id = None

        if tracking_enabled:
            delivery_id = generate_delivery_id()
            html = add_tracking_pixel(html, delivery_id)
            html = add_link_tracking(html, delivery_id)

        try:
            response = await self.client.send_email(
                to_email=to_email,
                subject=subject,
                html=html,
                text=strip_html(html),
                tags={"template": template},
                attachments=attachments,
            )
        except Exception as e:
            logger.error("Transport raised", to=to_email, error=str(e))
            response = {"success": False, "error": str(e)}

        if not response.get("success"):
            return RecipientResult(email=to_email, success=False, error=str(response.get("error") or "unknown error"))

        if delivery_id:
            self.db.add(
                DeliveryRecord(
                    id=delivery_id,
                    recipient=to_email,
                    subject=subject,
                    template=template,
                    campaign_id=campaign_id,
                    message_id=response.get("message_id"),
                    sent_at=utcnow(),
                    opened=False,
                    open_count=0,
                    clicked=False,
                    click_count=0,
                    links=[],
                )
            )

        return RecipientResult(
            email=to_email,
            success=True,
            delivery_id=delivery_id,
            message_id=response.get("message_id"),
        )

    async def send_email(
        self,
        to: Union[str, Sequence[str]],
        subject: str,
        template: str,
        data: Optional[Dict[str, Any]] = None,
        tracking_enabled: bool = True,
        campaign_id: Optional[uuid.UUID] = None,
        scheduled_for: Optional[datetime] = None,
        now: Optional[datetime] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> SendResult:
        """Send now, or queue a ScheduledEmail when scheduled_for is in the future."""
        now = now or utcnow()
        recipients = [to] if isinstance(to, str) else list(to)

        if scheduled_for and scheduled_for > now:
            scheduled = ScheduledEmail(
                to=recipients,
                subject=subject,
                template=template,
                data=data or {},
                tracking_enabled=tracking_enabled,
                campaign_id=campaign_id,
                attachments=attachments or None,
                scheduled_for=scheduled_for,
                status=ScheduledEmailStatus.SCHEDULED,
            )
            self.db.add(scheduled)
            await self.db.flush()
            logger.info("Email scheduled", scheduled_id=str(scheduled.id), scheduled_for=scheduled_for.isoformat())
            return SendResult(scheduled=True, scheduled_id=scheduled.id)

        result = SendResult()
        for recipient in recipients:
            result.results.append(
                await self.deliver(recipient, subject, template, data, tracking_enabled, campaign_id, attachments)
            )
        return result

    async def send_bulk(
        self,
        recipients: Sequence[Dict[str, Any]],
        subject: str,
        template: str,
        data: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        campaign_id: Optional[uuid.UUID] = None,
        scheduled_for: Optional[datetime] = None,
        now: Optional[datetime] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> SendResult:
        """Send to a recipient list, or persist it as a scheduled Campaign."""
        now = now or utcnow()
        normalized = [
            {"email": r["email"], "name": r.get("name") or None}
            for r in recipients
        ]

        if scheduled_for and scheduled_for > now:
            campaign = Campaign(
                name=name or subject,
                subject=subject,
                template=template,
                data=data or {},
                recipients=normalized,
                attachments=attachments or None,
                scheduled_for=scheduled_for,
                status=CampaignStatus.SCHEDULED,
                total_count=len(normalized),
                sent_count=0,
                failed_count=0,
            )
            self.db.add(campaign)
            await self.db.flush()
            logger.info("Campaign scheduled", campaign_id=str(campaign.id), recipients=len(normalized))
            return SendResult(scheduled=True, scheduled_id=campaign.id)

        result = SendResult()
        for recipient in normalized:
            personal = {**(data or {}), "name": recipient["name"] or recipient["email"].split("@")[0]}
            result.results.append(
                await self.deliver(recipient["email"], subject, template, personal, True, campaign_id, attachments)
            )
        return result
