"""Resend integration for email sending."""
import asyncio
from typing import Any, Dict, List, Optional

import resend
import structlog

from pocketlawyer.config import settings

logger = structlog.get_logger()


class EmailClient:
    """
    Client for Resend email API using the official SDK.

    Never raises: every outcome is reported as a result dict so callers can
    record per-recipient failures.
    """

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or settings.resend_api_key
        # The SDK reads the key from module state
        if self.api_key:
            resend.api_key = self.api_key

        self.from_email = settings.resend_from_email
        self.from_name = settings.resend_from_name
        self.reply_to = settings.resend_reply_to

    @property
    def is_configured(self) -> bool:
        """Check if Resend is configured."""
        return bool(self.api_key)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html: str,
        text: Optional[str] = None,
        reply_to: Optional[str] = None,
        tags: Optional[Dict[str, str]] = None,
        attachments: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Send a single email using Resend API SDK."""
        if not self.is_configured:
            logger.warning("Resend not configured")
            return {"success": False, "error": "Resend not configured"}

        try:
            params: Dict[str, Any] = {
                "from": f"{self.from_name} <{self.from_email}>",
                "to": [to_email],
                "subject": subject,
                "html": html,
            }
            if text:
                params["text"] = text

            actual_reply_to = reply_to or self.reply_to
            if actual_reply_to:
                params["reply_to"] = actual_reply_to

            if tags:
                params["tags"] = [{"name": k, "value": v} for k, v in tags.items()]

            if attachments:
                # content is base64, which Resend accepts as-is
                params["attachments"] = [
                    {k: a[k] for k in ("filename", "content", "content_type") if a.get(k)}
                    for a in attachments
                ]

            response = await asyncio.to_thread(resend.Emails.send, params)

            # Resend SDK returns a dict like {'id': '...'}
            message_id = response.get("id")

            logger.info(
                "Email sent via Resend",
                to=to_email,
                subject=subject[:50],
                message_id=message_id,
            )

            return {
                "success": True,
                "message_id": message_id,
            }

        except Exception as e:
            logger.error("Resend send error", error=str(e), to=to_email)
            return {"success": False, "error": str(e)}
