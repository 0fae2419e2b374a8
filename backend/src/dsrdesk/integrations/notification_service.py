"""Email notifications for new DSRs."""
import html
import re
from typing import Any

import httpx
import structlog

from dsrdesk.config import settings

logger = structlog.get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")


def html_to_text(content: str) -> str:
    """Plain-text fallback: the HTML with tags stripped and entities decoded."""
    return html.unescape(_TAG_RE.sub("", content))


def dsr_notification_email(
    requester_name: str,
    requester_email: str,
    request_type: str,
    details: str | None,
    company_name: str,
    dashboard_url: str,
) -> tuple[str, str]:
    """Subject and HTML body telling a company admin about a new DSR."""
    subject = f"New DSR Request - {request_type}"
    parts = [
        "<h2>New Data Subject Request</h2>",
        f"<p>A new Data Subject Request has been submitted for <strong>{html.escape(company_name)}</strong>.</p>",
        f"<p><strong>Requester:</strong> {html.escape(requester_name)} ({html.escape(requester_email)})</p>",
        f"<p><strong>Request Type:</strong> {html.escape(request_type)}</p>",
    ]
    if details:
        parts.append(f"<p><strong>Details:</strong> {html.escape(details)}</p>")
    parts.append(f'<p>Review it in your dashboard: <a href="{html.escape(dashboard_url)}">{html.escape(dashboard_url)}</a></p>')
    return subject, "\n".join(parts)


def dsr_confirmation_email(
    requester_name: str,
    request_type: str,
    company_name: str,
) -> tuple[str, str]:
    """Subject and HTML body confirming receipt to the requester."""
    subject = f"Your Data Subject Request to {company_name} has been received"
    body = "\n".join([
        f"<p>Hello {html.escape(requester_name)},</p>",
        f"<p>{html.escape(company_name)} has received your {html.escape(request_type)} request.</p>",
        "<p>You will be contacted once it has been reviewed.</p>",
    ])
    return subject, body


class NotificationService:
    """
    Sends transactional email through the Resend HTTP API.

    Without an API key, messages are logged and reported as sent so local
    environments work without a provider.
    """

    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize notification service.

        Args:
            api_key: Resend API key
            sender: From address
            api_url: Send endpoint
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key
        self.sender = sender or settings.email_from
        self.api_url = api_url or settings.resend_api_url
        self.transport = transport

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text: str | None = None,
    ) -> dict[str, Any]:
        """
        Send one email.

        Never raises: provider and network errors are logged and returned.

        Args:
            to: Recipient email address
            subject: Email subject
            html_body: HTML content
            text: Plain-text content (derived from the HTML when omitted)

        Returns:
            ``{"success": True, "message_id": ...}`` or ``{"success": False, "error": ...}``
        """
        if not self.api_key:
            logger.info("email_not_sent_no_provider", subject=subject)
            return {"success": True, "message_id": None}

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html_body,
            "text": text or html_to_text(html_body),
        }

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                message_id = response.json().get("id")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("email_send_failed", subject=subject, error=str(e))
            return {"success": False, "error": str(e)}

        logger.info("email_sent", subject=subject, message_id=message_id)
        return {"success": True, "message_id": message_id}
