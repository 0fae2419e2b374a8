"""Tests for email delivery through the Resend API."""
import json

import httpx
import pytest

from dsrdesk.integrations.notification_service import (
    NotificationService,
    dsr_confirmation_email,
    dsr_notification_email,
    html_to_text,
)


@pytest.mark.asyncio
async def test_send_email_posts_to_provider() -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_123"})

    service = NotificationService(
        api_key="re_test",
        sender="noreply@dsrdesk.dev",
        api_url="https://api.resend.example/emails",
        transport=httpx.MockTransport(handler),
    )
    result = await service.send_email("admin@example.com", "Hello", "<p>Hi <b>there</b></p>")

    assert result == {"success": True, "message_id": "email_123"}
    assert captured["auth"] == "Bearer re_test"
    assert captured["body"]["to"] == ["admin@example.com"]
    assert captured["body"]["from"] == "noreply@dsrdesk.dev"
    assert captured["body"]["text"] == "Hi there"


@pytest.mark.asyncio
async def test_send_email_reports_provider_error() -> None:
    service = NotificationService(
        api_key="re_test",
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"})),
    )
    result = await service.send_email("admin@example.com", "Hello", "<p>Hi</p>")

    assert result["success"] is False
    assert result["error"]


@pytest.mark.asyncio
async def test_send_email_without_key_is_logged_only() -> None:
    result = await NotificationService(api_key=None).send_email("admin@example.com", "Hello", "<p>Hi</p>")
    assert result == {"success": True, "message_id": None}


def test_notification_email_content() -> None:
    subject, body = dsr_notification_email(
        requester_name="Jane <script>",
        requester_email="jane@example.com",
        request_type="ACCESS",
        details=None,
        company_name="Acme",
        dashboard_url="http://localhost:3000/dashboard",
    )
    assert subject == "New DSR Request - ACCESS"
    assert "Jane &lt;script&gt;" in body
    assert "Details" not in body
    assert "http://localhost:3000/dashboard" in body


def test_confirmation_email_content() -> None:
    subject, body = dsr_confirmation_email("Jane", "DELETE", "Acme")
    assert "Acme" in subject
    assert "DELETE" in html_to_text(body)


def test_plain_text_decodes_escaped_names() -> None:
    _, body = dsr_confirmation_email(
        requester_name="Sean O'Brien",
        request_type="ACCESS",
        company_name="Smith & Co",
    )

    text = html_to_text(body)

    assert "Hello Sean O'Brien," in text
    assert "Smith & Co has received" in text
    assert "&amp;" not in text
    assert "&#x27;" not in text
