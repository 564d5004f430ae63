"""Postmark adapter."""
import httpx
import structlog

from services.email_service.types import EmailSendPayload, EmailSendResult, PostmarkProviderConfig
from services.email_service.providers.utils import (
    format_from,
    reply_to_for,
    resolve_from_fields,
    probe_payload,
    probe_recipient,
)

logger = structlog.get_logger(__name__)

POSTMARK_URL = "https://api.postmarkapp.com/email"
DEFAULT_STREAM = "outbound"


def build_body(provider: PostmarkProviderConfig, payload: EmailSendPayload, from_email: str, from_name: str | None) -> dict:
    body = {
        "From": format_from(from_email, from_name),
        "To": ", ".join(payload.to),
        "Subject": payload.subject,
        "HtmlBody": payload.html,
        "ReplyTo": reply_to_for(provider, payload, from_email),
        "MessageStream": provider.message_stream or DEFAULT_STREAM,
    }
    if payload.text:
        body["TextBody"] = payload.text
    if payload.cc:
        body["Cc"] = ", ".join(payload.cc)
    if payload.bcc:
        body["Bcc"] = ", ".join(payload.bcc)
    # Postmark takes a single tag
    if payload.tags:
        body["Tag"] = payload.tags[0]
    return body


async def send(provider: PostmarkProviderConfig, payload: EmailSendPayload, client: httpx.AsyncClient | None = None) -> EmailSendResult:
    if not provider.server_token:
        return EmailSendResult(ok=False, provider="postmark", error="Postmark server token is required")
    from_email, from_name = resolve_from_fields(provider, payload)
    if not from_email:
        return EmailSendResult(ok=False, provider="postmark", error="From email is required for Postmark")

    headers = {"X-Postmark-Server-Token": provider.server_token, "Accept": "application/json"}
    body = build_body(provider, payload, from_email, from_name)
    try:
        if client is not None:
            resp = await client.post(POSTMARK_URL, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=10.0) as c:
                resp = await c.post(POSTMARK_URL, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error("Postmark request failed", error=str(e))
        return EmailSendResult(ok=False, provider="postmark", error=f"Postmark request failed: {e}")

    if resp.status_code >= 400:
        return EmailSendResult(ok=False, provider="postmark", error=f"Postmark error {resp.status_code}: {resp.text}")
    data = resp.json()
    if data.get("ErrorCode"):
        return EmailSendResult(ok=False, provider="postmark", error=data.get("Message") or "Postmark rejected the message")
    return EmailSendResult(ok=True, provider="postmark", message_id=data.get("MessageID"))


async def test(provider: PostmarkProviderConfig, client: httpx.AsyncClient | None = None) -> EmailSendResult:
    recipient = probe_recipient(provider)
    if not recipient:
        return EmailSendResult(ok=False, provider="postmark", error="Test recipient is required for Postmark")
    return await send(provider, probe_payload(provider, recipient), client=client)
