"""SendGrid v3 mail-send adapter."""
import httpx
import structlog

from services.email_service.types import EmailSendPayload, EmailSendResult, SendGridProviderConfig
from services.email_service.providers.utils import (
    reply_to_for,
    resolve_from_fields,
    probe_payload,
    probe_recipient,
)

logger = structlog.get_logger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"


def build_body(provider: SendGridProviderConfig, payload: EmailSendPayload, from_email: str, from_name: str | None) -> dict:
    personalization: dict = {"to": [{"email": addr} for addr in payload.to]}
    if payload.cc:
        personalization["cc"] = [{"email": addr} for addr in payload.cc]
    if payload.bcc:
        personalization["bcc"] = [{"email": addr} for addr in payload.bcc]

    sender = {"email": from_email}
    if from_name:
        sender["name"] = from_name

    content = []
    if payload.text:
        content.append({"type": "text/plain", "value": payload.text})
    content.append({"type": "text/html", "value": payload.html})

    body = {
        "personalizations": [personalization],
        "from": sender,
        "reply_to": {"email": reply_to_for(provider, payload, from_email)},
        "subject": payload.subject,
        "content": content,
    }
    if payload.tags:
        body["categories"] = payload.tags[:10]
    return body


async def send(provider: SendGridProviderConfig, payload: EmailSendPayload, client: httpx.AsyncClient | None = None) -> EmailSendResult:
    if not provider.api_key:
        return EmailSendResult(ok=False, provider="sendgrid", error="SendGrid API key is required")
    from_email, from_name = resolve_from_fields(provider, payload)
    if not from_email:
        return EmailSendResult(ok=False, provider="sendgrid", error="From email is required for SendGrid")

    headers = {"Authorization": f"Bearer {provider.api_key}"}
    body = build_body(provider, payload, from_email, from_name)
    try:
        if client is not None:
            resp = await client.post(SENDGRID_URL, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=10.0) as c:
                resp = await c.post(SENDGRID_URL, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error("SendGrid request failed", error=str(e))
        return EmailSendResult(ok=False, provider="sendgrid", error=f"SendGrid request failed: {e}")

    if resp.status_code >= 400:
        return EmailSendResult(ok=False, provider="sendgrid", error=f"SendGrid error {resp.status_code}: {resp.text}")
    return EmailSendResult(ok=True, provider="sendgrid", message_id=resp.headers.get("x-message-id"))


async def test(provider: SendGridProviderConfig, client: httpx.AsyncClient | None = None) -> EmailSendResult:
    recipient = probe_recipient(provider)
    if not recipient:
        return EmailSendResult(ok=False, provider="sendgrid", error="Test recipient is required for SendGrid")
    return await send(provider, probe_payload(provider, recipient), client=client)
