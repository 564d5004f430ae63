"""Amazon SES adapter. boto3 is blocking, so calls run in a worker thread."""
import asyncio

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from services.email_service.types import EmailSendPayload, EmailSendResult, SesProviderConfig
from services.email_service.providers.utils import (
    format_from,
    reply_to_for,
    resolve_from_fields,
    probe_payload,
    probe_recipient,
)

logger = structlog.get_logger(__name__)

DEFAULT_REGION = "us-east-1"


def _client(provider: SesProviderConfig):
    return boto3.client(
        "ses",
        region_name=provider.region or DEFAULT_REGION,
        aws_access_key_id=provider.access_key_id,
        aws_secret_access_key=provider.secret_access_key,
    )


def build_request(provider: SesProviderConfig, payload: EmailSendPayload, from_email: str, from_name: str | None) -> dict:
    destination = {"ToAddresses": payload.to}
    if payload.cc:
        destination["CcAddresses"] = payload.cc
    if payload.bcc:
        destination["BccAddresses"] = payload.bcc

    body = {"Html": {"Data": payload.html, "Charset": "UTF-8"}}
    if payload.text:
        body["Text"] = {"Data": payload.text, "Charset": "UTF-8"}

    request = {
        "Source": format_from(from_email, from_name),
        "Destination": destination,
        "Message": {"Subject": {"Data": payload.subject, "Charset": "UTF-8"}, "Body": body},
        "ReplyToAddresses": [reply_to_for(provider, payload, from_email)],
    }
    if payload.tags:
        request["Tags"] = [{"Name": "event", "Value": payload.tags[0]}]
    return request


async def send(provider: SesProviderConfig, payload: EmailSendPayload) -> EmailSendResult:
    if not provider.access_key_id or not provider.secret_access_key:
        return EmailSendResult(ok=False, provider="ses", error="SES access key id and secret are required")
    from_email, from_name = resolve_from_fields(provider, payload)
    if not from_email:
        return EmailSendResult(ok=False, provider="ses", error="From email is required for SES")

    request = build_request(provider, payload, from_email, from_name)
    try:
        response = await asyncio.to_thread(lambda: _client(provider).send_email(**request))
    except (BotoCoreError, ClientError) as e:
        logger.error("SES send failed", region=provider.region, error=str(e))
        return EmailSendResult(ok=False, provider="ses", error=f"SES send failed: {e}")
    return EmailSendResult(ok=True, provider="ses", message_id=response.get("MessageId"))


async def test(provider: SesProviderConfig) -> EmailSendResult:
    recipient = probe_recipient(provider)
    if not recipient:
        return EmailSendResult(ok=False, provider="ses", error="Test recipient is required for SES")
    return await send(provider, probe_payload(provider, recipient))
