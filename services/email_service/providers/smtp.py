"""SMTP adapter. smtplib is blocking, so sends run in a worker thread."""
import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from services.email_service.types import EmailSendPayload, EmailSendResult, SmtpProviderConfig
from services.email_service.providers.utils import (
    format_from,
    reply_to_for,
    resolve_from_fields,
    probe_payload,
    probe_recipient,
)

logger = structlog.get_logger(__name__)

SMTP_TIMEOUT = 10


def _build_message(provider: SmtpProviderConfig, payload: EmailSendPayload, from_email: str, from_name: str | None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = payload.subject
    msg["From"] = format_from(from_email, from_name)
    msg["To"] = ", ".join(payload.to)
    if payload.cc:
        msg["Cc"] = ", ".join(payload.cc)
    msg["Reply-To"] = reply_to_for(provider, payload, from_email)
    msg.set_content(payload.text or "")
    msg.add_alternative(payload.html, subtype="html")
    return msg


def _deliver(provider: SmtpProviderConfig, msg: EmailMessage, recipients: list[str], username: str | None, password: str | None) -> None:
    # secure=True means implicit TLS, otherwise upgrade with STARTTLS when offered
    if provider.secure:
        conn = smtplib.SMTP_SSL(provider.host.strip(), provider.port, timeout=SMTP_TIMEOUT)
    else:
        conn = smtplib.SMTP(provider.host.strip(), provider.port, timeout=SMTP_TIMEOUT)
    with conn:
        if not provider.secure:
            conn.ehlo()
            if conn.has_extn("starttls"):
                conn.starttls()
                conn.ehlo()
        if username and password:
            conn.login(username, password)
        conn.send_message(msg, to_addrs=recipients)


async def send(provider: SmtpProviderConfig, payload: EmailSendPayload) -> EmailSendResult:
    if not provider.host or not provider.port:
        return EmailSendResult(ok=False, provider="smtp", error="SMTP host and port are required")

    from_email, from_name = resolve_from_fields(provider, payload)
    if not from_email:
        return EmailSendResult(ok=False, provider="smtp", error="From email is required for SMTP")

    username = (provider.username or "").strip() or None
    password = (provider.password or "").strip() or None
    if (username or password) and not (username and password):
        return EmailSendResult(
            ok=False, provider="smtp", error="Both username and password are required for SMTP authentication"
        )

    msg = _build_message(provider, payload, from_email, from_name)
    recipients = [*payload.to, *payload.cc, *payload.bcc]
    try:
        await asyncio.to_thread(_deliver, provider, msg, recipients, username, password)
    except smtplib.SMTPAuthenticationError as e:
        logger.error("SMTP authentication failed", host=provider.host, code=e.smtp_code)
        return EmailSendResult(ok=False, provider="smtp", error="SMTP authentication failed, check username and password")
    except smtplib.SMTPRecipientsRefused:
        return EmailSendResult(ok=False, provider="smtp", error="Invalid email address in recipient or sender fields")
    except (smtplib.SMTPException, OSError) as e:
        logger.error("SMTP send failed", host=provider.host, port=provider.port, error=str(e))
        return EmailSendResult(
            ok=False,
            provider="smtp",
            error=f"SMTP connection failed for {provider.host}:{provider.port}: {e}",
        )

    return EmailSendResult(ok=True, provider="smtp", message_id=msg.get("Message-ID"))


async def test(provider: SmtpProviderConfig) -> EmailSendResult:
    recipient = probe_recipient(provider) or provider.username
    if not recipient:
        return EmailSendResult(ok=False, provider="smtp", error="Test recipient is required for SMTP")
    if not provider.username or not provider.password:
        return EmailSendResult(
            ok=False, provider="smtp", error="Username and password are required for SMTP authentication"
        )
    return await send(provider, probe_payload(provider, recipient))
