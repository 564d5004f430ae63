from email.utils import formataddr

from services.email_service.types import EmailProviderBase, EmailSendPayload


def resolve_from_fields(provider: EmailProviderBase, payload: EmailSendPayload) -> tuple[str | None, str | None]:
    """Payload from-fields win over the provider's defaults."""
    from_email = payload.from_email or provider.from_email
    from_name = payload.from_name or provider.from_name
    return from_email, from_name


def format_from(from_email: str, from_name: str | None = None) -> str:
    return formataddr((from_name, from_email)) if from_name else from_email


def reply_to_for(provider: EmailProviderBase, payload: EmailSendPayload, from_email: str) -> str:
    return payload.reply_to or provider.reply_to or from_email


def probe_recipient(provider: EmailProviderBase) -> str | None:
    return provider.from_email or provider.reply_to


def probe_payload(provider: EmailProviderBase, recipient: str) -> EmailSendPayload:
    label = f"{provider.provider.upper()} connection test"
    return EmailSendPayload(to=[recipient], subject=label, html=f"<p>{label}</p>", text=label)
