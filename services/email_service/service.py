"""Transactional email delivery with primary/fallback provider failover."""
import structlog
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.tenant import get_brand_config
from shared.observability.metrics import ecomm_email_send_total
from .models import EmailProviderSettings, EmailTemplate
from .providers import dispatcher
from .secrets import decrypt_provider_secrets
from .templates import RenderableTemplate, default_template, render
from .types import EmailProviderConfig, EmailSendPayload, EmailSendResult

logger = structlog.get_logger(__name__)

_provider_list = TypeAdapter(list[EmailProviderConfig])

NO_PROVIDER_ERROR = "No email provider configured"
NO_FROM_ERROR = "From email is required but not configured"


def parse_providers(raw: list[dict] | None) -> list:
    try:
        return _provider_list.validate_python(raw or [])
    except PydanticValidationError as e:
        logger.error("Stored email provider configs are invalid", error=str(e))
        return []


def select_providers(providers: list, default_provider_id: str | None, fallback_provider_id: str | None):
    """Picks (primary, fallback) among enabled providers.

    The fallback is only returned when it is enabled and distinct from the primary.
    """
    enabled = [p for p in providers if p.enabled is not False]
    if not enabled:
        return None, None

    wanted = default_provider_id or enabled[0].id
    primary = next((p for p in enabled if p.id == wanted), enabled[0])
    fallback = None
    if fallback_provider_id:
        fallback = next((p for p in enabled if p.id == fallback_provider_id and p.id != primary.id), None)
    return primary, fallback


async def load_provider_preference(db: AsyncSession, tenant_id: str):
    settings = await db.get(EmailProviderSettings, tenant_id)
    if not settings:
        logger.warning("No email providers configured", tenant_id=tenant_id)
        return None, None
    primary, fallback = select_providers(
        parse_providers(settings.providers), settings.default_provider_id, settings.fallback_provider_id
    )
    if primary is None:
        logger.warning("All email providers are disabled", tenant_id=tenant_id)
    return primary, fallback


async def _send(provider, payload: EmailSendPayload) -> EmailSendResult:
    usable = decrypt_provider_secrets(provider)
    if usable is None:
        result = EmailSendResult(ok=False, provider=provider.provider, error="Provider credentials could not be decrypted")
    else:
        try:
            result = await dispatcher.send_with_provider(usable, payload)
        except Exception as e:
            logger.error("Email provider raised", provider=provider.provider, provider_id=provider.id, error=str(e))
            result = EmailSendResult(ok=False, provider=provider.provider, error=str(e) or "Failed to send email")
    ecomm_email_send_total.labels(provider=provider.provider, outcome="success" if result.ok else "failure").inc()
    return result


async def send_with_failover(primary, fallback, payload: EmailSendPayload) -> EmailSendResult:
    if primary is None and fallback is None:
        logger.error(NO_PROVIDER_ERROR)
        return EmailSendResult(ok=False, error=NO_PROVIDER_ERROR)

    if primary is not None:
        primary_result = await _send(primary, payload)
    else:
        primary_result = EmailSendResult(ok=False, error="No enabled primary provider")

    if primary_result.ok:
        return primary_result
    if fallback is None or (primary is not None and fallback.id == primary.id):
        logger.error("Primary email provider failed", provider=getattr(primary, "provider", None), error=primary_result.error)
        return primary_result

    fallback_result = await _send(fallback, payload)
    if fallback_result.ok:
        logger.warning("Primary email provider failed, used fallback", fallback=fallback.provider, fallback_id=fallback.id)
        return fallback_result

    logger.error(
        "Both primary and fallback email providers failed",
        primary_error=primary_result.error,
        fallback_error=fallback_result.error,
    )
    return primary_result


async def send_templated_email(
    db: AsyncSession,
    tenant_id: str,
    to: list[str],
    event: str,
    template: RenderableTemplate,
    variables: dict | None = None,
    from_email: str | None = None,
) -> EmailSendResult:
    primary, fallback = await load_provider_preference(db, tenant_id)
    if primary is None and fallback is None:
        logger.error(NO_PROVIDER_ERROR, tenant_id=tenant_id)
        return EmailSendResult(ok=False, error=NO_PROVIDER_ERROR)

    sender = template.from_email or from_email
    if not sender:
        logger.error(NO_FROM_ERROR, tenant_id=tenant_id, email_event=event)
        return EmailSendResult(ok=False, error=NO_FROM_ERROR)

    subject, html, text = render(template, variables or {})
    payload = EmailSendPayload(
        to=to,
        from_email=sender,
        from_name=template.from_name,
        reply_to=template.reply_to or sender,
        subject=subject,
        html=html,
        text=text,
        tags=[event],
        event=event,
    )
    return await send_with_failover(primary, fallback, payload)


async def load_template(db: AsyncSession, tenant_id: str, event: str, brand_name: str | None, brand_email: str | None) -> RenderableTemplate:
    result = await db.execute(
        select(EmailTemplate).where(EmailTemplate.tenant_id == tenant_id, EmailTemplate.event == event)
    )
    row = result.scalars().first()
    if row is None:
        return default_template(event, brand_name, brand_email)
    return RenderableTemplate(
        event=row.event,
        name=row.name,
        subject=row.subject,
        html=row.html or "",
        from_email=row.from_email,
        from_name=row.from_name or brand_name,
        reply_to=row.reply_to,
        enabled=row.enabled,
    )


async def send_email_event(
    db: AsyncSession,
    tenant_id: str,
    event: str,
    to: list[str],
    variables: dict | None = None,
) -> EmailSendResult:
    """Sends a lifecycle email using the tenant's template or the built-in default."""
    brand = await get_brand_config(db, tenant_id)
    brand_name = brand.brand_name if brand else None
    brand_email = brand.contact_email if brand else None

    template = await load_template(db, tenant_id, event, brand_name, brand_email)
    if not template.enabled:
        logger.info("Email template disabled, skipping", tenant_id=tenant_id, email_event=event)
        return EmailSendResult(ok=True, skipped=True)

    merged = {"brandName": brand_name or "", **(variables or {})}
    return await send_templated_email(db, tenant_id, to, event, template, merged, from_email=brand_email)


async def test_provider_connection(provider) -> EmailSendResult:
    usable = decrypt_provider_secrets(provider)
    if usable is None:
        return EmailSendResult(ok=False, provider=provider.provider, error="Provider credentials could not be decrypted")
    try:
        return await dispatcher.test_connection(usable)
    except Exception as e:
        logger.error("Provider connection test raised", provider=provider.provider, error=str(e))
        return EmailSendResult(ok=False, provider=provider.provider, error=str(e) or "Failed to test provider")
