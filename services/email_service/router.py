from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.tenant import TenantContext, get_tenant
from services.auth_service.dependencies import require_staff
from . import service as email_service
from .models import EmailProviderSettings, EmailTemplate
from .schemas import EmailTemplateResponse, EmailTemplateUpdate
from .secrets import encrypt_provider_secrets, mask_provider_secrets
from .templates import DEFAULT_TEMPLATES
from .types import EmailEvent, EmailProviderSettingsIn, EmailSendResult

router = APIRouter(prefix="/email", tags=["Email"], dependencies=[Depends(require_staff)])


def _settings_view(settings: EmailProviderSettings | None) -> dict:
    if not settings:
        return {"default_provider_id": None, "fallback_provider_id": None, "providers": []}
    providers = email_service.parse_providers(settings.providers)
    return {
        "default_provider_id": settings.default_provider_id,
        "fallback_provider_id": settings.fallback_provider_id,
        "providers": [mask_provider_secrets(p).model_dump() for p in providers],
    }


@router.get("/providers")
async def get_provider_settings(tenant: TenantContext = Depends(get_tenant), db: AsyncSession = Depends(get_db)):
    return _settings_view(await db.get(EmailProviderSettings, tenant.tenant_id))


@router.put("/providers")
async def update_provider_settings(
    payload: EmailProviderSettingsIn,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    settings = await db.get(EmailProviderSettings, tenant.tenant_id)
    stored_by_id = {p.id: p for p in email_service.parse_providers(settings.providers if settings else [])}

    providers = [encrypt_provider_secrets(p, stored_by_id.get(p.id)) for p in payload.providers]

    if not settings:
        settings = EmailProviderSettings(tenant_id=tenant.tenant_id)
        db.add(settings)
    settings.default_provider_id = payload.default_provider_id
    settings.fallback_provider_id = payload.fallback_provider_id
    settings.providers = [p.model_dump() for p in providers]
    await db.commit()
    await db.refresh(settings)
    return _settings_view(settings)


@router.post("/providers/{provider_id}/test", response_model=EmailSendResult)
async def test_provider(provider_id: str, tenant: TenantContext = Depends(get_tenant), db: AsyncSession = Depends(get_db)):
    settings = await db.get(EmailProviderSettings, tenant.tenant_id)
    providers = email_service.parse_providers(settings.providers if settings else [])
    provider = next((p for p in providers if p.id == provider_id), None)
    if provider is None:
        raise HTTPException(status_code=404, detail="Email provider not found")
    return await email_service.test_provider_connection(provider)


@router.put("/templates/{event}", response_model=EmailTemplateResponse)
async def upsert_template(
    event: EmailEvent,
    payload: EmailTemplateUpdate,
    tenant: TenantContext = Depends(get_tenant),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(EmailTemplate).where(EmailTemplate.tenant_id == tenant.tenant_id, EmailTemplate.event == event)
    )
    template = result.scalars().first()
    if not template:
        template = EmailTemplate(tenant_id=tenant.tenant_id, event=event)
        db.add(template)
    template.name = payload.name or DEFAULT_TEMPLATES[event].name
    template.subject = payload.subject
    template.html = payload.html
    template.from_email = payload.from_email
    template.from_name = payload.from_name
    template.reply_to = payload.reply_to
    template.enabled = payload.enabled
    await db.commit()
    await db.refresh(template)
    return template
