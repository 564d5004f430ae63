"""Routes a provider config to its adapter. Exhaustive over the provider union."""
from typing import assert_never

from services.email_service.types import (
    EmailSendPayload,
    EmailSendResult,
    PostmarkProviderConfig,
    SendGridProviderConfig,
    SesProviderConfig,
    SmtpProviderConfig,
)
from services.email_service.providers import postmark, sendgrid, ses, smtp

ProviderConfig = SmtpProviderConfig | SesProviderConfig | SendGridProviderConfig | PostmarkProviderConfig


async def send_with_provider(provider: ProviderConfig, payload: EmailSendPayload) -> EmailSendResult:
    match provider:
        case SmtpProviderConfig():
            return await smtp.send(provider, payload)
        case SesProviderConfig():
            return await ses.send(provider, payload)
        case SendGridProviderConfig():
            return await sendgrid.send(provider, payload)
        case PostmarkProviderConfig():
            return await postmark.send(provider, payload)
        case _:
            assert_never(provider)


async def test_connection(provider: ProviderConfig) -> EmailSendResult:
    match provider:
        case SmtpProviderConfig():
            return await smtp.test(provider)
        case SesProviderConfig():
            return await ses.test(provider)
        case SendGridProviderConfig():
            return await sendgrid.test(provider)
        case PostmarkProviderConfig():
            return await postmark.test(provider)
        case _:
            assert_never(provider)
