"""Email provider configs and the send payload/result shapes.

Provider configs form a closed tagged union discriminated by `provider`.
"""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

EmailEvent = Literal[
    "order_confirmation",
    "payment_confirmation",
    "order_shipped",
    "order_delivered",
    "order_cancelled",
    "order_refunded",
    "abandoned_cart",
    "password_reset",
    "account_welcome",
    "account_verification",
    "review_request",
    "low_stock_alert",
    "admin_new_order_alert",
]


class EmailProviderBase(BaseModel):
    id: str
    name: str = ""
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    enabled: bool = True


class SmtpProviderConfig(EmailProviderBase):
    provider: Literal["smtp"] = "smtp"
    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = None # encrypted at rest
    secure: bool = False


class SesProviderConfig(EmailProviderBase):
    provider: Literal["ses"] = "ses"
    region: str | None = None
    access_key_id: str | None = None # encrypted at rest
    secret_access_key: str | None = None # encrypted at rest


class SendGridProviderConfig(EmailProviderBase):
    provider: Literal["sendgrid"] = "sendgrid"
    api_key: str | None = None # encrypted at rest


class PostmarkProviderConfig(EmailProviderBase):
    provider: Literal["postmark"] = "postmark"
    server_token: str | None = None # encrypted at rest
    message_stream: str | None = None


EmailProviderConfig = Annotated[
    Union[SmtpProviderConfig, SesProviderConfig, SendGridProviderConfig, PostmarkProviderConfig],
    Field(discriminator="provider"),
]

# Secret-bearing fields per provider kind
SECRET_FIELDS = {
    "smtp": ("password",),
    "ses": ("access_key_id", "secret_access_key"),
    "sendgrid": ("api_key",),
    "postmark": ("server_token",),
}


class EmailSendPayload(BaseModel):
    to: list[str]
    cc: list[str] = []
    bcc: list[str] = []
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    subject: str
    html: str
    text: str | None = None
    tags: list[str] = []
    event: str | None = None


class EmailSendResult(BaseModel):
    ok: bool
    provider: str | None = None
    message_id: str | None = None
    error: str | None = None
    skipped: bool = False


class EmailProviderSettingsIn(BaseModel):
    default_provider_id: str | None = None
    fallback_provider_id: str | None = None
    providers: list[EmailProviderConfig] = []
