from pydantic import BaseModel

from .types import EmailEvent


class EmailTemplateUpdate(BaseModel):
    name: str | None = None
    subject: str
    html: str | None = None
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    enabled: bool = True


class EmailTemplateResponse(BaseModel):
    id: str
    event: EmailEvent
    name: str
    subject: str
    html: str | None = None
    from_email: str | None = None
    from_name: str | None = None
    reply_to: str | None = None
    enabled: bool

    class Config:
        from_attributes = True
