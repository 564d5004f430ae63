from datetime import datetime

from pydantic import BaseModel, model_validator


class BlockedCustomerCreate(BaseModel):
    phone: str | None = None
    email: str | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.phone and not self.email:
            raise ValueError("Either phone or email is required")
        return self


class BlockedCustomerResponse(BaseModel):
    id: str
    phone: str | None
    email: str | None
    reason: str | None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
