from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class CommissionLevelConfig(BaseModel):
    enabled: bool = True
    percentage: float = Field(ge=0, le=100)


class AffiliateSettingsUpdate(BaseModel):
    enabled: bool
    commission_levels: dict[int, CommissionLevelConfig]
    cookie_expiry_days: int = Field(default=30, gt=0)

    @field_validator("commission_levels")
    @classmethod
    def levels_in_range(cls, value):
        for level in value:
            if level < 1 or level > 5:
                raise ValueError("Commission levels are numbered 1 to 5")
        return value


class AffiliateSettingsResponse(BaseModel):
    enabled: bool
    commission_levels: dict
    cookie_expiry_days: int

    class Config:
        from_attributes = True


class AffiliateCreate(BaseModel):
    promo_code: str = Field(pattern=r"^[A-Za-z0-9]{4,15}$")
    full_name: str | None = None
    user_id: str | None = None
    current_level: int = Field(default=1, ge=1, le=5)
    status: Literal["active", "inactive", "suspended"] = "active"


class AffiliateResponse(BaseModel):
    id: str
    promo_code: str
    full_name: str | None
    status: str
    current_level: int
    total_orders: int

    class Config:
        from_attributes = True


class CommissionResponse(BaseModel):
    id: str
    affiliate_id: str
    order_id: str
    level: int
    order_total: float
    commission_percentage: float
    commission_amount: float
    status: str
    created_at: datetime

    class Config:
        from_attributes = True
