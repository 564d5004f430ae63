from datetime import datetime

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    slug: str
    name: str
    price: float = Field(ge=0)
    discount_percentage: float | None = Field(default=None, ge=0, le=100)
    stock: int | None = Field(default=None, ge=0)
    images: list[str] = []


class ProductResponse(BaseModel):
    id: str
    slug: str
    name: str
    price: float
    discount_percentage: float | None
    stock: int | None
    images: list[str]

    class Config:
        from_attributes = True


class StockUpdate(BaseModel):
    quantity: int = Field(gt=0)
    note: str | None = None


class StockAdjustment(BaseModel):
    delta: int
    note: str | None = None


class StockTransactionResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    type: str
    quantity: int
    previous_stock: int
    new_stock: int
    order_id: str | None
    note: str | None
    created_at: datetime

    class Config:
        from_attributes = True
