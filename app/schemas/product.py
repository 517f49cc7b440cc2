from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Base schema for Product shared properties
class ProductBase(BaseModel):
    name: str
    unit: str
    category: str
    quantity: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)

    @field_validator("name", "unit", "category")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

# Schema for creating a new Product
class ProductCreate(ProductBase):
    pass

# Schema for updating an existing Product
class ProductUpdate(BaseModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)

    @field_validator("name", "unit", "category")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

# Schema for Product in DB (returned to client)
class ProductInDB(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime
    updated_at: datetime

# Schema for Product on the alerts page
class LowStockProduct(ProductInDB):
    shortage: int = 0
