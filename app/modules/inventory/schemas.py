from pydantic import BaseModel, Field, model_validator
from typing import Optional
from decimal import Decimal
from datetime import datetime
from enum import Enum

class MovementType(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"

# Product schemas
class StockLevels(BaseModel):
    current: int = Field(0, ge=0)
    reserved: int = Field(0, ge=0)
    minimum: int = Field(0, ge=0)
    maximum: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_reserved(self):
        if self.reserved > self.current:
            raise ValueError("Reserved stock cannot exceed current stock")
        return self

class Product(BaseModel):
    id: str
    name: str
    sku: Optional[str] = None
    price: Decimal = Decimal("0")
    currency: str = "TRY"
    is_active: bool = True
    stock: StockLevels = StockLevels()
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProductCreate(BaseModel):
    id: Optional[str] = Field(None, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    price: Decimal = Field(Decimal("0"), ge=0)
    stock: StockLevels = StockLevels()

# Stock schemas
class StockSet(BaseModel):
    quantity: int = Field(..., description="New stock quantity (clamped at zero)")

class StockAdjust(BaseModel):
    adjustment: int = Field(..., description="Quantity delta (positive inbound, negative outbound)")
    reason: str = Field(..., max_length=255, description="Adjustment reason")

class StockAvailability(BaseModel):
    product_id: str
    quantity: int
    available: bool

# Movement schemas
class StockMovement(BaseModel):
    id: str
    product_id: str
    type: MovementType
    quantity: int = Field(..., ge=0, description="Magnitude of the movement")
    reason: str
    previous_stock: int
    new_stock: int
    performed_by: str
    created_at: datetime

    class Config:
        from_attributes = True

class StockAdjustment(BaseModel):
    product: Product
    movement: StockMovement
