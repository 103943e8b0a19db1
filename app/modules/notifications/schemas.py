from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime
from enum import Enum


class ChangeEventType(str, Enum):
    CREDIT_UPDATE = "credit-update"
    STOCK_UPDATE = "stock-update"


class CreditUpdateEvent(BaseModel):
    customer_id: str
    old_credit_limit: Decimal
    new_credit_limit: Decimal
    old_available_credit: Decimal
    new_available_credit: Decimal
    total_outstanding: Decimal
    old_status: str
    new_status: str
    updated_by: str
    timestamp: datetime
    reason: str


class StockUpdateEvent(BaseModel):
    product_id: str
    product_name: str
    product_sku: Optional[str] = None
    old_stock: int
    new_stock: int
    quantity: int = Field(..., ge=0, description="Magnitude of the change")
    reason: str
    updated_by: str
    timestamp: datetime
