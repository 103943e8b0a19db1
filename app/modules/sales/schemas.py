from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import datetime
from app.modules.customers.schemas import CreditCheckResult
from app.modules.invoices.schemas import Invoice


class SaleLine(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal


class SaleRequest(BaseModel):
    customer_id: str
    lines: List[SaleLine] = Field(..., description="At least one line is required")


class StockShortfall(BaseModel):
    line_index: int
    product_id: str
    requested: int = Field(..., description="Cumulative quantity requested for the product up to this line")
    available: int
    missing: int


class SaleDecision(BaseModel):
    customer_id: str
    admissible: bool
    total_amount: Decimal
    stock_ok: bool
    credit_ok: bool
    stock_shortfalls: List[StockShortfall] = []
    credit_shortfall: Optional[Decimal] = None
    credit_check: Optional[CreditCheckResult] = None
    warnings: List[str] = []
    evaluated_at: datetime


class SaleResult(BaseModel):
    decision: SaleDecision
    invoice: Optional[Invoice] = None
