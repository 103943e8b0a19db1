from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional, List
from datetime import date, datetime
from enum import Enum
from app.modules.customers.schemas import Customer


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    CARD = "card"
    CHECK = "check"
    OTHER = "other"


# Invoice Item Schemas
class InvoiceItemCreate(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal


class InvoiceItem(BaseModel):
    id: str
    product_id: str
    # Snapshot data (kept even if the product changes or is deleted)
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


# Invoice Schemas
class Invoice(BaseModel):
    id: str
    invoice_number: str
    customer_id: str
    issue_date: date
    due_date: date
    status: InvoiceStatus = InvoiceStatus.PENDING
    currency: str = "TRY"

    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    remaining_amount: Decimal

    items: List[InvoiceItem] = []
    notes: List[str] = []  # Audit notes, appendable in every status

    created_by: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    customer_id: str
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(..., description="At least one item is required")

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.issue_date and self.due_date < self.issue_date:
            raise ValueError('Due date cannot be before the issue date')
        return self


class InvoiceNoteCreate(BaseModel):
    note: str = Field(..., min_length=1, max_length=500)


# Payment Schemas
class PaymentCreate(BaseModel):
    amount: Decimal
    method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    reference: Optional[str] = Field(None, max_length=100)
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class Payment(BaseModel):
    id: str
    invoice_id: str
    invoice_number: str
    customer_id: str
    amount: Decimal
    currency: str = "TRY"
    payment_date: date
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    processed_by: str

    class Config:
        from_attributes = True


class PaymentReceipt(BaseModel):
    payment: Payment
    invoice: Invoice
    customer: Customer
