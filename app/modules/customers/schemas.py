"""
Pydantic schemas for customer credit management.

`Customer` is the ledger aggregate itself; the other schemas are request and
response bodies for the credit engine.
"""

from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import date, datetime
from enum import Enum


# ===== ENUMS =====

class CreditStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    EXCEEDED = "exceeded"
    BLOCKED = "blocked"  # Manual override, never derived


class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


# ===== AGGREGATE =====

class Customer(BaseModel):
    id: str
    company_name: str
    status: CustomerStatus = CustomerStatus.ACTIVE
    payment_terms: int = 30

    credit_limit: Decimal = Decimal("0")
    total_outstanding: Decimal = Decimal("0")
    available_credit: Decimal = Decimal("0")
    credit_status: CreditStatus = CreditStatus.GOOD
    last_payment_date: Optional[date] = None

    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    id: Optional[str] = Field(None, max_length=64, description="Identifier; generated when omitted")
    company_name: str = Field(..., min_length=1, max_length=200)
    credit_limit: Decimal = Field(Decimal("50000"), description="Initial credit limit")
    payment_terms: Optional[int] = Field(None, ge=0, description="Payment terms in days")


# ===== REQUESTS =====

class CreditLimitUpdate(BaseModel):
    credit_limit: Decimal
    reason: Optional[str] = Field(None, max_length=255)


class CreditCheckRequest(BaseModel):
    amount: Decimal


class CreditBlockRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


# ===== RESPONSES =====

class CreditCheckResult(BaseModel):
    customer_id: str
    company_name: str
    requested_amount: Decimal
    current_available_credit: Decimal
    can_purchase: bool
    available_after_purchase: Optional[Decimal] = None  # Only set when admissible
    shortfall: Optional[Decimal] = None  # Only set when not admissible
    credit_status: CreditStatus
    warnings: List[str] = []


class CreditChangeLog(BaseModel):
    customer_id: str
    old_credit_limit: Decimal
    new_credit_limit: Decimal
    changed_by: str
    change_date: datetime
    reason: str


class CreditLimitChange(BaseModel):
    customer: Customer
    change_log: CreditChangeLog


class CreditStatusInfo(BaseModel):
    customer_id: str
    company_name: str
    credit_limit: Decimal
    available_credit: Decimal
    total_outstanding: Decimal
    credit_utilization: Optional[Decimal] = Field(None, description="Percent of the limit in use; None for a zero limit")
    credit_status: CreditStatus
    payment_terms: int
    last_payment_date: Optional[date] = None
    recommendations: List[str] = []


class CreditStatusBreakdown(BaseModel):
    good: int = 0
    warning: int = 0
    exceeded: int = 0
    blocked: int = 0


class RiskCustomer(BaseModel):
    id: str
    company_name: str
    credit_limit: Decimal
    total_outstanding: Decimal
    credit_status: CreditStatus
    utilization_rate: Optional[Decimal] = None


class CreditSummary(BaseModel):
    total_customers: int
    active_customers: int
    credit_status_breakdown: CreditStatusBreakdown
    total_credit_limit: Decimal
    total_outstanding: Decimal
    total_available_credit: Decimal
    risk_customers: List[RiskCustomer] = []
