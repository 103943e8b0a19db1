"""
Customer credit module

Tracks each customer's credit limit, outstanding balance and credit status,
and answers "can this customer buy for this amount?" without side effects.

Components:
- models.py: SQLAlchemy table for the SQL store backend
- schemas.py: Pydantic schemas for the credit account and reports
- service.py: CreditService (limits, reconciliation, block/unblock, admission checks)
- router.py: REST endpoints under /customers
- tests.py: unit and API tests

The package only exports schemas; services import the ledger store, which in
turn imports this package's models.
"""

from .schemas import (
    CreditStatus, CustomerStatus, Customer, CustomerCreate,
    CreditCheckResult, CreditLimitChange, CreditSummary
)

__all__ = [
    "CreditStatus",
    "CustomerStatus",
    "Customer",
    "CustomerCreate",
    "CreditCheckResult",
    "CreditLimitChange",
    "CreditSummary",
]
