"""
Invoicing module

- Issuing invoices (the full total becomes customer outstanding)
- Recording payments (never more than the remaining balance)
- Audit notes on invoices
- Overdue detection by due date

Every mutation ends with a credit reconciliation of the owning customer,
so customer outstanding always equals the sum of remaining invoice balances.

Main tables:
- invoices: invoice header with JSON line items and notes
- payments: payments against invoices
"""

from .schemas import (
    InvoiceStatus, PaymentMethod, Invoice, InvoiceCreate, InvoiceItem,
    Payment, PaymentCreate, PaymentReceipt
)

__all__ = [
    "InvoiceStatus",
    "PaymentMethod",
    "Invoice",
    "InvoiceCreate",
    "InvoiceItem",
    "Payment",
    "PaymentCreate",
    "PaymentReceipt",
]
