"""
Error taxonomy shared by the credit, stock and sales modules.

- NotFoundError: unknown customer/invoice/product id (404 at the HTTP layer)
- InvalidArgumentError: caller sent a value no rule can accept (400)
- BusinessRejection: a business rule refused an otherwise valid request (400 + code)

Dry-run checks report rejections as data; only mutations raise BusinessRejection.
"""
from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""

    code = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidArgumentError(LedgerError):
    code = "invalid_argument"


class BusinessRejection(LedgerError):
    """A business rule rejected the operation. State was not modified."""

    code = "business_rejection"

    def __init__(self, message: str, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.detail = detail or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class InsufficientStockError(BusinessRejection):
    code = "insufficient_stock"


class InvoiceAlreadyPaidError(BusinessRejection):
    code = "invoice_already_paid"
