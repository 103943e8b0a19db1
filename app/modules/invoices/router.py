from fastapi import APIRouter, status
from typing import List

from app.dependencies.ledgerDependencies import ledger_dependency, notifier_dependency, actor_dependency
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    Invoice, InvoiceCreate, InvoiceNoteCreate, Payment, PaymentCreate, PaymentReceipt
)

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("/", response_model=Invoice, status_code=status.HTTP_201_CREATED)
def issue_invoice(invoice_data: InvoiceCreate, ledger: ledger_dependency,
                  notifier: notifier_dependency, actor: actor_dependency):
    """
    Issue an invoice

    The full amount becomes outstanding and the customer's credit is reconciled.
    Stock is not touched; use the sales endpoint for admission-checked sales.
    """
    service = InvoiceService(ledger, notifier)
    return service.issue_invoice(
        invoice_data.customer_id,
        invoice_data.items,
        issue_date=invoice_data.issue_date,
        due_date=invoice_data.due_date,
        notes=invoice_data.notes,
        actor=actor
    )


@router.get("/{invoice_id}", response_model=Invoice)
def get_invoice(invoice_id: str, ledger: ledger_dependency, notifier: notifier_dependency):
    return InvoiceService(ledger, notifier).get_invoice(invoice_id)


@router.post("/{invoice_id}/payments", response_model=PaymentReceipt, status_code=status.HTTP_201_CREATED)
def record_payment(invoice_id: str, payment_data: PaymentCreate, ledger: ledger_dependency,
                   notifier: notifier_dependency, actor: actor_dependency):
    """
    Record a payment against an invoice

    The amount cannot exceed the remaining balance. Paid invoices reject payments.
    """
    service = InvoiceService(ledger, notifier)
    return service.record_payment(
        invoice_id,
        payment_data.amount,
        method=payment_data.method,
        reference=payment_data.reference,
        payment_date=payment_data.payment_date,
        notes=payment_data.notes,
        actor=actor
    )


@router.get("/{invoice_id}/payments", response_model=List[Payment])
def get_invoice_payments(invoice_id: str, ledger: ledger_dependency, notifier: notifier_dependency):
    return InvoiceService(ledger, notifier).get_invoice_payments(invoice_id)


@router.post("/{invoice_id}/notes", response_model=Invoice)
def add_invoice_note(invoice_id: str, note_data: InvoiceNoteCreate, ledger: ledger_dependency,
                     notifier: notifier_dependency):
    """Append an audit note (allowed on paid invoices too)."""
    return InvoiceService(ledger, notifier).add_note(invoice_id, note_data.note)
