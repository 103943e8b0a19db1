from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import uuid4
from datetime import date, timedelta
import logging

from app.common.audit import resolve_actor, utcnow
from app.common.exceptions import NotFoundError, InvalidArgumentError, InvoiceAlreadyPaidError
from app.common.money import round_money, to_decimal, line_total, document_total, Number
from app.core.config import settings
from app.database.ledger import LedgerStore
from app.modules.customers.schemas import Customer, CustomerStatus
from app.modules.customers.service import CreditService
from app.modules.invoices.schemas import (
    Invoice, InvoiceItem, InvoiceItemCreate, InvoiceStatus,
    Payment, PaymentMethod, PaymentReceipt
)
from app.modules.notifications.service import ChangeNotifier

logger = logging.getLogger(__name__)

_SEQUENCE_KEY = ("sequence", "invoice")


def derive_invoice_status(invoice: Invoice, today: Optional[date] = None) -> InvoiceStatus:
    today = today or date.today()
    if invoice.remaining_amount <= 0:
        return InvoiceStatus.PAID
    if invoice.due_date < today:
        return InvoiceStatus.OVERDUE
    if invoice.paid_amount > 0:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.PENDING


class InvoiceService:
    """Invoice ledger. Every change ends with a reconciliation of the customer's credit."""

    def __init__(self, ledger: LedgerStore, notifier: Optional[ChangeNotifier] = None):
        self.ledger = ledger
        self.credit = CreditService(ledger, notifier)

    def get_invoice(self, invoice_id: str) -> Invoice:
        invoice = self.ledger.invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    def list_for_customer(self, customer_id: str) -> List[Invoice]:
        self.credit.get_customer(customer_id)
        invoices = self.ledger.invoices.list(customer_id=customer_id)
        return sorted(invoices, key=lambda i: (i.issue_date, i.invoice_number))

    def get_invoice_payments(self, invoice_id: str) -> List[Payment]:
        self.get_invoice(invoice_id)
        return self.ledger.payments.list(invoice_id=invoice_id)

    def issue_invoice(
        self,
        customer_id: str,
        items: List[InvoiceItemCreate],
        issue_date: Optional[date] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> Invoice:
        """Create an invoice with its full amount outstanding and reconcile the customer."""
        with self.ledger.locks.customer(customer_id):
            customer, line_items = self.prepare_invoice(customer_id, items)
            total_amount = document_total((line.unit_price, line.quantity) for line in line_items)

            issue_date = issue_date or date.today()
            due_date = due_date or issue_date + timedelta(days=customer.payment_terms)
            if due_date < issue_date:
                raise InvalidArgumentError("Due date cannot be before the issue date")

            with self.ledger.locks.hold(_SEQUENCE_KEY):
                invoice = Invoice(
                    id=str(uuid4()),
                    invoice_number=self._next_invoice_number(issue_date.year),
                    customer_id=customer_id,
                    issue_date=issue_date,
                    due_date=due_date,
                    currency=settings.CURRENCY,
                    total_amount=total_amount,
                    paid_amount=Decimal("0"),
                    remaining_amount=total_amount,
                    items=line_items,
                    notes=[notes] if notes else [],
                    created_by=resolve_actor(actor),
                    updated_at=utcnow()
                )
                invoice.status = derive_invoice_status(invoice)
                self.ledger.invoices.upsert(invoice)

            logger.info(f"Issued invoice {invoice.invoice_number} for {customer_id}: {total_amount}")
            self.credit.recalculate_from_ledger(customer_id, actor=actor)

        return invoice

    def prepare_invoice(self, customer_id: str, items: List[InvoiceItemCreate]) -> Tuple[Customer, List[InvoiceItem]]:
        """
        Run every check `issue_invoice` makes and build the line snapshots, without writing.

        Callers that mutate other aggregates before issuing (the sale workflow)
        call this first so a rejection leaves nothing behind.
        """
        if not items:
            raise InvalidArgumentError("An invoice needs at least one item")
        customer = self.credit.get_customer(customer_id)
        if customer.status != CustomerStatus.ACTIVE:
            raise InvalidArgumentError(f"Customer '{customer.company_name}' is inactive")
        return customer, [self._build_line(item) for item in items]

    def record_payment(
        self,
        invoice_id: str,
        amount: Number,
        method: PaymentMethod = PaymentMethod.BANK_TRANSFER,
        reference: Optional[str] = None,
        payment_date: Optional[date] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> PaymentReceipt:
        """Apply a payment to an invoice and reconcile the customer's credit."""
        customer_id = self.get_invoice(invoice_id).customer_id
        payment_date = payment_date or date.today()

        with self.ledger.locks.hold(("customer", customer_id), ("invoice", invoice_id)):
            invoice = self.get_invoice(invoice_id)
            amount = round_money(amount)
            if amount <= 0:
                raise InvalidArgumentError("Payment amount must be greater than zero")
            if invoice.remaining_amount <= 0:
                raise InvoiceAlreadyPaidError(
                    f"Invoice {invoice.invoice_number} is already paid",
                    detail={"invoice_id": invoice_id, "total_amount": str(invoice.total_amount)}
                )
            if amount > invoice.remaining_amount:
                raise InvalidArgumentError(
                    f"Payment {amount} exceeds the remaining balance {invoice.remaining_amount}"
                )

            invoice.paid_amount = round_money(invoice.paid_amount + amount)
            invoice.remaining_amount = max(Decimal("0"), round_money(invoice.total_amount - invoice.paid_amount))
            old_status = invoice.status
            invoice.status = derive_invoice_status(invoice)
            invoice.updated_at = utcnow()
            self.ledger.invoices.upsert(invoice)

            payment = Payment(
                id=str(uuid4()),
                invoice_id=invoice.id,
                invoice_number=invoice.invoice_number,
                customer_id=customer_id,
                amount=amount,
                currency=invoice.currency,
                payment_date=payment_date,
                method=method,
                reference=reference,
                notes=notes,
                processed_by=resolve_actor(actor)
            )
            self.ledger.payments.upsert(payment)

            logger.info(
                f"Payment of {amount} applied to {invoice.invoice_number}; "
                f"status {old_status.value} -> {invoice.status.value}"
            )
            customer = self.credit.recalculate_from_ledger(customer_id, payment_date=payment_date, actor=actor)

        return PaymentReceipt(payment=payment, invoice=invoice, customer=customer)

    def add_note(self, invoice_id: str, note: str) -> Invoice:
        """Audit notes are the only change allowed on a paid invoice."""
        if not note or not note.strip():
            raise InvalidArgumentError("Note cannot be empty")
        with self.ledger.locks.invoice(invoice_id):
            invoice = self.get_invoice(invoice_id)
            invoice.notes.append(note.strip())
            invoice.updated_at = utcnow()
            self.ledger.invoices.upsert(invoice)
        return invoice

    def refresh_overdue(self, today: Optional[date] = None) -> List[Invoice]:
        """Re-derive the status of open invoices; returns the ones that changed."""
        changed = []
        for invoice in self.ledger.invoices.list(lambda i: i.remaining_amount > 0):
            with self.ledger.locks.invoice(invoice.id):
                current = self.get_invoice(invoice.id)
                status = derive_invoice_status(current, today)
                if status != current.status:
                    current.status = status
                    current.updated_at = utcnow()
                    self.ledger.invoices.upsert(current)
                    changed.append(current)
        if changed:
            logger.info(f"{len(changed)} invoice(s) changed status on overdue refresh")
        return changed

    def _build_line(self, item: InvoiceItemCreate) -> InvoiceItem:
        if item.quantity <= 0:
            raise InvalidArgumentError("Item quantity must be greater than zero")
        unit_price = to_decimal(item.unit_price)
        if unit_price < 0:
            raise InvalidArgumentError("Unit price cannot be negative")

        product = self.ledger.products.get(item.product_id)
        if product is None:
            raise NotFoundError("Product", item.product_id)

        return InvoiceItem(
            id=str(uuid4()),
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            quantity=item.quantity,
            unit_price=unit_price,
            total_price=line_total(unit_price, item.quantity)
        )

    def _next_invoice_number(self, year: int) -> str:
        prefix = f"INV-{year}-"
        count = len(self.ledger.invoices.list(lambda i: i.invoice_number.startswith(prefix)))
        return f"{prefix}{count + 1:03d}"
