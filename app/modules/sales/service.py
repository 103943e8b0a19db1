from typing import List, Optional
import logging

from app.database.ledger import LedgerStore
from app.modules.invoices.schemas import InvoiceItemCreate
from app.modules.invoices.service import InvoiceService
from app.modules.inventory.service import StockService
from app.modules.notifications.service import ChangeNotifier
from app.modules.sales.admission import AdmissionController
from app.modules.sales.schemas import SaleLine, SaleResult

logger = logging.getLogger(__name__)


class SaleService:
    """Sale workflow: admission check and commit under one set of entity scopes."""

    def __init__(self, ledger: LedgerStore, notifier: Optional[ChangeNotifier] = None):
        self.ledger = ledger
        self.admission = AdmissionController(ledger, notifier)
        self.stock = StockService(ledger, notifier)
        self.invoices = InvoiceService(ledger, notifier)

    def place_sale(self, customer_id: str, lines: List[SaleLine],
                   actor: Optional[str] = None) -> SaleResult:
        scopes = [("customer", customer_id)] + [("product", line.product_id) for line in lines]

        with self.ledger.locks.hold(*scopes):
            decision = self.admission.evaluate_sale(customer_id, lines)
            if not decision.admissible:
                return SaleResult(decision=decision)

            items = [
                InvoiceItemCreate(product_id=line.product_id, quantity=line.quantity, unit_price=line.unit_price)
                for line in lines
            ]
            # Every invoice check runs before the first stock write
            self.invoices.prepare_invoice(customer_id, items)

            for line in lines:
                self.stock.decrease_for_sale(line.product_id, line.quantity, actor=actor)

            invoice = self.invoices.issue_invoice(customer_id, items, actor=actor)

        logger.info(f"Sale committed for {customer_id}: invoice {invoice.invoice_number} ({invoice.total_amount})")
        return SaleResult(decision=decision, invoice=invoice)
