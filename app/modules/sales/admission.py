"""
Admission controller: read-only, all-or-nothing gate for multi-line sales.

`evaluate_sale` never commits state, so it is safe to retry. The decision is
only binding while the caller holds the customer and product scopes across its
own commit (see `SaleService.place_sale`); without them another writer can
change stock or credit between the check and the commit.
"""
from collections import defaultdict
from typing import Dict, List, Optional
import logging

from app.common.audit import utcnow
from app.common.exceptions import InvalidArgumentError
from app.common.money import document_total, to_decimal
from app.database.ledger import LedgerStore
from app.modules.customers.schemas import CreditStatus, CustomerStatus
from app.modules.customers.service import CreditService
from app.modules.inventory.service import StockService
from app.modules.notifications.service import ChangeNotifier
from app.modules.sales.schemas import SaleLine, SaleDecision, StockShortfall

logger = logging.getLogger(__name__)


class AdmissionController:

    def __init__(self, ledger: LedgerStore, notifier: Optional[ChangeNotifier] = None):
        self.ledger = ledger
        self.credit = CreditService(ledger, notifier)
        self.stock = StockService(ledger, notifier)

    def evaluate_sale(self, customer_id: str, lines: List[SaleLine]) -> SaleDecision:
        customer = self.credit.get_customer(customer_id)
        self._validate_lines(lines)

        warnings: List[str] = []
        shortfalls: List[StockShortfall] = []
        requested: Dict[str, int] = defaultdict(int)

        # Lines for the same product draw on the same stock
        for index, line in enumerate(lines):
            requested[line.product_id] += line.quantity
            if not self.stock.check_availability(line.product_id, requested[line.product_id]):
                product = self.ledger.products.get(line.product_id)
                available = product.stock.current if product else 0
                shortfalls.append(StockShortfall(
                    line_index=index,
                    product_id=line.product_id,
                    requested=requested[line.product_id],
                    available=available,
                    missing=requested[line.product_id] - available
                ))
                if product is None:
                    warnings.append(f"Line {index + 1}: product '{line.product_id}' does not exist")
                else:
                    warnings.append(
                        f"Line {index + 1}: insufficient stock for '{product.name}' "
                        f"(available {available}, requested {requested[line.product_id]})"
                    )

        total_amount = document_total((line.unit_price, line.quantity) for line in lines)

        credit_check = None
        credit_ok = True
        credit_shortfall = None
        if total_amount > 0:
            credit_check = self.credit.check_purchase_admission(customer_id, total_amount)
            credit_ok = credit_check.can_purchase
            credit_shortfall = credit_check.shortfall
            warnings.extend(credit_check.warnings)

        if customer.credit_status == CreditStatus.BLOCKED:
            credit_ok = False
            warnings.append("Customer is blocked; sales require an explicit unblock")
        if customer.status != CustomerStatus.ACTIVE:
            credit_ok = False
            warnings.append("Customer account is inactive; it cannot be invoiced")

        stock_ok = not shortfalls
        decision = SaleDecision(
            customer_id=customer_id,
            admissible=stock_ok and credit_ok,
            total_amount=total_amount,
            stock_ok=stock_ok,
            credit_ok=credit_ok,
            stock_shortfalls=shortfalls,
            credit_shortfall=credit_shortfall,
            credit_check=credit_check,
            warnings=warnings,
            evaluated_at=utcnow()
        )

        if not decision.admissible:
            logger.warning(
                f"Sale for {customer_id} rejected: stock_ok={stock_ok}, credit_ok={credit_ok}, total={total_amount}"
            )
        return decision

    @staticmethod
    def _validate_lines(lines: List[SaleLine]) -> None:
        if not lines:
            raise InvalidArgumentError("A sale needs at least one line")
        for index, line in enumerate(lines):
            if line.quantity <= 0:
                raise InvalidArgumentError(f"Line {index + 1}: quantity must be greater than zero")
            if to_decimal(line.unit_price) < 0:
                raise InvalidArgumentError(f"Line {index + 1}: unit price cannot be negative")
