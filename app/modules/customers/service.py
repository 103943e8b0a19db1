"""
Credit engine.

Keeps each customer's cached credit fields consistent with the invoice ledger:

- total_outstanding = sum of remaining_amount over the customer's invoices
- available_credit  = credit_limit - total_outstanding (may be negative)
- credit_status     = derived from utilization, except the manual `blocked` state

`recalculate_from_ledger` is the single reconciliation entry point; call it
after any invoice or payment change instead of applying incremental deltas.
"""

from decimal import Decimal
from typing import List, Optional
from uuid import uuid4
from datetime import date
import logging

from app.common.audit import resolve_actor, utcnow
from app.common.exceptions import NotFoundError, InvalidArgumentError
from app.common.money import round_money, sum_money, to_decimal, format_money, Number
from app.core.config import settings
from app.database.ledger import LedgerStore
from app.modules.customers.schemas import (
    Customer, CustomerCreate, CustomerStatus, CreditStatus, CreditCheckResult,
    CreditChangeLog, CreditLimitChange, CreditStatusInfo, CreditStatusBreakdown,
    CreditSummary, RiskCustomer
)
from app.modules.notifications.schemas import ChangeEventType, CreditUpdateEvent
from app.modules.notifications.service import ChangeNotifier, NullNotifier

logger = logging.getLogger(__name__)


def compute_utilization(credit_limit: Decimal, total_outstanding: Decimal) -> Optional[Decimal]:
    """Fraction of the limit in use, or None when the limit is zero."""
    if credit_limit <= 0:
        return None
    return total_outstanding / credit_limit


def derive_credit_status(
    credit_limit: Decimal,
    total_outstanding: Decimal,
    current: Optional[CreditStatus] = None
) -> CreditStatus:
    if current == CreditStatus.BLOCKED:
        return CreditStatus.BLOCKED

    utilization = compute_utilization(credit_limit, total_outstanding)
    if utilization is None:
        return CreditStatus.EXCEEDED if total_outstanding > 0 else CreditStatus.GOOD
    if utilization > 1:
        return CreditStatus.EXCEEDED
    if utilization > settings.CREDIT_WARNING_RATIO:
        return CreditStatus.WARNING
    return CreditStatus.GOOD


class CreditService:
    """Credit engine over the ledger store."""

    def __init__(self, ledger: LedgerStore, notifier: Optional[ChangeNotifier] = None):
        self.ledger = ledger
        self.notifier = notifier or NullNotifier()

    # ===== LOOKUPS =====

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.ledger.customers.get(customer_id)
        if customer is None:
            raise NotFoundError("Customer", customer_id)
        return customer

    def open_account(self, data: CustomerCreate) -> Customer:
        """Create a customer account with a clean credit position."""
        credit_limit = round_money(data.credit_limit)
        if credit_limit < 0:
            raise InvalidArgumentError("Credit limit cannot be negative")

        customer_id = data.id or str(uuid4())
        with self.ledger.locks.customer(customer_id):
            if self.ledger.customers.get(customer_id) is not None:
                raise InvalidArgumentError(f"Customer '{customer_id}' already exists")

            customer = Customer(
                id=customer_id,
                company_name=data.company_name,
                payment_terms=data.payment_terms if data.payment_terms is not None else settings.DEFAULT_PAYMENT_TERMS,
                credit_limit=credit_limit,
                total_outstanding=Decimal("0"),
                available_credit=credit_limit,
                credit_status=CreditStatus.GOOD,
                updated_at=utcnow()
            )
            self.ledger.customers.upsert(customer)

        logger.info(f"Opened credit account {customer.id} for {customer.company_name} (limit {credit_limit})")
        return customer

    def deactivate_customer(self, customer_id: str) -> Customer:
        """Soft delete: customers stay in the ledger for their invoices."""
        with self.ledger.locks.customer(customer_id):
            customer = self.get_customer(customer_id)
            customer.status = CustomerStatus.INACTIVE
            customer.updated_at = utcnow()
            self.ledger.customers.upsert(customer)
        logger.info(f"Customer {customer_id} deactivated")
        return customer

    # ===== RECONCILIATION =====

    def apply_outstanding_delta(
        self,
        customer_id: str,
        new_outstanding: Number,
        payment_date: Optional[date] = None,
        reason: str = "Outstanding balance updated",
        actor: Optional[str] = None
    ) -> Customer:
        """Set total_outstanding and recompute available credit and status."""
        with self.ledger.locks.customer(customer_id):
            customer = self.get_customer(customer_id)
            old_available = customer.available_credit
            old_outstanding = customer.total_outstanding
            old_status = customer.credit_status

            customer.total_outstanding = max(Decimal("0"), round_money(new_outstanding))
            customer.available_credit = round_money(customer.credit_limit - customer.total_outstanding)
            if payment_date:
                customer.last_payment_date = payment_date
            customer.credit_status = derive_credit_status(
                customer.credit_limit, customer.total_outstanding, customer.credit_status
            )
            customer.updated_at = utcnow()
            self.ledger.customers.upsert(customer)

        if customer.total_outstanding != old_outstanding or customer.credit_status != old_status:
            logger.info(
                f"Customer {customer_id} outstanding {old_outstanding} -> {customer.total_outstanding}, "
                f"status {old_status.value} -> {customer.credit_status.value}"
            )
            self._emit_credit_update(
                customer, customer.credit_limit, old_available, old_status, reason, actor
            )
        return customer

    def recalculate_from_ledger(self, customer_id: str, payment_date: Optional[date] = None,
                                actor: Optional[str] = None) -> Customer:
        """Rebuild total_outstanding from the customer's invoices."""
        with self.ledger.locks.customer(customer_id):
            self.get_customer(customer_id)
            invoices = self.ledger.invoices.list(customer_id=customer_id)
            total_outstanding = sum_money(invoice.remaining_amount for invoice in invoices)
            return self.apply_outstanding_delta(
                customer_id, total_outstanding, payment_date=payment_date,
                reason="Ledger reconciliation", actor=actor
            )

    # ===== CREDIT LIMIT =====

    def set_credit_limit(
        self,
        customer_id: str,
        new_limit: Number,
        reason: Optional[str] = None,
        actor: Optional[str] = None
    ) -> CreditLimitChange:
        new_limit = round_money(new_limit)
        if new_limit < 0:
            raise InvalidArgumentError("Credit limit cannot be negative")

        actor = resolve_actor(actor)
        reason = reason or "Credit limit updated"

        with self.ledger.locks.customer(customer_id):
            customer = self.get_customer(customer_id)
            old_limit = customer.credit_limit
            old_available = customer.available_credit
            old_status = customer.credit_status

            customer.credit_limit = new_limit
            customer.available_credit = round_money(new_limit - customer.total_outstanding)
            customer.credit_status = derive_credit_status(
                new_limit, customer.total_outstanding, customer.credit_status
            )
            customer.updated_at = utcnow()
            self.ledger.customers.upsert(customer)

        logger.info(f"Credit limit for {customer_id} changed {old_limit} -> {new_limit} by {actor}: {reason}")
        event = self._emit_credit_update(customer, old_limit, old_available, old_status, reason, actor)

        change_log = CreditChangeLog(
            customer_id=customer_id,
            old_credit_limit=old_limit,
            new_credit_limit=new_limit,
            changed_by=actor,
            change_date=event.timestamp,
            reason=reason
        )
        return CreditLimitChange(customer=customer, change_log=change_log)

    # ===== BLOCKING =====

    def block_customer(self, customer_id: str, reason: Optional[str] = None,
                       actor: Optional[str] = None) -> Customer:
        """Manual override; stays in place until `unblock_customer`."""
        with self.ledger.locks.customer(customer_id):
            customer = self.get_customer(customer_id)
            old_status = customer.credit_status
            if old_status == CreditStatus.BLOCKED:
                return customer
            customer.credit_status = CreditStatus.BLOCKED
            customer.updated_at = utcnow()
            self.ledger.customers.upsert(customer)

        logger.warning(f"Customer {customer_id} blocked by {resolve_actor(actor)}")
        self._emit_credit_update(
            customer, customer.credit_limit, customer.available_credit, old_status,
            reason or "Customer blocked", actor
        )
        return customer

    def unblock_customer(self, customer_id: str, reason: Optional[str] = None,
                         actor: Optional[str] = None) -> Customer:
        with self.ledger.locks.customer(customer_id):
            customer = self.get_customer(customer_id)
            if customer.credit_status != CreditStatus.BLOCKED:
                raise InvalidArgumentError(f"Customer '{customer_id}' is not blocked")
            customer.credit_status = derive_credit_status(customer.credit_limit, customer.total_outstanding)
            customer.updated_at = utcnow()
            self.ledger.customers.upsert(customer)

        logger.info(f"Customer {customer_id} unblocked, status now {customer.credit_status.value}")
        self._emit_credit_update(
            customer, customer.credit_limit, customer.available_credit, CreditStatus.BLOCKED,
            reason or "Customer unblocked", actor
        )
        return customer

    # ===== DRY-RUN CHECKS =====

    def check_purchase_admission(self, customer_id: str, amount: Number) -> CreditCheckResult:
        """Would a purchase of `amount` fit in the available credit? Never mutates."""
        customer = self.get_customer(customer_id)

        amount = to_decimal(amount)
        if amount <= 0:
            raise InvalidArgumentError("Purchase amount must be greater than zero")

        can_purchase = customer.available_credit >= amount
        available_after_purchase = customer.available_credit - amount

        result = CreditCheckResult(
            customer_id=customer.id,
            company_name=customer.company_name,
            requested_amount=amount,
            current_available_credit=customer.available_credit,
            can_purchase=can_purchase,
            available_after_purchase=available_after_purchase if can_purchase else None,
            shortfall=None if can_purchase else amount - customer.available_credit,
            credit_status=customer.credit_status,
            warnings=[]
        )

        if not can_purchase:
            result.warnings.append("Insufficient credit limit - sale cannot proceed")
            result.warnings.append(f"Shortfall: {format_money(result.shortfall)}")
        elif available_after_purchase < customer.credit_limit * settings.CREDIT_CRITICAL_RATIO:
            result.warnings.append("Credit will drop to a critical level after this sale")

        if customer.credit_status == CreditStatus.WARNING:
            result.warnings.append("Customer credit status is already at warning level")

        return result

    # ===== REPORTING =====

    def get_credit_status(self, customer_id: str) -> CreditStatusInfo:
        customer = self.get_customer(customer_id)
        info = CreditStatusInfo(
            customer_id=customer.id,
            company_name=customer.company_name,
            credit_limit=customer.credit_limit,
            available_credit=customer.available_credit,
            total_outstanding=customer.total_outstanding,
            credit_utilization=self._utilization_percent(customer),
            credit_status=customer.credit_status,
            payment_terms=customer.payment_terms,
            last_payment_date=customer.last_payment_date,
            recommendations=[]
        )

        if customer.credit_status == CreditStatus.WARNING:
            info.recommendations.append("Approaching the credit limit, follow up on payments")
        if customer.credit_status == CreditStatus.EXCEEDED:
            info.recommendations.append("Credit limit exceeded, collect payment before new sales")
            info.recommendations.append("Negotiate a payment plan with the customer")
        if customer.credit_status == CreditStatus.BLOCKED:
            info.recommendations.append("Customer is blocked, new sales require an explicit unblock")
        if not customer.last_payment_date:
            info.recommendations.append("No payment received yet, start collection tracking")

        return info

    def get_credit_summary(self) -> CreditSummary:
        customers = self.ledger.customers.list()
        breakdown = CreditStatusBreakdown()
        for customer in customers:
            current = getattr(breakdown, customer.credit_status.value)
            setattr(breakdown, customer.credit_status.value, current + 1)

        risk_customers: List[RiskCustomer] = [
            RiskCustomer(
                id=c.id,
                company_name=c.company_name,
                credit_limit=c.credit_limit,
                total_outstanding=c.total_outstanding,
                credit_status=c.credit_status,
                utilization_rate=self._utilization_percent(c)
            )
            for c in customers
            if c.credit_status in (CreditStatus.WARNING, CreditStatus.EXCEEDED)
        ]

        return CreditSummary(
            total_customers=len(customers),
            active_customers=sum(1 for c in customers if c.status == CustomerStatus.ACTIVE),
            credit_status_breakdown=breakdown,
            total_credit_limit=sum_money(c.credit_limit for c in customers),
            total_outstanding=sum_money(c.total_outstanding for c in customers),
            total_available_credit=sum_money(c.available_credit for c in customers),
            risk_customers=risk_customers
        )

    # ===== HELPERS =====

    @staticmethod
    def _utilization_percent(customer: Customer) -> Optional[Decimal]:
        utilization = compute_utilization(customer.credit_limit, customer.total_outstanding)
        if utilization is None:
            return None
        return (utilization * 100).quantize(Decimal("0.01"))

    def _emit_credit_update(
        self,
        customer: Customer,
        old_limit: Decimal,
        old_available: Decimal,
        old_status: CreditStatus,
        reason: str,
        actor: Optional[str]
    ) -> CreditUpdateEvent:
        event = CreditUpdateEvent(
            customer_id=customer.id,
            old_credit_limit=old_limit,
            new_credit_limit=customer.credit_limit,
            old_available_credit=old_available,
            new_available_credit=customer.available_credit,
            total_outstanding=customer.total_outstanding,
            old_status=old_status.value,
            new_status=customer.credit_status.value,
            updated_by=resolve_actor(actor),
            timestamp=utcnow(),
            reason=reason
        )
        self.notifier.emit(ChangeEventType.CREDIT_UPDATE, event)
        return event
