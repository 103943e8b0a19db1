from fastapi import APIRouter, Path, status
from typing import List, Optional

from app.dependencies.ledgerDependencies import ledger_dependency, notifier_dependency, actor_dependency
from app.modules.customers.service import CreditService
from app.modules.customers.schemas import (
    Customer, CustomerCreate, CreditLimitUpdate, CreditCheckRequest, CreditCheckResult,
    CreditBlockRequest, CreditLimitChange, CreditStatusInfo, CreditSummary
)
from app.modules.invoices.schemas import Invoice
from app.modules.invoices.service import InvoiceService

router = APIRouter(prefix="/customers", tags=["Customer Credit"])


@router.post("/", response_model=Customer, status_code=status.HTTP_201_CREATED)
def open_account(customer_data: CustomerCreate, ledger: ledger_dependency, notifier: notifier_dependency):
    """Open a customer credit account (outstanding 0, status good)."""
    return CreditService(ledger, notifier).open_account(customer_data)


@router.get("/credit-summary", response_model=CreditSummary)
def get_credit_summary(ledger: ledger_dependency, notifier: notifier_dependency):
    """Credit exposure across all customers, with the ones at risk."""
    return CreditService(ledger, notifier).get_credit_summary()


@router.get("/{customer_id}", response_model=Customer)
def get_customer(ledger: ledger_dependency, notifier: notifier_dependency,
                 customer_id: str = Path(..., description="Customer ID")):
    return CreditService(ledger, notifier).get_customer(customer_id)


@router.delete("/{customer_id}", response_model=Customer)
def deactivate_customer(ledger: ledger_dependency, notifier: notifier_dependency,
                        customer_id: str = Path(..., description="Customer ID")):
    """
    Deactivate a customer (soft delete)

    Customers are never removed so their invoices keep a valid owner.
    """
    return CreditService(ledger, notifier).deactivate_customer(customer_id)


@router.get("/{customer_id}/credit-status", response_model=CreditStatusInfo)
def get_credit_status(ledger: ledger_dependency, notifier: notifier_dependency,
                      customer_id: str = Path(..., description="Customer ID")):
    """Credit position plus follow-up recommendations."""
    return CreditService(ledger, notifier).get_credit_status(customer_id)


@router.put("/{customer_id}/credit-limit", response_model=CreditLimitChange)
def update_credit_limit(
    limit_data: CreditLimitUpdate,
    ledger: ledger_dependency,
    notifier: notifier_dependency,
    actor: actor_dependency,
    customer_id: str = Path(..., description="Customer ID")
):
    """Change the credit limit; status is recomputed against the current outstanding."""
    service = CreditService(ledger, notifier)
    return service.set_credit_limit(customer_id, limit_data.credit_limit, limit_data.reason, actor)


@router.post("/{customer_id}/credit-check", response_model=CreditCheckResult)
def check_credit(
    check_data: CreditCheckRequest,
    ledger: ledger_dependency,
    notifier: notifier_dependency,
    customer_id: str = Path(..., description="Customer ID")
):
    """Dry run: can the customer buy for this amount? Nothing is modified."""
    return CreditService(ledger, notifier).check_purchase_admission(customer_id, check_data.amount)


@router.post("/{customer_id}/recalculate", response_model=Customer)
def recalculate_customer(ledger: ledger_dependency, notifier: notifier_dependency, actor: actor_dependency,
                         customer_id: str = Path(..., description="Customer ID")):
    """Rebuild the outstanding balance from the invoice ledger."""
    return CreditService(ledger, notifier).recalculate_from_ledger(customer_id, actor=actor)


@router.post("/{customer_id}/block", response_model=Customer)
def block_customer(ledger: ledger_dependency, notifier: notifier_dependency, actor: actor_dependency,
                   block_data: Optional[CreditBlockRequest] = None,
                   customer_id: str = Path(..., description="Customer ID")):
    reason = block_data.reason if block_data else None
    return CreditService(ledger, notifier).block_customer(customer_id, reason, actor)


@router.post("/{customer_id}/unblock", response_model=Customer)
def unblock_customer(ledger: ledger_dependency, notifier: notifier_dependency, actor: actor_dependency,
                     block_data: Optional[CreditBlockRequest] = None,
                     customer_id: str = Path(..., description="Customer ID")):
    reason = block_data.reason if block_data else None
    return CreditService(ledger, notifier).unblock_customer(customer_id, reason, actor)


@router.get("/{customer_id}/invoices", response_model=List[Invoice])
def list_customer_invoices(ledger: ledger_dependency, notifier: notifier_dependency,
                           customer_id: str = Path(..., description="Customer ID")):
    return InvoiceService(ledger, notifier).list_for_customer(customer_id)
