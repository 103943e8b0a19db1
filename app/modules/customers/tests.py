"""
Tests for the customer credit module

Covers:
- Credit status derivation (utilization bands, zero limit, manual block)
- Reconciliation from the invoice ledger
- Credit limit changes and their notifications
- Dry-run purchase admission checks
- REST endpoints under /customers
"""

import pytest
from decimal import Decimal
from datetime import date

from app.common.exceptions import NotFoundError, InvalidArgumentError
from app.modules.customers.schemas import CustomerCreate, CreditStatus, CustomerStatus
from app.modules.customers.service import derive_credit_status, compute_utilization
from app.modules.invoices.schemas import InvoiceItemCreate
from app.modules.notifications.schemas import ChangeEventType


# ===== STATUS DERIVATION =====

class TestCreditStatusDerivation:

    def test_utilization_bands(self):
        limit = Decimal("100000")
        assert derive_credit_status(limit, Decimal("0")) == CreditStatus.GOOD
        assert derive_credit_status(limit, Decimal("90000")) == CreditStatus.GOOD
        assert derive_credit_status(limit, Decimal("90001")) == CreditStatus.WARNING
        assert derive_credit_status(limit, Decimal("100000")) == CreditStatus.WARNING
        assert derive_credit_status(limit, Decimal("100001")) == CreditStatus.EXCEEDED

    def test_zero_limit(self):
        """A zero limit has no utilization; any debt means exceeded"""
        assert compute_utilization(Decimal("0"), Decimal("10")) is None
        assert derive_credit_status(Decimal("0"), Decimal("0")) == CreditStatus.GOOD
        assert derive_credit_status(Decimal("0"), Decimal("1")) == CreditStatus.EXCEEDED

    def test_blocked_is_never_derived_away(self):
        status = derive_credit_status(Decimal("100000"), Decimal("0"), CreditStatus.BLOCKED)
        assert status == CreditStatus.BLOCKED


# ===== ACCOUNTS =====

class TestCustomerAccounts:

    def test_open_account(self, sample_customer):
        assert sample_customer.total_outstanding == Decimal("0")
        assert sample_customer.available_credit == Decimal("100000")
        assert sample_customer.credit_status == CreditStatus.GOOD
        assert sample_customer.status == CustomerStatus.ACTIVE

    def test_open_account_defaults(self, credit_service):
        customer = credit_service.open_account(CustomerCreate(company_name="Global Pharma Ltd."))
        assert customer.id
        assert customer.credit_limit == Decimal("50000")
        assert customer.payment_terms == 30

    def test_duplicate_id_rejected(self, credit_service, sample_customer):
        with pytest.raises(InvalidArgumentError):
            credit_service.open_account(CustomerCreate(id=sample_customer.id, company_name="Copy"))

    def test_negative_limit_rejected(self, credit_service):
        with pytest.raises(InvalidArgumentError):
            credit_service.open_account(CustomerCreate(company_name="Bad", credit_limit=Decimal("-1")))

    def test_unknown_customer(self, credit_service):
        with pytest.raises(NotFoundError):
            credit_service.get_customer("missing")

    def test_deactivate_keeps_record(self, credit_service, sample_customer, ledger):
        customer = credit_service.deactivate_customer(sample_customer.id)
        assert customer.status == CustomerStatus.INACTIVE
        assert ledger.customers.get(sample_customer.id) is not None

    def test_customers_cannot_be_hard_deleted(self, ledger, sample_customer):
        with pytest.raises(InvalidArgumentError):
            ledger.customers.delete(sample_customer.id)


# ===== RECONCILIATION =====

class TestOutstandingReconciliation:

    def test_warning_band(self, credit_service, sample_customer):
        customer = credit_service.apply_outstanding_delta(sample_customer.id, Decimal("94100"))
        assert customer.available_credit == Decimal("5900")
        assert customer.credit_status == CreditStatus.WARNING

    def test_outstanding_is_clamped_and_rounded(self, credit_service, sample_customer):
        customer = credit_service.apply_outstanding_delta(sample_customer.id, Decimal("-500"))
        assert customer.total_outstanding == Decimal("0")
        customer = credit_service.apply_outstanding_delta(sample_customer.id, Decimal("1000.5"))
        assert customer.total_outstanding == Decimal("1001")
        assert customer.available_credit == Decimal("98999")

    def test_payment_date_is_stamped(self, credit_service, sample_customer):
        customer = credit_service.apply_outstanding_delta(
            sample_customer.id, Decimal("0"), payment_date=date(2024, 3, 1)
        )
        assert customer.last_payment_date == date(2024, 3, 1)

    def test_recalculate_matches_invoices(self, credit_service, invoice_service, sample_customer, sample_product):
        invoice_service.issue_invoice(
            sample_customer.id,
            [InvoiceItemCreate(product_id=sample_product.id, quantity=1000, unit_price=Decimal("17.70"))]
        )
        # Drift the cached field, then reconcile
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("1"))
        customer = credit_service.recalculate_from_ledger(sample_customer.id)
        assert customer.total_outstanding == Decimal("17700")
        assert customer.available_credit == Decimal("82300")

    def test_recalculate_is_idempotent(self, credit_service, invoice_service, sample_customer, sample_product, notifier):
        invoice_service.issue_invoice(
            sample_customer.id,
            [InvoiceItemCreate(product_id=sample_product.id, quantity=100, unit_price=Decimal("15.50"))]
        )
        first = credit_service.recalculate_from_ledger(sample_customer.id)
        notifier.clear()
        second = credit_service.recalculate_from_ledger(sample_customer.id)
        assert first.total_outstanding == second.total_outstanding
        assert first.credit_status == second.credit_status
        assert notifier.of_type(ChangeEventType.CREDIT_UPDATE) == []

    def test_recalculate_unknown_customer(self, credit_service):
        with pytest.raises(NotFoundError):
            credit_service.recalculate_from_ledger("missing")


# ===== CREDIT LIMIT =====

class TestCreditLimit:

    def test_renegotiated_limit(self, credit_service, sample_customer, notifier):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("17700"))
        notifier.clear()

        change = credit_service.set_credit_limit(sample_customer.id, Decimal("50000"), "renegotiated", actor="Ayşe")

        assert change.customer.available_credit == Decimal("32300")
        assert change.customer.credit_status == CreditStatus.GOOD
        assert change.change_log.old_credit_limit == Decimal("100000")
        assert change.change_log.new_credit_limit == Decimal("50000")
        assert change.change_log.changed_by == "Ayşe"
        assert change.change_log.reason == "renegotiated"

        events = notifier.of_type(ChangeEventType.CREDIT_UPDATE)
        assert len(events) == 1
        assert events[0].old_credit_limit == Decimal("100000")
        assert events[0].new_available_credit == Decimal("32300")
        assert events[0].updated_by == "Ayşe"

    def test_limit_below_outstanding_exceeds(self, credit_service, sample_customer):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("30000"))
        change = credit_service.set_credit_limit(sample_customer.id, Decimal("20000"))
        assert change.customer.available_credit == Decimal("-10000")
        assert change.customer.credit_status == CreditStatus.EXCEEDED

    def test_negative_limit_rejected(self, credit_service, sample_customer):
        with pytest.raises(InvalidArgumentError):
            credit_service.set_credit_limit(sample_customer.id, Decimal("-1"))
        assert credit_service.get_customer(sample_customer.id).credit_limit == Decimal("100000")

    def test_default_actor(self, credit_service, sample_customer):
        change = credit_service.set_credit_limit(sample_customer.id, Decimal("60000"))
        assert change.change_log.changed_by == "System"

    def test_unknown_customer(self, credit_service):
        with pytest.raises(NotFoundError):
            credit_service.set_credit_limit("missing", Decimal("1000"))


# ===== BLOCKING =====

class TestBlocking:

    def test_block_is_sticky(self, credit_service, sample_customer):
        credit_service.block_customer(sample_customer.id, "Legal dispute")

        credit_service.set_credit_limit(sample_customer.id, Decimal("200000"))
        customer = credit_service.recalculate_from_ledger(sample_customer.id)
        assert customer.credit_status == CreditStatus.BLOCKED

    def test_unblock_rederives_status(self, credit_service, sample_customer):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("95000"))
        credit_service.block_customer(sample_customer.id)
        customer = credit_service.unblock_customer(sample_customer.id)
        assert customer.credit_status == CreditStatus.WARNING

    def test_unblock_requires_block(self, credit_service, sample_customer):
        with pytest.raises(InvalidArgumentError):
            credit_service.unblock_customer(sample_customer.id)


# ===== PURCHASE ADMISSION =====

class TestPurchaseAdmission:

    def test_shortfall(self, credit_service, sample_customer):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("94100"))

        result = credit_service.check_purchase_admission(sample_customer.id, Decimal("10000"))

        assert result.can_purchase is False
        assert result.shortfall == Decimal("4100")
        assert result.available_after_purchase is None
        assert "Insufficient credit limit - sale cannot proceed" in result.warnings
        assert "Shortfall: 4100.00 TRY" in result.warnings
        assert "Customer credit status is already at warning level" in result.warnings

    def test_check_does_not_mutate(self, credit_service, sample_customer, notifier):
        before = credit_service.get_customer(sample_customer.id)
        credit_service.check_purchase_admission(sample_customer.id, Decimal("500000"))
        after = credit_service.get_customer(sample_customer.id)
        assert before == after
        assert notifier.events == []

    def test_admissible_with_critical_warning(self, credit_service, sample_customer):
        result = credit_service.check_purchase_admission(sample_customer.id, Decimal("95000"))
        assert result.can_purchase is True
        assert result.available_after_purchase == Decimal("5000")
        assert result.shortfall is None
        assert result.warnings == ["Credit will drop to a critical level after this sale"]

    def test_admissible_without_warnings(self, credit_service, sample_customer):
        result = credit_service.check_purchase_admission(sample_customer.id, Decimal("1000"))
        assert result.can_purchase is True
        assert result.warnings == []

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_amount(self, credit_service, sample_customer, amount):
        with pytest.raises(InvalidArgumentError):
            credit_service.check_purchase_admission(sample_customer.id, amount)

    def test_unknown_customer_before_amount(self, credit_service):
        with pytest.raises(NotFoundError):
            credit_service.check_purchase_admission("missing", Decimal("0"))


# ===== REPORTING =====

class TestCreditReports:

    def test_credit_status_info(self, credit_service, sample_customer):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("94100"))
        info = credit_service.get_credit_status(sample_customer.id)
        assert info.credit_utilization == Decimal("94.10")
        assert info.credit_status == CreditStatus.WARNING
        assert any("Approaching" in r for r in info.recommendations)

    def test_credit_summary(self, credit_service, sample_customer):
        other = credit_service.open_account(CustomerCreate(
            id="cust-def", company_name="DEF Sağlık Hizmetleri", credit_limit=Decimal("25000")
        ))
        credit_service.apply_outstanding_delta(other.id, Decimal("30000"))

        summary = credit_service.get_credit_summary()

        assert summary.total_customers == 2
        assert summary.active_customers == 2
        assert summary.credit_status_breakdown.good == 1
        assert summary.credit_status_breakdown.exceeded == 1
        assert summary.total_credit_limit == Decimal("125000")
        assert summary.total_outstanding == Decimal("30000")
        assert [c.id for c in summary.risk_customers] == ["cust-def"]
        assert summary.risk_customers[0].utilization_rate == Decimal("120.00")


# ===== SQL STORE =====

class TestSqlCustomerStore:

    def test_round_trip(self, sql_ledger):
        from app.modules.customers.service import CreditService

        service = CreditService(sql_ledger)
        service.open_account(CustomerCreate(id="c1", company_name="Sağlık Merkezi XYZ", credit_limit=Decimal("75000")))
        service.apply_outstanding_delta("c1", Decimal("70000"), payment_date=date(2024, 3, 1))

        customer = sql_ledger.customers.get("c1")
        assert customer.total_outstanding == Decimal("70000")
        assert customer.available_credit == Decimal("5000")
        assert customer.credit_status == CreditStatus.WARNING
        assert customer.last_payment_date == date(2024, 3, 1)


# ===== API =====

class TestCustomersAPI:

    def test_open_and_get(self, client):
        response = client.post("/customers/", json={
            "id": "c-api", "company_name": "Global Pharma Ltd.", "credit_limit": "120000", "payment_terms": 60
        })
        assert response.status_code == 201

        response = client.get("/customers/c-api")
        assert response.status_code == 200
        data = response.json()
        assert data["credit_status"] == "good"
        assert Decimal(data["available_credit"]) == Decimal("120000")

    def test_unknown_customer_is_404(self, client):
        response = client.get("/customers/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_credit_check(self, client, credit_service, sample_customer):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("94100"))
        response = client.post(f"/customers/{sample_customer.id}/credit-check", json={"amount": "10000"})
        assert response.status_code == 200
        data = response.json()
        assert data["can_purchase"] is False
        assert Decimal(data["shortfall"]) == Decimal("4100")

    def test_credit_check_invalid_amount(self, client, sample_customer):
        response = client.post(f"/customers/{sample_customer.id}/credit-check", json={"amount": "0"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_argument"

    def test_update_limit_uses_actor_header(self, client, sample_customer):
        response = client.put(
            f"/customers/{sample_customer.id}/credit-limit",
            json={"credit_limit": "50000", "reason": "renegotiated"},
            headers={"X-Actor": "finance.specialist"}
        )
        assert response.status_code == 200
        assert response.json()["change_log"]["changed_by"] == "finance.specialist"

    def test_block_and_unblock(self, client, sample_customer):
        response = client.post(f"/customers/{sample_customer.id}/block", json={"reason": "Audit"})
        assert response.json()["credit_status"] == "blocked"
        response = client.post(f"/customers/{sample_customer.id}/unblock")
        assert response.json()["credit_status"] == "good"

    def test_credit_summary(self, client, sample_customer):
        response = client.get("/customers/credit-summary")
        assert response.status_code == 200
        assert response.json()["total_customers"] == 1
