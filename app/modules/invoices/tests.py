"""
Tests for invoicing: issuance, payments, notes, overdue refresh and the
credit reconciliation that follows every change.
"""

import pytest
import threading
from decimal import Decimal
from datetime import date, timedelta

from app.common.exceptions import NotFoundError, InvalidArgumentError, InvoiceAlreadyPaidError
from app.modules.customers.schemas import CreditStatus
from app.modules.invoices.schemas import InvoiceItemCreate, InvoiceStatus, PaymentMethod
from app.modules.invoices.service import InvoiceService, derive_invoice_status
from app.modules.customers.schemas import CustomerCreate
from app.modules.customers.service import CreditService
from app.modules.inventory.schemas import ProductCreate, StockLevels
from app.modules.inventory.service import StockService


@pytest.fixture
def open_invoice(invoice_service, sample_customer, sample_product):
    """Invoice of 1000 masks at 17.70 (17700 TRY outstanding)"""
    return invoice_service.issue_invoice(
        sample_customer.id,
        [InvoiceItemCreate(product_id=sample_product.id, quantity=1000, unit_price=Decimal("17.70"))],
        issue_date=date.today(),
        actor="satis"
    )


class TestIssueInvoice:

    def test_issue_updates_outstanding(self, open_invoice, credit_service, sample_customer, sample_product):
        assert open_invoice.total_amount == Decimal("17700")
        assert open_invoice.remaining_amount == Decimal("17700")
        assert open_invoice.status == InvoiceStatus.PENDING
        assert open_invoice.due_date == date.today() + timedelta(days=30)
        assert open_invoice.created_by == "satis"
        assert open_invoice.items[0].product_name == sample_product.name
        assert open_invoice.items[0].total_price == Decimal("17700.00")

        customer = credit_service.get_customer(sample_customer.id)
        assert customer.total_outstanding == Decimal("17700")
        assert customer.available_credit == Decimal("82300")

    def test_invoice_numbers_are_sequential(self, invoice_service, sample_customer, sample_product):
        items = [InvoiceItemCreate(product_id=sample_product.id, quantity=1, unit_price=Decimal("15.50"))]
        first = invoice_service.issue_invoice(sample_customer.id, items, issue_date=date(2024, 2, 1))
        second = invoice_service.issue_invoice(sample_customer.id, items, issue_date=date(2024, 2, 15))
        assert first.invoice_number == "INV-2024-001"
        assert second.invoice_number == "INV-2024-002"

    def test_issue_does_not_touch_stock(self, open_invoice, stock_service, sample_product):
        assert stock_service.get_product(sample_product.id).stock.current == 15000

    def test_unknown_product(self, invoice_service, sample_customer):
        with pytest.raises(NotFoundError):
            invoice_service.issue_invoice(
                sample_customer.id, [InvoiceItemCreate(product_id="missing", quantity=1, unit_price=Decimal("1"))]
            )

    def test_empty_items(self, invoice_service, sample_customer):
        with pytest.raises(InvalidArgumentError):
            invoice_service.issue_invoice(sample_customer.id, [])

    def test_due_date_before_issue_date(self, invoice_service, sample_customer, sample_product):
        with pytest.raises(InvalidArgumentError):
            invoice_service.issue_invoice(
                sample_customer.id,
                [InvoiceItemCreate(product_id=sample_product.id, quantity=1, unit_price=Decimal("1"))],
                issue_date=date(2024, 3, 1),
                due_date=date(2024, 2, 1)
            )

    def test_inactive_customer(self, invoice_service, credit_service, sample_customer, sample_product):
        credit_service.deactivate_customer(sample_customer.id)
        with pytest.raises(InvalidArgumentError):
            invoice_service.issue_invoice(
                sample_customer.id,
                [InvoiceItemCreate(product_id=sample_product.id, quantity=1, unit_price=Decimal("1"))]
            )


    def test_prepare_writes_nothing(self, invoice_service, credit_service, ledger, notifier,
                                    sample_customer, sample_product):
        items = [InvoiceItemCreate(product_id=sample_product.id, quantity=3, unit_price=Decimal("15.50"))]
        customer, lines = invoice_service.prepare_invoice(sample_customer.id, items)
        assert customer.id == sample_customer.id
        assert lines[0].total_price == Decimal("46.50")
        assert ledger.invoices.list() == []
        assert notifier.events == []

        credit_service.deactivate_customer(sample_customer.id)
        with pytest.raises(InvalidArgumentError):
            invoice_service.prepare_invoice(sample_customer.id, items)

class TestRecordPayment:

    def test_partial_payment(self, invoice_service, open_invoice, notifier):
        receipt = invoice_service.record_payment(
            open_invoice.id, Decimal("7700"), method=PaymentMethod.CASH,
            reference="TRF-1", payment_date=date(2024, 3, 1), actor="muhasebe"
        )

        assert receipt.invoice.paid_amount == Decimal("7700")
        assert receipt.invoice.remaining_amount == Decimal("10000")
        assert receipt.invoice.status == InvoiceStatus.PARTIAL
        assert receipt.payment.processed_by == "muhasebe"
        assert receipt.customer.total_outstanding == Decimal("10000")
        assert receipt.customer.last_payment_date == date(2024, 3, 1)
        assert invoice_service.get_invoice_payments(open_invoice.id)[0].amount == Decimal("7700")

    def test_full_payment_then_rejection(self, invoice_service, open_invoice):
        receipt = invoice_service.record_payment(open_invoice.id, Decimal("17700"))
        assert receipt.invoice.status == InvoiceStatus.PAID
        assert receipt.customer.total_outstanding == Decimal("0")

        with pytest.raises(InvoiceAlreadyPaidError):
            invoice_service.record_payment(open_invoice.id, Decimal("1"))
        assert len(invoice_service.get_invoice_payments(open_invoice.id)) == 1

    def test_overpayment_rejected(self, invoice_service, open_invoice, credit_service):
        with pytest.raises(InvalidArgumentError):
            invoice_service.record_payment(open_invoice.id, Decimal("17701"))
        assert invoice_service.get_invoice(open_invoice.id).paid_amount == Decimal("0")
        assert credit_service.get_customer(open_invoice.customer_id).total_outstanding == Decimal("17700")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_payment(self, invoice_service, open_invoice, amount):
        with pytest.raises(InvalidArgumentError):
            invoice_service.record_payment(open_invoice.id, amount)

    def test_unknown_invoice(self, invoice_service):
        with pytest.raises(NotFoundError):
            invoice_service.record_payment("missing", Decimal("10"))

    def test_payment_restores_status(self, invoice_service, credit_service, sample_customer, sample_product):
        invoice = invoice_service.issue_invoice(
            sample_customer.id,
            [InvoiceItemCreate(product_id=sample_product.id, quantity=6100, unit_price=Decimal("15.50"))]
        )
        assert credit_service.get_customer(sample_customer.id).credit_status == CreditStatus.WARNING

        receipt = invoice_service.record_payment(invoice.id, Decimal("50000"))
        assert receipt.customer.credit_status == CreditStatus.GOOD


class TestConcurrentPayments:

    def test_outstanding_matches_ledger(self, invoice_service, credit_service, open_invoice, ledger):
        barrier = threading.Barrier(10)
        errors = []

        def pay():
            barrier.wait()
            try:
                invoice_service.record_payment(open_invoice.id, Decimal("1000"))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=pay) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []
        assert len(invoice_service.get_invoice_payments(open_invoice.id)) == 10
        assert invoice_service.get_invoice(open_invoice.id).remaining_amount == Decimal("7700")

        customer = credit_service.get_customer(open_invoice.customer_id)
        ledger_sum = sum(i.remaining_amount for i in ledger.invoices.list(customer_id=open_invoice.customer_id))
        assert customer.total_outstanding == ledger_sum == Decimal("7700")


class TestInvoiceStatus:

    def test_derivation(self, open_invoice):
        today = open_invoice.due_date
        assert derive_invoice_status(open_invoice, today) == InvoiceStatus.PENDING
        assert derive_invoice_status(open_invoice, today + timedelta(days=1)) == InvoiceStatus.OVERDUE

        paid = open_invoice.model_copy(update={"paid_amount": Decimal("17700"), "remaining_amount": Decimal("0")})
        assert derive_invoice_status(paid, today + timedelta(days=1)) == InvoiceStatus.PAID

    def test_refresh_overdue(self, invoice_service, open_invoice):
        changed = invoice_service.refresh_overdue(open_invoice.due_date + timedelta(days=1))
        assert [i.id for i in changed] == [open_invoice.id]
        assert invoice_service.get_invoice(open_invoice.id).status == InvoiceStatus.OVERDUE

    def test_notes_allowed_after_payment(self, invoice_service, open_invoice):
        invoice_service.record_payment(open_invoice.id, Decimal("17700"))
        invoice = invoice_service.add_note(open_invoice.id, "Zamanında ödeme yapıldı")
        assert invoice.notes == ["Zamanında ödeme yapıldı"]

    def test_empty_note(self, invoice_service, open_invoice):
        with pytest.raises(InvalidArgumentError):
            invoice_service.add_note(open_invoice.id, " ")


class TestSqlInvoiceStore:

    def test_issue_and_pay(self, sql_ledger):
        CreditService(sql_ledger).open_account(CustomerCreate(
            id="c2", company_name="Sağlık Merkezi XYZ", credit_limit=Decimal("75000"), payment_terms=45
        ))
        StockService(sql_ledger).register_product(ProductCreate(
            id="p2", name="Eldiven Nitril Mavi", sku="GLOVE-NIT-002", price=Decimal("85.00"),
            stock=StockLevels(current=8500, minimum=1000, maximum=20000)
        ))
        service = InvoiceService(sql_ledger)

        invoice = service.issue_invoice(
            "c2", [InvoiceItemCreate(product_id="p2", quantity=500, unit_price=Decimal("85.00"))],
            issue_date=date(2024, 2, 15), notes="Kısmi ödeme"
        )
        service.record_payment(invoice.id, Decimal("30000"), payment_date=date(2024, 3, 1))

        stored = sql_ledger.invoices.get(invoice.id)
        assert stored.items[0].product_sku == "GLOVE-NIT-002"
        assert stored.items[0].total_price == Decimal("42500.00")
        assert stored.notes == ["Kısmi ödeme"]
        assert stored.remaining_amount == Decimal("12500")
        assert stored.due_date == date(2024, 3, 31)

        customer = sql_ledger.customers.get("c2")
        assert customer.total_outstanding == Decimal("12500")
        assert customer.last_payment_date == date(2024, 3, 1)
        assert [p.amount for p in sql_ledger.payments.list(invoice_id=invoice.id)] == [Decimal("30000")]


class TestInvoicesAPI:

    def test_issue_pay_and_note(self, client, sample_customer, sample_product):
        response = client.post("/invoices/", json={
            "customer_id": sample_customer.id,
            "items": [{"product_id": sample_product.id, "quantity": 100, "unit_price": "15.50"}]
        })
        assert response.status_code == 201
        invoice = response.json()
        assert Decimal(invoice["total_amount"]) == Decimal("1550")

        response = client.post(f"/invoices/{invoice['id']}/payments", json={"amount": "1550", "method": "cash"})
        assert response.status_code == 201
        receipt = response.json()
        assert receipt["invoice"]["status"] == "paid"
        assert Decimal(receipt["customer"]["total_outstanding"]) == Decimal("0")

        response = client.post(f"/invoices/{invoice['id']}/payments", json={"amount": "10"})
        assert response.status_code == 400
        assert response.json()["code"] == "invoice_already_paid"

        response = client.post(f"/invoices/{invoice['id']}/notes", json={"note": "Closed"})
        assert response.json()["notes"] == ["Closed"]

        response = client.get(f"/invoices/{invoice['id']}/payments")
        assert len(response.json()) == 1

        response = client.get(f"/customers/{sample_customer.id}/invoices")
        assert [i["id"] for i in response.json()] == [invoice["id"]]

    def test_unknown_invoice(self, client):
        response = client.get("/invoices/missing")
        assert response.status_code == 404
