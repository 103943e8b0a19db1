"""
Tests for sale admission and placement
"""

import pytest
import threading
from decimal import Decimal

from app.common.exceptions import NotFoundError, InvalidArgumentError, InsufficientStockError
from app.modules.customers.schemas import CreditStatus
from app.modules.notifications.schemas import ChangeEventType
from app.modules.sales.schemas import SaleLine


def line(product_id, quantity, unit_price):
    return SaleLine(product_id=product_id, quantity=quantity, unit_price=Decimal(unit_price))


class TestEvaluateSale:

    def test_admissible_sale(self, admission, sample_customer, sample_product, second_product):
        decision = admission.evaluate_sale(sample_customer.id, [
            line(sample_product.id, 1000, "15.50"),
            line(second_product.id, 10, "125.00"),
        ])
        assert decision.admissible is True
        assert decision.stock_ok is True
        assert decision.credit_ok is True
        assert decision.total_amount == Decimal("16750")
        assert decision.credit_check.available_after_purchase == Decimal("83250")

    def test_cumulative_demand_per_product(self, admission, sample_customer, second_product):
        decision = admission.evaluate_sale(sample_customer.id, [
            line(second_product.id, 300, "125.00"),
            line(second_product.id, 200, "125.00"),
        ])
        assert decision.admissible is False
        assert decision.stock_ok is False
        shortfall = decision.stock_shortfalls[0]
        assert shortfall.line_index == 1
        assert shortfall.requested == 500
        assert shortfall.available == 450
        assert shortfall.missing == 50

    def test_unknown_product_is_shortfall(self, admission, sample_customer):
        decision = admission.evaluate_sale(sample_customer.id, [line("missing", 1, "10")])
        assert decision.admissible is False
        assert decision.stock_shortfalls[0].available == 0

    def test_credit_shortfall(self, admission, credit_service, sample_customer, sample_product):
        credit_service.apply_outstanding_delta(sample_customer.id, Decimal("94100"))
        decision = admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 1000, "10")])
        assert decision.admissible is False
        assert decision.stock_ok is True
        assert decision.credit_ok is False
        assert decision.credit_shortfall == Decimal("4100")

    def test_blocked_customer(self, admission, credit_service, sample_customer, sample_product):
        credit_service.block_customer(sample_customer.id)
        decision = admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 1, "15.50")])
        assert decision.admissible is False
        assert decision.credit_ok is False

    def test_free_sale_skips_credit(self, admission, credit_service, sample_customer, sample_product):
        credit_service.set_credit_limit(sample_customer.id, Decimal("0"))
        decision = admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 5, "0")])
        assert decision.admissible is True
        assert decision.credit_check is None

    def test_does_not_mutate(self, admission, ledger, notifier, sample_customer, sample_product):
        before = (ledger.customers.get(sample_customer.id), ledger.products.get(sample_product.id))
        admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 20000, "15.50")])
        assert (ledger.customers.get(sample_customer.id), ledger.products.get(sample_product.id)) == before
        assert notifier.events == []

    def test_invalid_lines(self, admission, sample_customer, sample_product):
        with pytest.raises(InvalidArgumentError):
            admission.evaluate_sale(sample_customer.id, [])
        with pytest.raises(InvalidArgumentError):
            admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 0, "1")])
        with pytest.raises(InvalidArgumentError):
            admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 1, "-1")])

    def test_unknown_customer(self, admission, sample_product):
        with pytest.raises(NotFoundError):
            admission.evaluate_sale("missing", [line(sample_product.id, 1, "1")])


class TestPlaceSale:

    def test_commit(self, sale_service, credit_service, stock_service, notifier,
                    sample_customer, sample_product, second_product):
        result = sale_service.place_sale(sample_customer.id, [
            line(sample_product.id, 1000, "15.50"),
            line(second_product.id, 10, "125.00"),
        ], actor="satis")

        assert result.invoice is not None
        assert result.invoice.total_amount == Decimal("16750")
        assert result.invoice.created_by == "satis"
        assert stock_service.get_product(sample_product.id).stock.current == 14000
        assert stock_service.get_product(second_product.id).stock.current == 440

        customer = credit_service.get_customer(sample_customer.id)
        assert customer.total_outstanding == Decimal("16750")
        assert len(notifier.of_type(ChangeEventType.STOCK_UPDATE)) == 2
        assert len(notifier.of_type(ChangeEventType.CREDIT_UPDATE)) == 1

    def test_rejected_sale_changes_nothing(self, sale_service, ledger, notifier,
                                           sample_customer, sample_product, second_product):
        result = sale_service.place_sale(sample_customer.id, [
            line(sample_product.id, 1000, "15.50"),
            line(second_product.id, 451, "125.00"),
        ])

        assert result.invoice is None
        assert result.decision.admissible is False
        assert ledger.products.get(sample_product.id).stock.current == 15000
        assert ledger.products.get(second_product.id).stock.current == 450
        assert ledger.invoices.list() == []
        assert ledger.movements.list() == []
        assert notifier.events == []

    def test_inactive_customer_changes_nothing(self, sale_service, credit_service, admission, ledger, notifier,
                                              sample_customer, sample_product):
        credit_service.deactivate_customer(sample_customer.id)

        decision = admission.evaluate_sale(sample_customer.id, [line(sample_product.id, 100, "15.50")])
        assert decision.admissible is False
        assert decision.credit_ok is False

        result = sale_service.place_sale(sample_customer.id, [line(sample_product.id, 100, "15.50")])
        assert result.invoice is None
        assert ledger.products.get(sample_product.id).stock.current == 15000
        assert ledger.movements.list() == []
        assert ledger.invoices.list() == []
        assert notifier.events == []

    def test_admitted_total_is_invoiced_total(self, sale_service, sample_customer, sample_product):
        # 10.495 rounds to 10.50 per line, then to 11 at the document level
        result = sale_service.place_sale(sample_customer.id, [line(sample_product.id, 1, "10.495")])
        assert result.decision.total_amount == Decimal("11")
        assert result.invoice.total_amount == result.decision.total_amount

    def test_blocked_customer_cannot_buy(self, sale_service, credit_service, ledger, sample_customer, sample_product):
        credit_service.block_customer(sample_customer.id)
        result = sale_service.place_sale(sample_customer.id, [line(sample_product.id, 1, "15.50")])
        assert result.invoice is None
        assert ledger.invoices.list() == []
        assert credit_service.get_customer(sample_customer.id).credit_status == CreditStatus.BLOCKED


class TestConcurrentSales:
    """Writers on the same product are serialized; stock never goes negative."""

    @staticmethod
    def run_concurrently(target, count):
        barrier = threading.Barrier(count)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            outcome = target()
            with results_lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        assert not any(thread.is_alive() for thread in threads)
        return results

    def test_decrease_for_sale(self, stock_service, second_product):
        def sell():
            try:
                stock_service.decrease_for_sale(second_product.id, 30)
                return True
            except InsufficientStockError:
                return False

        results = self.run_concurrently(sell, 20)

        # 450 units cover exactly 15 sales of 30
        assert results.count(True) == 15
        assert stock_service.get_product(second_product.id).stock.current == 0

    def test_place_sale(self, sale_service, ledger, credit_service, sample_customer, second_product):
        def sell():
            result = sale_service.place_sale(sample_customer.id, [line(second_product.id, 100, "125.00")])
            return result.invoice is not None

        results = self.run_concurrently(sell, 10)

        assert results.count(True) == 4
        assert ledger.products.get(second_product.id).stock.current == 50
        assert len(ledger.invoices.list()) == 4
        assert len({i.invoice_number for i in ledger.invoices.list()}) == 4
        assert credit_service.get_customer(sample_customer.id).total_outstanding == Decimal("50000")


class TestSalesAPI:

    def test_evaluate(self, client, sample_customer, sample_product):
        response = client.post("/sales/evaluate", json={
            "customer_id": sample_customer.id,
            "lines": [{"product_id": sample_product.id, "quantity": 10, "unit_price": "15.50"}]
        })
        assert response.status_code == 200
        assert response.json()["admissible"] is True

    def test_place(self, client, sample_customer, sample_product):
        response = client.post("/sales/", json={
            "customer_id": sample_customer.id,
            "lines": [{"product_id": sample_product.id, "quantity": 10, "unit_price": "15.50"}]
        })
        assert response.status_code == 201
        assert response.json()["invoice"]["invoice_number"].startswith("INV-")

    def test_rejected(self, client, sample_customer, sample_product):
        response = client.post("/sales/", json={
            "customer_id": sample_customer.id,
            "lines": [{"product_id": sample_product.id, "quantity": 20000, "unit_price": "15.50"}]
        })
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "sale_rejected"
        assert body["decision"]["stock_shortfalls"][0]["missing"] == 5000
