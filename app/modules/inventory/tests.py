"""
Tests for the inventory module: stock adjustments, availability, sale decreases
and the /products endpoints.
"""

import pytest
from decimal import Decimal
from pydantic import ValidationError

from app.common.exceptions import NotFoundError, InvalidArgumentError, InsufficientStockError
from app.modules.inventory.schemas import MovementType, ProductCreate, StockLevels
from app.modules.inventory.service import StockService
from app.modules.notifications.schemas import ChangeEventType


class TestStockLevels:

    def test_reserved_cannot_exceed_current(self):
        with pytest.raises(ValidationError):
            StockLevels(current=10, reserved=11)

    def test_negative_levels_rejected(self):
        with pytest.raises(ValidationError):
            StockLevels(current=-1)


class TestAdjustStock:

    def test_outbound_adjustment(self, stock_service, sample_product, notifier):
        result = stock_service.adjust_stock(sample_product.id, -500, "Damaged boxes", actor="depo")

        assert result.product.stock.current == 14500
        assert result.movement.type == MovementType.OUTBOUND
        assert result.movement.quantity == 500
        assert result.movement.previous_stock == 15000
        assert result.movement.new_stock == 14500
        assert result.movement.performed_by == "depo"

        events = notifier.of_type(ChangeEventType.STOCK_UPDATE)
        assert len(events) == 1
        assert events[0].old_stock == 15000
        assert events[0].new_stock == 14500
        assert events[0].reason == "Damaged boxes"

    def test_inbound_adjustment(self, stock_service, sample_product):
        result = stock_service.adjust_stock(sample_product.id, 2000, "Supplier delivery")
        assert result.product.stock.current == 17000
        assert result.movement.type == MovementType.INBOUND
        assert result.movement.performed_by == "System"

    def test_negative_result_rejected_without_mutation(self, stock_service, sample_product, notifier, ledger):
        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.adjust_stock(sample_product.id, -50000, "sale")

        assert exc_info.value.detail["current_stock"] == 15000
        assert stock_service.get_product(sample_product.id).stock.current == 15000
        assert ledger.movements.list(product_id=sample_product.id) == []
        assert notifier.events == []

    def test_zero_delta_rejected(self, stock_service, sample_product):
        with pytest.raises(InvalidArgumentError):
            stock_service.adjust_stock(sample_product.id, 0, "noop")

    def test_reason_required(self, stock_service, sample_product):
        with pytest.raises(InvalidArgumentError):
            stock_service.adjust_stock(sample_product.id, 5, "  ")

    def test_unknown_product(self, stock_service):
        with pytest.raises(NotFoundError):
            stock_service.adjust_stock("missing", 5, "count")

    def test_movement_history_newest_first(self, stock_service, sample_product):
        stock_service.adjust_stock(sample_product.id, 10, "first")
        stock_service.adjust_stock(sample_product.id, -5, "second")
        movements = stock_service.get_movements(sample_product.id)
        assert [m.reason for m in movements] == ["second", "first"]
        assert stock_service.get_movements(sample_product.id, limit=1, offset=1)[0].reason == "first"


class TestSetStock:

    def test_clamped_at_zero(self, stock_service, sample_product):
        product = stock_service.set_stock(sample_product.id, -20)
        assert product.stock.current == 0

    def test_rounds_and_clamps_reserved(self, stock_service):
        stock_service.register_product(ProductCreate(
            id="p-res", name="Eldiven Nitril Mavi", stock=StockLevels(current=100, reserved=80)
        ))
        product = stock_service.set_stock("p-res", 49.6)
        assert product.stock.current == 50
        assert product.stock.reserved == 50


class TestAvailability:

    def test_predicate(self, stock_service, sample_product):
        assert stock_service.check_availability(sample_product.id, 15000) is True
        assert stock_service.check_availability(sample_product.id, 15001) is False

    def test_unknown_product_is_unavailable(self, stock_service):
        assert stock_service.check_availability("missing", 1) is False


class TestDecreaseForSale:

    def test_decrease(self, stock_service, sample_product, ledger):
        product = stock_service.decrease_for_sale(sample_product.id, 1000)
        assert product.stock.current == 14000
        movements = ledger.movements.list(product_id=sample_product.id)
        assert len(movements) == 1
        assert movements[0].reason == "sale"

    def test_insufficient_stock(self, stock_service, second_product):
        with pytest.raises(InsufficientStockError):
            stock_service.decrease_for_sale(second_product.id, 451)
        assert stock_service.get_product(second_product.id).stock.current == 450

    def test_quantity_must_be_positive(self, stock_service, sample_product):
        with pytest.raises(InvalidArgumentError):
            stock_service.decrease_for_sale(sample_product.id, 0)


class TestProductLifecycle:

    def test_low_stock(self, stock_service, sample_product, second_product):
        stock_service.set_stock(second_product.id, 50)
        assert [p.id for p in stock_service.list_low_stock()] == [second_product.id]

    def test_delete_keeps_movements(self, stock_service, sample_product, ledger):
        stock_service.adjust_stock(sample_product.id, -1, "sample")
        stock_service.delete_product(sample_product.id)

        with pytest.raises(NotFoundError):
            stock_service.get_product(sample_product.id)
        assert len(ledger.movements.list(product_id=sample_product.id)) == 1

    def test_delete_unknown(self, stock_service):
        with pytest.raises(NotFoundError):
            stock_service.delete_product("missing")

    def test_duplicate_product(self, stock_service, sample_product):
        with pytest.raises(InvalidArgumentError):
            stock_service.register_product(ProductCreate(id=sample_product.id, name="Copy"))


class TestSqlProductStore:

    def test_nested_stock_round_trip(self, sql_ledger):
        service = StockService(sql_ledger)
        service.register_product(ProductCreate(
            id="p1", name="Dijital Termometre", sku="THERM-DIG-003", price=Decimal("125.00"),
            stock=StockLevels(current=450, reserved=10, minimum=50, maximum=1000)
        ))
        service.adjust_stock("p1", -400, "Hospital order")

        product = sql_ledger.products.get("p1")
        assert product.stock.current == 50
        assert product.stock.reserved == 10
        assert product.price == Decimal("125.00")
        assert [p.id for p in service.list_low_stock()] == ["p1"]
        assert sql_ledger.movements.list(product_id="p1")[0].type == MovementType.OUTBOUND

        service.delete_product("p1")
        assert sql_ledger.products.get("p1") is None


class TestProductsAPI:

    def test_register_and_adjust(self, client):
        response = client.post("/products/", json={
            "id": "p-api", "name": "Cerrahi Maske FFP2", "sku": "MASK-FFP2-001", "price": "15.50",
            "stock": {"current": 15000, "minimum": 2000, "maximum": 50000}
        })
        assert response.status_code == 201

        response = client.post("/products/p-api/stock/adjust", json={"adjustment": -500, "reason": "Damaged"})
        assert response.status_code == 200
        data = response.json()
        assert data["product"]["stock"]["current"] == 14500
        assert data["movement"]["type"] == "outbound"

    def test_insufficient_stock_is_400(self, client, sample_product):
        response = client.post(
            f"/products/{sample_product.id}/stock/adjust", json={"adjustment": -50000, "reason": "sale"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "insufficient_stock"
        assert body["rejection"]["current_stock"] == 15000

    def test_availability(self, client, sample_product):
        response = client.get(f"/products/{sample_product.id}/availability", params={"quantity": 20000})
        assert response.status_code == 200
        assert response.json()["available"] is False

    def test_set_stock_and_low_stock(self, client, sample_product):
        response = client.put(f"/products/{sample_product.id}/stock", json={"quantity": 100})
        assert response.json()["stock"]["current"] == 100
        response = client.get("/products/low-stock")
        assert [p["id"] for p in response.json()] == [sample_product.id]

    def test_delete(self, client, sample_product):
        assert client.delete(f"/products/{sample_product.id}").status_code == 204
        assert client.get(f"/products/{sample_product.id}").status_code == 404
