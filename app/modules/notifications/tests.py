"""
Tests for change notifiers and the Celery fan-out task
"""

import pytest
from decimal import Decimal

from app.modules.notifications.schemas import ChangeEventType, StockUpdateEvent
from app.modules.notifications.service import (
    CeleryNotifier, LoggingNotifier, NullNotifier, RecordingNotifier, build_notifier
)
from app.modules.notifications.tasks import broadcast_change
from app.common.audit import utcnow


def stock_event(**overrides):
    data = dict(
        product_id="p1", product_name="Cerrahi Maske FFP2", product_sku="MASK-FFP2-001",
        old_stock=15000, new_stock=14500, quantity=500, reason="sale",
        updated_by="System", timestamp=utcnow()
    )
    data.update(overrides)
    return StockUpdateEvent(**data)


class FakeTask:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def delay(self, *args):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.calls.append(args)


class ExplodingNotifier(RecordingNotifier):
    def _deliver(self, event_type, payload):
        raise RuntimeError("transport down")


class TestNotifiers:

    def test_recording(self):
        notifier = RecordingNotifier()
        notifier.emit(ChangeEventType.STOCK_UPDATE, stock_event())
        notifier.emit("stock-update", stock_event(new_stock=14000))
        assert [e.new_stock for e in notifier.of_type("stock-update")] == [14500, 14000]
        assert notifier.of_type(ChangeEventType.CREDIT_UPDATE) == []
        notifier.clear()
        assert notifier.events == []

    def test_unknown_event_type(self):
        with pytest.raises(ValueError):
            RecordingNotifier().emit("price-update", stock_event())

    def test_celery_payload_is_json(self):
        task = FakeTask()
        CeleryNotifier(task=task).emit(ChangeEventType.STOCK_UPDATE, stock_event())
        event_type, payload = task.calls[0]
        assert event_type == "stock-update"
        assert payload["product_id"] == "p1"
        assert isinstance(payload["timestamp"], str)

    def test_delivery_failure_is_swallowed(self):
        CeleryNotifier(task=FakeTask(fail=True)).emit(ChangeEventType.STOCK_UPDATE, stock_event())
        ExplodingNotifier().emit(ChangeEventType.STOCK_UPDATE, stock_event())

    def test_build_notifier(self):
        assert isinstance(build_notifier("null"), NullNotifier)
        assert isinstance(build_notifier("log"), LoggingNotifier)
        assert isinstance(build_notifier("carrier-pigeon"), NullNotifier)


class TestFailingTransportDuringMutation:

    def test_mutation_survives_notifier_failure(self, ledger, sample_product):
        from app.modules.inventory.service import StockService

        result = StockService(ledger, ExplodingNotifier()).adjust_stock(sample_product.id, -10, "sale")
        assert result.product.stock.current == 14990
        assert ledger.products.get(sample_product.id).stock.current == 14990

    def test_credit_mutation_survives_notifier_failure(self, ledger, sample_customer):
        from app.modules.customers.service import CreditService

        change = CreditService(ledger, ExplodingNotifier()).set_credit_limit(sample_customer.id, Decimal("80000"))
        assert change.customer.credit_limit == Decimal("80000")


class TestBroadcastTask:

    def test_task_runs_locally(self):
        result = broadcast_change.apply(args=("credit-update", {"customer_id": "c1", "updated_by": "System"})).get()
        assert result == {"status": "delivered", "event_type": "credit-update", "entity_id": "c1"}
