from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import uuid4
import logging

from app.common.audit import resolve_actor, utcnow
from app.common.exceptions import NotFoundError, InvalidArgumentError, InsufficientStockError
from app.common.money import round_money, to_decimal, Number
from app.core.config import settings
from app.database.ledger import LedgerStore
from app.modules.inventory.schemas import (
    Product, ProductCreate, StockLevels, StockMovement, StockAdjustment, MovementType
)
from app.modules.notifications.schemas import ChangeEventType, StockUpdateEvent
from app.modules.notifications.service import ChangeNotifier, NullNotifier

logger = logging.getLogger(__name__)


def round_quantity(value: Number) -> int:
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StockService:
    """Stock engine: validates and mutates product stock counts."""

    def __init__(self, ledger: LedgerStore, notifier: Optional[ChangeNotifier] = None):
        self.ledger = ledger
        self.notifier = notifier or NullNotifier()

    def get_product(self, product_id: str) -> Product:
        product = self.ledger.products.get(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def register_product(self, data: ProductCreate) -> Product:
        """Create a product with its initial stock snapshot."""
        product_id = data.id or str(uuid4())
        with self.ledger.locks.product(product_id):
            if self.ledger.products.get(product_id) is not None:
                raise InvalidArgumentError(f"Product '{product_id}' already exists")

            product = Product(
                id=product_id,
                name=data.name,
                sku=data.sku,
                price=round_money(data.price, Decimal("0.01")),
                currency=settings.CURRENCY,
                stock=data.stock.model_copy(),
                updated_at=utcnow()
            )
            self.ledger.products.upsert(product)

        logger.info(f"Registered product {product.id} ({product.name}) with stock {product.stock.current}")
        return product

    def delete_product(self, product_id: str) -> None:
        """Hard delete. Movement history is kept for audit."""
        with self.ledger.locks.product(product_id):
            if not self.ledger.products.delete(product_id):
                raise NotFoundError("Product", product_id)
        logger.info(f"Deleted product {product_id}")

    def set_stock(self, product_id: str, new_current: Number) -> Product:
        """Overwrite current stock, clamped at zero."""
        with self.ledger.locks.product(product_id):
            product = self.get_product(product_id)
            current = max(0, round_quantity(new_current))
            product.stock = StockLevels(
                current=current,
                reserved=min(product.stock.reserved, current),
                minimum=product.stock.minimum,
                maximum=product.stock.maximum
            )
            product.updated_at = utcnow()
            self.ledger.products.upsert(product)
        return product

    def adjust_stock(self, product_id: str, delta: int, reason: str,
                     actor: Optional[str] = None) -> StockAdjustment:
        """Apply a signed stock delta and record the movement."""
        if not delta:
            raise InvalidArgumentError("Stock adjustment cannot be zero")
        if not reason or not reason.strip():
            raise InvalidArgumentError("Stock adjustment requires a reason")

        with self.ledger.locks.product(product_id):
            product = self.get_product(product_id)
            previous_stock = product.stock.current
            new_stock = previous_stock + delta

            if new_stock < 0:
                logger.warning(
                    f"Rejected stock adjustment for {product_id}: current {previous_stock}, change {delta}"
                )
                raise InsufficientStockError(
                    f"Stock for '{product.name}' cannot go negative. Current: {previous_stock}, change: {delta}",
                    detail={
                        "product_id": product_id,
                        "current_stock": previous_stock,
                        "requested_change": delta,
                    }
                )

            product = self.set_stock(product_id, new_stock)
            movement = self._record_movement(product, previous_stock, reason, actor)

        self._emit_stock_update(product, previous_stock, reason, actor)
        return StockAdjustment(product=product, movement=movement)

    def check_availability(self, product_id: str, quantity: int) -> bool:
        """Pure predicate; an unknown product is simply unavailable."""
        product = self.ledger.products.get(product_id)
        if product is None:
            return False
        return product.stock.current >= quantity

    def decrease_for_sale(self, product_id: str, quantity: int,
                          actor: Optional[str] = None) -> Product:
        if quantity <= 0:
            raise InvalidArgumentError("Sale quantity must be greater than zero")

        with self.ledger.locks.product(product_id):
            product = self.get_product(product_id)
            if not self.check_availability(product_id, quantity):
                raise InsufficientStockError(
                    f"Insufficient stock for '{product.name}'. Available: {product.stock.current}, requested: {quantity}",
                    detail={
                        "product_id": product_id,
                        "available": product.stock.current,
                        "requested": quantity,
                    }
                )

            previous_stock = product.stock.current
            product = self.set_stock(product_id, previous_stock - quantity)
            self._record_movement(product, previous_stock, "sale", actor)

        logger.info(f"Sold {quantity} of {product_id}: {previous_stock} -> {product.stock.current}")
        self._emit_stock_update(product, previous_stock, "sale", actor)
        return product

    def list_low_stock(self) -> List[Product]:
        return self.ledger.products.list(lambda p: p.stock.current <= p.stock.minimum)

    def get_movements(self, product_id: str, limit: int = 50, offset: int = 0) -> List[StockMovement]:
        """Movement history for a product, newest first."""
        movements = self.ledger.movements.list(product_id=product_id)
        movements.sort(key=lambda m: m.created_at, reverse=True)
        return movements[offset:offset + limit]

    def _record_movement(self, product: Product, previous_stock: int, reason: str,
                         actor: Optional[str]) -> StockMovement:
        change = product.stock.current - previous_stock
        movement = StockMovement(
            id=str(uuid4()),
            product_id=product.id,
            type=MovementType.INBOUND if change > 0 else MovementType.OUTBOUND,
            quantity=abs(change),
            reason=reason,
            previous_stock=previous_stock,
            new_stock=product.stock.current,
            performed_by=resolve_actor(actor),
            created_at=utcnow()
        )
        self.ledger.movements.upsert(movement)
        return movement

    def _emit_stock_update(self, product: Product, previous_stock: int, reason: str,
                           actor: Optional[str]) -> None:
        self.notifier.emit(ChangeEventType.STOCK_UPDATE, StockUpdateEvent(
            product_id=product.id,
            product_name=product.name,
            product_sku=product.sku,
            old_stock=previous_stock,
            new_stock=product.stock.current,
            quantity=abs(product.stock.current - previous_stock),
            reason=reason,
            updated_by=resolve_actor(actor),
            timestamp=utcnow()
        ))
