from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, Numeric
from app.common.mixins import LedgerRowMixin

class ProductRecord(Base, LedgerRowMixin):
    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    sku = Column(String(50), nullable=True, index=True)
    price = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="TRY")
    is_active = Column(Boolean, default=True)

    # Stock snapshot, flattened
    stock_current = Column(Integer, nullable=False, default=0)
    stock_reserved = Column(Integer, nullable=False, default=0)
    stock_minimum = Column(Integer, nullable=False, default=0)
    stock_maximum = Column(Integer, nullable=False, default=0)

class StockMovementRecord(Base, LedgerRowMixin):
    __tablename__ = "stock_movements"

    # No FK: products can be hard-deleted while their audit trail is kept
    product_id = Column(String(64), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # inbound, outbound
    quantity = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=False)
    previous_stock = Column(Integer, nullable=False)
    new_stock = Column(Integer, nullable=False)
    performed_by = Column(String(100), nullable=False)
