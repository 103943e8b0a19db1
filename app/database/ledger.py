"""
Ledger Store: the repositories for every aggregate plus the per-entity lock registry.
"""
from dataclasses import dataclass, field
from typing import Optional

from app.common.locks import EntityLocks
from app.core.config import settings
from app.database.database import Base, get_engine, make_session_factory
from app.database.repository import (
    Repository, InMemoryRepository, SqlAlchemyRepository,
    ProductSqlRepository, InvoiceSqlRepository
)
from app.modules.customers.models import CustomerRecord
from app.modules.customers.schemas import Customer
from app.modules.inventory.models import ProductRecord, StockMovementRecord
from app.modules.inventory.schemas import Product, StockMovement
from app.modules.invoices.models import InvoiceRecord, PaymentRecord
from app.modules.invoices.schemas import Invoice, Payment

import logging

logger = logging.getLogger(__name__)


@dataclass
class LedgerStore:
    customers: Repository[Customer]
    invoices: Repository[Invoice]
    payments: Repository[Payment]
    products: Repository[Product]
    movements: Repository[StockMovement]
    locks: EntityLocks = field(default_factory=EntityLocks)


def build_memory_ledger() -> LedgerStore:
    return LedgerStore(
        customers=InMemoryRepository("Customer", deletable=False),
        invoices=InMemoryRepository("Invoice", deletable=False),
        payments=InMemoryRepository("Payment", deletable=False),
        products=InMemoryRepository("Product"),
        movements=InMemoryRepository("StockMovement", deletable=False),
    )


def build_sql_ledger(engine, create_tables: bool = False) -> LedgerStore:
    if create_tables:
        Base.metadata.create_all(bind=engine)
    session_factory = make_session_factory(engine)
    return LedgerStore(
        customers=SqlAlchemyRepository(session_factory, CustomerRecord, Customer, "Customer", deletable=False),
        invoices=InvoiceSqlRepository(session_factory, InvoiceRecord, Invoice, "Invoice", deletable=False),
        payments=SqlAlchemyRepository(session_factory, PaymentRecord, Payment, "Payment", deletable=False),
        products=ProductSqlRepository(session_factory, ProductRecord, Product, "Product"),
        movements=SqlAlchemyRepository(session_factory, StockMovementRecord, StockMovement, "StockMovement", deletable=False),
    )


def build_ledger_store(backend: Optional[str] = None) -> LedgerStore:
    backend = backend or settings.STORE_BACKEND
    if backend == "sql":
        logger.info("Using SQL ledger store")
        engine = get_engine()
        return build_sql_ledger(engine, create_tables=settings.ENVIRONMENT == "development")
    if backend != "memory":
        logger.warning(f"Unknown store backend '{backend}', falling back to in-memory store")
    logger.info("Using in-memory ledger store")
    return build_memory_ledger()
