"""
Shared pytest fixtures: ledger stores (memory and SQLite), a recording notifier,
the engines built on top of them and a TestClient wired to the same store.
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.database.database import make_engine
from app.database.ledger import build_memory_ledger, build_sql_ledger
from app.dependencies.ledgerDependencies import get_ledger, get_notifier
from app.modules.customers.schemas import CustomerCreate
from app.modules.customers.service import CreditService
from app.modules.inventory.schemas import ProductCreate, StockLevels
from app.modules.inventory.service import StockService
from app.modules.invoices.service import InvoiceService
from app.modules.notifications.service import RecordingNotifier
from app.modules.sales.admission import AdmissionController
from app.modules.sales.service import SaleService


@pytest.fixture
def ledger():
    """In-memory ledger store"""
    return build_memory_ledger()


@pytest.fixture
def sql_ledger():
    """SQL ledger store on a private in-memory SQLite database"""
    engine = make_engine("sqlite://", poolclass=StaticPool)
    store = build_sql_ledger(engine, create_tables=True)
    yield store
    engine.dispose()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def credit_service(ledger, notifier):
    return CreditService(ledger, notifier)


@pytest.fixture
def stock_service(ledger, notifier):
    return StockService(ledger, notifier)


@pytest.fixture
def invoice_service(ledger, notifier):
    return InvoiceService(ledger, notifier)


@pytest.fixture
def admission(ledger, notifier):
    return AdmissionController(ledger, notifier)


@pytest.fixture
def sale_service(ledger, notifier):
    return SaleService(ledger, notifier)


@pytest.fixture
def sample_customer(credit_service):
    """ABC İlaç A.Ş. with a 100000 TRY limit and nothing outstanding"""
    return credit_service.open_account(CustomerCreate(
        id="cust-abc",
        company_name="ABC İlaç A.Ş.",
        credit_limit=Decimal("100000"),
        payment_terms=30
    ))


@pytest.fixture
def sample_product(stock_service):
    """Cerrahi Maske FFP2 with 15000 units in stock"""
    return stock_service.register_product(ProductCreate(
        id="prod-mask",
        name="Cerrahi Maske FFP2",
        sku="MASK-FFP2-001",
        price=Decimal("15.50"),
        stock=StockLevels(current=15000, minimum=2000, maximum=50000)
    ))


@pytest.fixture
def second_product(stock_service):
    """Dijital Termometre with 450 units in stock"""
    return stock_service.register_product(ProductCreate(
        id="prod-therm",
        name="Dijital Termometre",
        sku="THERM-DIG-003",
        price=Decimal("125.00"),
        stock=StockLevels(current=450, minimum=50, maximum=1000)
    ))


@pytest.fixture
def client(ledger, notifier):
    """TestClient sharing the test's ledger store and notifier"""
    from app.main import app

    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
