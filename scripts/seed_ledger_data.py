"""
Seed script: populate the ledger with the demo pharmacy-supply dataset.

What it creates:
- Customers (4) with credit limits and payment terms.
- Products (3) with stock snapshots (current/minimum/maximum).
- Invoices (2) issued through the invoice service, so customer credit is reconciled.
- Payments: one full payment and one partial payment.

Run against the SQL store (tables are created if missing):
    STORE_BACKEND=sql DATABASE_URL=sqlite:///./ledger.db python scripts/seed_ledger_data.py

Note: This is intended for development environments only.
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from datetime import date
from decimal import Decimal

from app.core.config import settings
from app.database.database import make_engine
from app.database.ledger import build_memory_ledger, build_sql_ledger
from app.modules.customers.schemas import CustomerCreate
from app.modules.customers.service import CreditService
from app.modules.inventory.schemas import ProductCreate, StockLevels
from app.modules.inventory.service import StockService
from app.modules.invoices.schemas import InvoiceItemCreate, PaymentMethod
from app.modules.invoices.service import InvoiceService
from app.modules.notifications.service import LoggingNotifier


CUSTOMERS = [
    ("1", "ABC İlaç A.Ş.", Decimal("100000"), 30),
    ("2", "Sağlık Merkezi XYZ", Decimal("75000"), 45),
    ("3", "Global Pharma Ltd.", Decimal("120000"), 60),
    ("4", "DEF Sağlık Hizmetleri", Decimal("25000"), 30),
]

PRODUCTS = [
    ("1", "Cerrahi Maske FFP2", "MASK-FFP2-001", Decimal("15.50"), StockLevels(current=15000, minimum=2000, maximum=50000)),
    ("2", "Eldiven Nitril Mavi", "GLOVE-NIT-002", Decimal("85.00"), StockLevels(current=8500, minimum=1000, maximum=20000)),
    ("3", "Dijital Termometre", "THERM-DIG-003", Decimal("125.00"), StockLevels(current=450, minimum=50, maximum=1000)),
]


def create_customers(credit: CreditService):
    created = []
    for customer_id, name, limit, terms in CUSTOMERS:
        if credit.ledger.customers.get(customer_id):
            continue
        created.append(credit.open_account(CustomerCreate(
            id=customer_id, company_name=name, credit_limit=limit, payment_terms=terms
        )))
    return created


def create_products(stock: StockService):
    created = []
    for product_id, name, sku, price, levels in PRODUCTS:
        if stock.ledger.products.get(product_id):
            continue
        created.append(stock.register_product(ProductCreate(
            id=product_id, name=name, sku=sku, price=price, stock=levels
        )))
    return created


def create_invoices(invoices: InvoiceService, actor: str):
    if invoices.ledger.invoices.list():
        return 0

    paid = invoices.issue_invoice(
        "1",
        [InvoiceItemCreate(product_id="1", quantity=5000, unit_price=Decimal("15.50"))],
        issue_date=date(2024, 2, 1),
        notes="Zamanında ödeme yapıldı",
        actor=actor
    )
    invoices.record_payment(
        paid.id, paid.total_amount, method=PaymentMethod.BANK_TRANSFER,
        reference="TRF-240228-001", payment_date=date(2024, 2, 28), notes="Tam ödeme alındı", actor=actor
    )

    partial = invoices.issue_invoice(
        "2",
        [
            InvoiceItemCreate(product_id="3", quantity=100, unit_price=Decimal("125.00")),
            InvoiceItemCreate(product_id="2", quantity=500, unit_price=Decimal("85.00")),
        ],
        issue_date=date(2024, 2, 15),
        notes="Kısmi ödeme alındı",
        actor=actor
    )
    invoices.record_payment(
        partial.id, Decimal("30000"), method=PaymentMethod.BANK_TRANSFER,
        reference="TRF-240301-001", payment_date=date(2024, 3, 1), actor=actor
    )
    invoices.refresh_overdue()
    return 2


def main():
    parser = argparse.ArgumentParser(description="Seed ledger demo data")
    parser.add_argument("--backend", default=settings.STORE_BACKEND, choices=["memory", "sql"])
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--actor", default="Mali İşler Uzmanı")
    args = parser.parse_args()

    if args.backend == "sql":
        ledger = build_sql_ledger(make_engine(args.database_url), create_tables=True)
    else:
        ledger = build_memory_ledger()
    notifier = LoggingNotifier()

    credit = CreditService(ledger, notifier)
    stock = StockService(ledger, notifier)
    invoices = InvoiceService(ledger, notifier)

    print("Creating customers...")
    print(f"Customers created: {len(create_customers(credit))}")

    print("Creating products...")
    print(f"Products created: {len(create_products(stock))}")

    print("Creating invoices and payments...")
    print(f"Invoices created: {create_invoices(invoices, args.actor)}")

    print("\nSeed completed.")
    for customer in ledger.customers.list():
        print(
            f"  {customer.company_name}: limit {customer.credit_limit}, "
            f"outstanding {customer.total_outstanding}, status {customer.credit_status.value}"
        )


if __name__ == "__main__":
    main()
