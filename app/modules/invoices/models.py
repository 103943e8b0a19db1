from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Date, Text, JSON
from app.common.mixins import LedgerRowMixin


class InvoiceRecord(Base, LedgerRowMixin):
    __tablename__ = "invoices"

    invoice_number = Column(String(50), nullable=False, unique=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=False, index=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    currency = Column(String(3), nullable=False, default="TRY")

    total_amount = Column(Numeric(15, 2), nullable=False, default=0)
    paid_amount = Column(Numeric(15, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Line items and audit notes are snapshots, stored as JSON
    items = Column(JSON, nullable=False, default=list)
    notes = Column(JSON, nullable=False, default=list)

    created_by = Column(String(100), nullable=False)


class PaymentRecord(Base, LedgerRowMixin):
    __tablename__ = "payments"

    invoice_id = Column(String(64), ForeignKey("invoices.id"), nullable=False, index=True)
    invoice_number = Column(String(50), nullable=False)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=False, index=True)

    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="TRY")
    method = Column(String(20), nullable=False)
    reference = Column(String(100), nullable=True)  # Transfer number, check number, etc.
    payment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    processed_by = Column(String(100), nullable=False)
