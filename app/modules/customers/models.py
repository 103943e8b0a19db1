"""
SQLAlchemy table for customer credit accounts (SQL ledger backend)
"""

from app.database.database import Base
from sqlalchemy import Column, String, Integer, Numeric, Date
from app.common.mixins import LedgerRowMixin


class CustomerRecord(Base, LedgerRowMixin):
    __tablename__ = "customers"

    company_name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default="active")  # Soft delete -> inactive
    payment_terms = Column(Integer, nullable=False, default=30)

    # Credit (derived fields are cached, recomputed by the credit engine)
    credit_limit = Column(Numeric(15, 2), nullable=False, default=0)
    total_outstanding = Column(Numeric(15, 2), nullable=False, default=0)
    available_credit = Column(Numeric(15, 2), nullable=False, default=0)
    credit_status = Column(String(20), nullable=False, default="good")
    last_payment_date = Column(Date, nullable=True)
