"""
Common mixins for ledger tables
"""
from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func


class TimestampMixin:
    """Mixin for tables that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)


class LedgerRowMixin(TimestampMixin):
    """String primary key plus timestamps, shared by every aggregate table"""

    id = Column(String(64), primary_key=True, index=True)
